# coding=utf-8

import sys

from sng.cli import main

sys.exit(main())
