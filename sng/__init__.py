# coding=utf-8

from sng.compiler import Compiler, compile_sng
from sng.dumper import Dumper, decompile_png
from sng.errors import SNGError, LexError, GrammarError, ValueRangeError, ConsistencyError, CodecError
from sng.model import ChunkModel
