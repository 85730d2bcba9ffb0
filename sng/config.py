# coding=utf-8

import os

# libpng's default zbuf size; also the size of the IDAT blocks we write
IDAT_SIZE = 8192

# longest string a chunk can carry: an IDAT buffer minus a minimal tEXt
PNG_STRING_MAX_LENGTH = IDAT_SIZE - 5
MAX_TOKEN_LENGTH = PNG_STRING_MAX_LENGTH

PNG_KEYWORD_MAX_LENGTH = 79
PALETTE_MAX_ENTRIES = 256

# data shorter than this is dumped on the same line as its leader
SHORT_DATA = 50

# ungrouped base64/hex data is broken into tokens of this many bytes
DATA_RUN = 32
LITERAL_RUN = 1024

RGB_TXT_ENV = "SNG_RGBTXT"
RGB_TXT_PATHS = [
	"/usr/share/X11/rgb.txt",
	"/usr/lib/X11/rgb.txt",
	"/etc/X11/rgb.txt",
	"/usr/X11R6/lib/X11/rgb.txt",
	"/usr/openwin/lib/X11/rgb.txt",
]


def rgb_txt_paths():
	paths = list(RGB_TXT_PATHS)
	override = os.environ.get(RGB_TXT_ENV)
	if override:
		paths.insert(0, override)
	return paths
