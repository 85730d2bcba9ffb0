# coding=utf-8

"""
Textual notations for binary chunk data.

A data segment is written in one of three forms, chosen once for the whole
block being dumped:

  "..."        literal, when every byte is printable ASCII or whitespace
  base64 ...   one symbol per byte, when every byte is below 64
  hex ...      two hex digits per byte otherwise

The base64 form is not RFC 2045: there is no bit packing, each byte simply
indexes BASE64.
"""

import re

from enum import Enum

from sng import config
from sng.errors import CodecError

BASE64 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz+/"
BASE64_INDEX = {c: i for (i, c) in enumerate(BASE64)}

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

PRINTABLE = bytes(range(0x20, 0x7F)) + b"\t\n\x0b\x0c\r"

ESCAPES = {
	'"': '\\"',
	"\\": "\\\\",
	"\n": "\\n",
	"\r": "\\r",
	"\b": "\\b",
	"\t": "\\t",
}

UNESCAPES = {
	'"': '"',
	"'": "'",
	"\\": "\\",
	"n": "\n",
	"r": "\r",
	"b": "\b",
	"t": "\t",
}

ESCAPE = re.compile(r"\\(x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|\^[?@-_]|.|\Z)", re.S)
LITERAL_PIECE = re.compile(r'"((?:[^"\\\n]|\\.)*)"')
LITERAL_SEGMENT = re.compile(r'(\s*"(?:[^"\\\n]|\\.)*")*\s*\Z')


class Format(Enum):
	LITERAL = '"'
	BASE64 = "base64"
	HEX = "hex"


def select_format(rows):
	"""Pick the notation for a block of rows, looking at every byte."""
	literal = True
	base64 = True
	for row in rows:
		if literal and row.translate(None, PRINTABLE):
			literal = False
		if base64 and row and max(row) >= 64:
			base64 = False
		if not literal and not base64:
			break
	if literal:
		return Format.LITERAL
	elif base64:
		return Format.BASE64
	return Format.HEX


#
# Escapes
#

def escape_bytes(data):
	out = []
	for b in data:
		c = chr(b)
		if c in ESCAPES:
			out.append(ESCAPES[c])
		elif 0x20 <= b < 0x7F:
			out.append(c)
		else:
			out.append("\\x{:02x}".format(b))
	return "".join(out)


def escape_text(text):
	out = []
	for c in text:
		if c in ESCAPES:
			out.append(ESCAPES[c])
		elif c.isprintable():
			out.append(c)
		elif ord(c) <= 0xFF:
			out.append("\\x{:02x}".format(ord(c)))
		elif ord(c) <= 0xFFFF:
			out.append("\\u{:04x}".format(ord(c)))
		else:
			out.append("\\U{:08x}".format(ord(c)))
	return "".join(out)


def _unescape(match):
	seq = match.group(1)
	if len(seq) > 1 and seq[0] in "xuU":
		return chr(int(seq[1:], 16))
	elif len(seq) == 2 and seq[0] == "^":
		return "\x7f" if seq[1] == "?" else chr(ord(seq[1]) - 64)
	elif seq in UNESCAPES:
		return UNESCAPES[seq]
	elif not seq:
		raise CodecError("dangling backslash in string")
	raise CodecError("unknown escape \\{}".format(seq))


def unquote(raw):
	"""Decode the escapes in the body of a quoted token."""
	if "\\" not in raw:
		return raw
	return ESCAPE.sub(_unescape, raw)


def unescape_bytes(raw):
	try:
		return unquote(raw).encode("latin-1")
	except UnicodeEncodeError as e:
		raise CodecError("character {!r} does not fit in a byte".format(e.object[e.start]))


def _pieces(seq, run, newline):
	start = 0
	for (i, c) in enumerate(seq, 1):
		if c == newline and i < len(seq) or i - start >= run:
			yield seq[start:i]
			start = i
	if start < len(seq) or not seq:
		yield seq[start:]


def _escaped_pieces(text, run):
	# pieces are measured after escaping
	(out, size) = ([], 0)
	for (i, c) in enumerate(text, 1):
		piece = escape_text(c)
		out.append(piece)
		size += len(piece)
		if c == "\n" and i < len(text) or size >= run:
			yield "".join(out)
			(out, size) = ([], 0)
	if out or not text:
		yield "".join(out)


def quote(text, sep=" "):
	"""
	Render a string field. Long strings and strings with embedded
	newlines become several adjacent quoted pieces.
	"""
	return sep.join('"' + piece + '"' for piece in _escaped_pieces(text, config.LITERAL_RUN))


#
# Encoding
#

def _spaced(text, width):
	return " ".join(text[i:i + width] for i in range(0, len(text), width))


def _encode_row(fmt, row, group):
	if fmt == Format.LITERAL:
		return " ".join('"' + escape_bytes(piece) + '"' for piece in _pieces(row, config.LITERAL_RUN, 0x0A))
	elif fmt == Format.BASE64:
		return _spaced("".join(BASE64[b] for b in row), config.DATA_RUN)
	else:
		return _spaced(row.hex(), 2 * (group or config.DATA_RUN))


def encode_rows(rows, group=0):
	"""
	Encode several rows with a single notation. `group` is the hex spacing
	in bytes (bytes per pixel for image rows); it never affects decoding.
	"""
	rows = [bytes(row) for row in rows]
	fmt = select_format(rows)
	return (fmt, [_encode_row(fmt, row, group) for row in rows])


def encode(data, group=0):
	(fmt, lines) = encode_rows([data], group)
	return (fmt, lines[0])


def render(data, group=0):
	"""Encode with the format prefix a data segment is introduced by."""
	(fmt, text) = encode(data, group)
	if fmt == Format.LITERAL:
		return text
	return "{} {}".format(fmt.value, text)


#
# Decoding
#

def decode_literal(text):
	if not LITERAL_SEGMENT.match(text):
		raise CodecError("malformed literal data")
	return b"".join(unescape_bytes(raw) for raw in LITERAL_PIECE.findall(text))


def decode_base64(text):
	out = bytearray()
	for c in "".join(text.split()):
		try:
			out.append(BASE64_INDEX[c])
		except KeyError:
			raise CodecError("invalid base64 character {!r}".format(c))
	return bytes(out)


def decode_hex(text):
	digits = "".join(text.split())
	for c in digits:
		if c not in HEX_DIGITS:
			raise CodecError("invalid hex digit {!r}".format(c))
	if len(digits) % 2:
		raise CodecError("odd number of hex digits")
	return bytes.fromhex(digits)


DECODERS = {
	Format.LITERAL: decode_literal,
	Format.BASE64: decode_base64,
	Format.HEX: decode_hex,
}


def decode(fmt, text):
	return DECODERS[fmt](text)


def parse(text):
	"""Decode a data segment, recognizing its format from the prefix."""
	text = text.strip()
	if text.startswith('"'):
		return decode_literal(text)
	(word, rest) = (text.split(None, 1) + ["", ""])[:2]
	for fmt in (Format.BASE64, Format.HEX):
		if word == fmt.value:
			return decode(fmt, rest)
	raise CodecError("unrecognized data format {!r}".format(word))
