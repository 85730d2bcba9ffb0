# coding=utf-8

import logging
import math
import re

from sng import config
from sng.datacodec import unquote
from sng.errors import LexError, ValueRangeError

logger = logging.getLogger(__name__)


class Token:
	def __init__(self, value, quoted=False, line=None):
		self.value = value
		self.quoted = quoted
		self.line = line

	def is_punct(self, char):
		return not self.quoted and self.value == char

	def __eq__(self, other):
		if not isinstance(other, Token):
			return NotImplemented
		return (self.value, self.quoted) == (other.value, other.quoted)

	def __str__(self):
		return repr(self.value) if self.quoted else self.value

	def __repr__(self):
		return "<Token {!r} line {}>".format(self.value, self.line)


class ParserContext:
	"""
	Everything one conversion's parse needs: the source text and read
	position, the file name and current line for diagnostics, the pushed
	back token and the queue of text chunks waiting for the writer.
	"""

	def __init__(self, text, file="stdin"):
		self.text = text
		self.file = file
		self.pos = 0
		self.line = 1
		self.pushed = None
		self.text_queue = []

	def at_eof(self):
		self.line = None

	def error(self, cls, message, token=None):
		line = getattr(token, "line", None)
		if line is None:
			line = self.line
		return cls(message, self.file, line)


class Tokenizer:
	PUNCTUATION = "{}()"
	SEPARATORS = ",;:"
	QUOTES = "'\""
	COMMENT = "#"

	def __init__(self, ctx):
		self.ctx = ctx

	def _getc(self):
		ctx = self.ctx
		if ctx.pos >= len(ctx.text):
			return ""
		c = ctx.text[ctx.pos]
		ctx.pos += 1
		if c == "\n":
			ctx.line += 1
		return c

	def _peek(self):
		ctx = self.ctx
		if ctx.pos >= len(ctx.text):
			return ""
		return ctx.text[ctx.pos]

	def _ends_bare(self, c):
		return not c or c.isspace() or c in self.SEPARATORS or c in self.PUNCTUATION or c in self.QUOTES or c == self.COMMENT

	def next_token(self):
		ctx = self.ctx
		if ctx.pushed is not None:
			token, ctx.pushed = ctx.pushed, None
			return token

		while True:
			c = self._getc()
			if not c:
				return None
			elif c.isspace() or c in self.SEPARATORS:
				continue
			elif c == self.COMMENT:
				while c and c != "\n":
					c = self._getc()
				continue
			break

		line = ctx.line
		if c in self.QUOTES:
			token = self._quoted(c, line)
		elif c in self.PUNCTUATION:
			token = Token(c, False, line)
		else:
			chars = [c]
			while not self._ends_bare(self._peek()):
				chars.append(self._getc())
				if len(chars) > config.MAX_TOKEN_LENGTH:
					raise ctx.error(LexError, "token too long")
			token = Token("".join(chars), False, line)

		logger.debug("token: %s", token)
		return token

	def _quoted(self, quote, line):
		ctx = self.ctx
		chars = []
		while True:
			c = self._getc()
			if not c or c == "\n":
				raise LexError("runaway string", ctx.file, line)
			elif c == quote:
				break
			chars.append(c)
			if c == "\\":
				c = self._getc()
				if not c or c == "\n":
					raise LexError("runaway string", ctx.file, line)
				chars.append(c)
			if len(chars) > config.MAX_TOKEN_LENGTH:
				raise LexError("token too long", ctx.file, line)
		return Token("".join(chars), True, line)

	def unget(self, token):
		# push back a token; must always be followed immediately by next_token
		if self.ctx.pushed is not None:
			raise RuntimeError("only one token of pushback is supported")
		self.ctx.pushed = token

	def peek(self):
		token = self.next_token()
		if token is not None:
			self.unget(token)
		return token


#
# Token validation
#

INTEGER = re.compile(r"[+-]?(0[xX][0-9a-fA-F]+|[0-9]+)\Z")
REAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?\Z")

FIXED_POINT_SCALE = 100000


def _fail(ctx, token, message):
	if ctx is None:
		return ValueRangeError(message, None, getattr(token, "line", None))
	return ctx.error(ValueRangeError, message, token)


def _integer(token, low, high, what, ctx=None):
	if token is None:
		raise _fail(ctx, token, "EOF while expecting {} constant".format(what))
	text = token.value if isinstance(token, Token) else token
	if not INTEGER.match(text):
		raise _fail(ctx, token, "invalid {} constant {!r}".format(what, text))
	value = int(text, 16 if "x" in text.lower() else 10)
	if not low <= value <= high:
		raise _fail(ctx, token, "out of range {} constant {!r}".format(what, text))
	return value


def uint32(token, ctx=None):
	return _integer(token, 0, 0xFFFFFFFF, "unsigned 32-bit", ctx)


def int32(token, ctx=None):
	return _integer(token, -0x80000000, 0x7FFFFFFF, "signed 32-bit", ctx)


def uint16(token, ctx=None):
	return _integer(token, 0, 0xFFFF, "unsigned 16-bit", ctx)


def byte(token, ctx=None):
	return _integer(token, 0, 0xFF, "byte", ctx)


def png_uint31(token, ctx=None):
	"""PNG's four-byte unsigned integers stop at 2^31 - 1."""
	return _integer(token, 0, 0x7FFFFFFF, "PNG long", ctx)


def real(token, ctx=None, positive=False):
	"""Validate a floating point constant, returning its text."""
	if token is None:
		raise _fail(ctx, token, "EOF while expecting floating-point constant")
	text = token.value if isinstance(token, Token) else token
	if not REAL.match(text):
		raise _fail(ctx, token, "invalid floating-point constant {!r}".format(text))
	if not math.isfinite(float(text)):
		raise _fail(ctx, token, "out of range floating-point constant {!r}".format(text))
	if positive and float(text) <= 0:
		raise _fail(ctx, token, "floating-point constant {!r} must be positive".format(text))
	return text


def fixed_point(token, ctx=None):
	"""Validate a non-negative decimal, scaled to PNG's 1/100000 units."""
	text = real(token, ctx)
	value = float(text) * FIXED_POINT_SCALE
	if math.isfinite(value):
		value = int(round(value))
	if not 0 <= value <= 0x7FFFFFFF:
		raise _fail(ctx, token, "out of range fixed-point constant {!r}".format(text))
	return value


def string(token, ctx=None, what="string"):
	if token is None:
		raise _fail(ctx, token, "EOF while expecting {}".format(what))
	if not isinstance(token, Token):
		token = Token(token, True)
	if not token.quoted and token.value in Tokenizer.PUNCTUATION:
		raise _fail(ctx, token, "expected {}, found {!r}".format(what, token.value))
	value = unquote(token.value) if token.quoted else token.value
	if len(value) > config.PNG_STRING_MAX_LENGTH:
		raise _fail(ctx, token, "{} is too long".format(what))
	return value


def keyword(token, ctx=None):
	value = string(token, ctx, "keyword")
	if not 0 < len(value) <= config.PNG_KEYWORD_MAX_LENGTH:
		raise _fail(ctx, token, "keyword {!r} must be 1-{} characters".format(value, config.PNG_KEYWORD_MAX_LENGTH))
	if value.startswith(" ") or value.endswith(" "):
		raise _fail(ctx, token, "keyword {!r} has leading or trailing spaces".format(value))
	if "  " in value:
		raise _fail(ctx, token, "keyword {!r} has consecutive spaces".format(value))
	for c in value:
		if not (32 <= ord(c) <= 126 or 161 <= ord(c) <= 255):
			raise _fail(ctx, token, "keyword {!r} contains a character outside printable Latin-1".format(value))
	return value
