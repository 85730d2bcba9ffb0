# coding=utf-8


class SNGError(Exception):
	"""
	Base of every error raised while converting one file.

	`file` and `line` locate the problem in the SNG source; a line of None
	means the error was detected at end of input.
	"""

	def __init__(self, message, file=None, line=None):
		super().__init__(message)
		self.message = message
		self.file = file
		self.line = line

	def __str__(self):
		if self.file is None:
			return self.message
		return "{}:{}: {}".format(self.file, "EOF" if self.line is None else self.line, self.message)


class LexError(SNGError):
	pass


class GrammarError(SNGError):
	pass


class ValueRangeError(SNGError, ValueError):
	pass


class ConsistencyError(SNGError):
	pass


class CodecError(SNGError):
	def __init__(self, message):
		super().__init__(message)
