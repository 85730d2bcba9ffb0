# coding=utf-8

import datetime
import struct

from sng.structio import BytesStructIO


class ICCException(Exception):
	pass


class ICCParseException(ICCException):
	pass


def _signature(raw):
	return raw.decode("latin-1").strip()


class ICCProfile:
	"""Just enough of an ICC profile to describe an iCCP chunk."""
	MAGIC = b'acsp'
	HEADER_SIZE = 128

	class Datetime:
		STRUCT = struct.Struct(">6H")

		@classmethod
		def parse(self, data):
			try:
				return datetime.datetime(*self.STRUCT.unpack(data))
			except ValueError:
				return None

	class Header:
		# leading fields only; the rest of the 128 bytes is not needed for a summary
		STRUCT = struct.Struct(">I4sI4s4s4s12s4s")

		def __init__(self, size, cmm, version, dev_class, color_space, pcs, created, magic):
			self.size = size
			self.cmm = _signature(cmm)
			self.version = version
			self.dev_class = _signature(dev_class)
			self.color_space = _signature(color_space)
			self.pcs = _signature(pcs)
			self.created = ICCProfile.Datetime.parse(created)

		@classmethod
		def parse(self, data):
			return self(*self.STRUCT.unpack(data[:self.STRUCT.size]))

		@property
		def version_string(self):
			# major byte, then minor and bugfix nibbles
			return "{}.{}.{}".format(self.version >> 24, (self.version >> 20) & 0xF, (self.version >> 16) & 0xF)

		def __str__(self):
			return str(self.__dict__)

	def __init__(self, header, tag_count):
		self.header = header
		self.tag_count = tag_count

	@classmethod
	def parse(self, data):
		if len(data) < self.HEADER_SIZE + 4 or data[36:40] != self.MAGIC:
			raise ICCParseException("not an ICC profile?")
		data = BytesStructIO(data)
		header = self.Header.parse(data.read_exact(self.HEADER_SIZE))
		if header.size != len(data.getvalue()):
			raise ICCParseException("profile size {} does not match its header ({})".format(len(data.getvalue()), header.size))
		return self(header, data.read_uint())

	def summary(self):
		header = self.header
		return "{} profile, class {}, {} -> {}, {} tags".format(
			header.version_string, header.dev_class, header.color_space, header.pcs, self.tag_count)
