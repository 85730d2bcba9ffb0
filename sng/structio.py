# coding=utf-8

import io
import struct

# PNG is big-endian throughout
STRUCTS = {
	"ubyte": struct.Struct(">B"),
	"bool": struct.Struct(">?"),
	"uint": struct.Struct(">I"),
}


class BytesStructIO(io.BytesIO):
	"""
	Chunk body reader/writer. Reads are exact: running out of data raises
	EOFError instead of returning short.
	"""

	def read_exact(self, size):
		data = self.read(size)
		if len(data) != size:
			raise EOFError("wanted {} bytes, got {}".format(size, len(data)))
		return data

	def _unpack(self, name):
		fmt = STRUCTS[name]
		return fmt.unpack(self.read_exact(fmt.size))[0]

	def read_ubyte(self):
		return self._unpack("ubyte")

	def read_bool(self):
		return self._unpack("bool")

	def read_uint(self):
		return self._unpack("uint")

	def read_string(self):
		"""Read up to the next NUL, which is consumed but not returned."""
		start = self.tell()
		end = self.getvalue().find(b"\x00", start)
		if end < 0:
			raise EOFError("unterminated string")
		self.seek(end + 1)
		return self.getvalue()[start:end]

	def read_latin1(self):
		return self.read_string().decode("latin-1")

	def read_rest(self):
		return self.read()

	def _pack(self, name, value):
		self.write(STRUCTS[name].pack(value))

	def write_ubyte(self, value):
		self._pack("ubyte", value)

	def write_bool(self, value):
		self._pack("bool", value)

	def write_string(self, data, codec="latin-1"):
		if isinstance(data, str):
			data = data.encode(codec)
		self.write(data + b"\x00")
