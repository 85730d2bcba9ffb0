# coding=utf-8

import logging
import struct
import zlib

from sng import chunks, config
from sng.errors import ConsistencyError
from sng.model import (
	ChunkModel, ColorType, ImageHeader, Chromaticity, Gamma, ColorProfile, SignificantBits, SRGB,
	Background, Histogram, Transparency, PhysicalDimensions, SuggestedPalette, Offset,
	PixelCalibration, Scale, Timestamp, TextChunk, PrivateChunk, GifControl, GifApplication, Image,
	PRE_PALETTE_ORDER, POST_PALETTE_ORDER, SAMPLE_FIELDS,
)
from sng.structio import BytesStructIO

logger = logging.getLogger(__name__)


class ParseError(ConsistencyError):
	pass


class ChunkParseError(ParseError):
	pass


class CRCError(ParseError):
	pass


BYTE = struct.Struct(">B")
SHORT = struct.Struct(">H")
INT = struct.Struct(">I")
RGB8 = struct.Struct(">BBB")
RGB16 = struct.Struct(">HHH")

COMPRESSION_DEFLATE = 0

# (x0, y0, dx, dy) for each Adam7 pass
ADAM7 = [
	(0, 0, 8, 8),
	(4, 0, 8, 8),
	(0, 4, 4, 8),
	(2, 0, 4, 4),
	(0, 2, 2, 4),
	(1, 0, 2, 2),
	(0, 1, 1, 2),
]


def inflate(data, what):
	try:
		return zlib.decompress(data)
	except zlib.error as e:
		raise ChunkParseError("bad compressed data in {}: {}".format(what, e))


class PNG:
	MAGIC = b"\211PNG\r\n\032\n"

	FIFTH_BIT = 0b00100000

	VALID_ASCII = set().union(range(65, 90 + 1), range(97, 122 + 1))
	VERIFY = True

	class Chunk:
		class Flags:
			def __init__(self, ancillary, private, reserved, safe):
				self.ancillary = ancillary
				self.private = private
				self.reserved = reserved
				self.safe = safe

			def __str__(self):
				return ",".join([key for (key, value) in self.__dict__.items() if value])

		def __init__(self, png=None, length=None, cid=None, data=None, crc=None):
			self.png = png
			self.length = length
			self.cid = cid
			self.data = data
			self.crc = crc

		@property
		def cid(self):
			return self._cid

		@cid.setter
		def cid(self, value):
			if len(value) != 4:
				raise ParseError("truncated chunk type {}".format(repr(value)))
			for i in value:
				if i not in PNG.VALID_ASCII:
					raise ParseError("invalid chunk type {}".format(repr(value)))
			self._cid = value

		@property
		def flags(self):
			return PNG.Chunk.Flags(*[(c & PNG.FIFTH_BIT) == PNG.FIFTH_BIT for c in self._cid])

		@property
		def cname(self):
			return self._cid.decode('ascii')

		def verify(self):
			return zlib.crc32(self.data, zlib.crc32(self.cid)) == self.crc

		def decode(self):
			handler = getattr(Chunks, self.cname, None)
			if handler is None or chunks.lookup(self.cname) is None:
				return None
			try:
				return handler.parse(self.png, self)
			except (EOFError, struct.error, ValueError) as e:
				raise ChunkParseError("invalid {} chunk: {}".format(self.cname, e))

		def __str__(self):
			return "<PNG.Chunk '{}' {}>".format(self.cname, self.flags)

		def __repr__(self):
			return str(self)

	def __init__(self, fp, file=None):
		self.fp = fp
		self.file = file or getattr(fp, "name", "stdin")
		self.meta = None
		self.problems = []
		if self.fp.read(8) != PNG.MAGIC:
			raise ParseError("not a png?", self.file)

	def _read(self, size):
		data = self.fp.read(size)
		if len(data) != size:
			raise ParseError("reached end of file without IEND", self.file)
		return data

	def _get_chunk(self):
		length = INT.unpack(self._read(4))[0]
		if length > 0x7FFFFFFF:
			raise ParseError("invalid chunk length {}".format(length), self.file)
		return PNG.Chunk(self, length, self._read(4), self._read(length), INT.unpack(self._read(4))[0])

	def chunks(self):
		chunk = self._get_chunk()
		if chunk.cname != "IHDR":
			raise ParseError("first chunk was not IHDR", self.file)

		while True:
			if PNG.VERIFY and not chunk.verify():
				raise CRCError("bad crc {}".format(chunk.cname), self.file)

			if chunk.cname == "IHDR" and self.meta is None:
				self.meta = chunk.decode()

			if chunk.cname == 'IEND':
				break

			yield chunk

			chunk = self._get_chunk()

		if self.fp.read(1):
			logger.warning("%s has trailing data!", self.file)

	def load(self, keep_idat=False):
		"""
		Read the whole container into a ChunkModel. Ordering problems are
		collected in `problems` rather than raised so a damaged file can
		still be dumped.
		"""
		model = ChunkModel()
		idat = []
		for chunk in self.chunks():
			name = chunk.cname
			after_image = model.image_seen()

			reason = chunks.check(model, name)
			if reason:
				self.problems.append(reason)
			if name in model.SINGLETONS and model.seen(name):
				logger.warning("%s: ignoring repeated %s chunk", self.file, name)
				continue
			model.record(name)

			if name == "IDAT":
				idat.append(chunk.data)
				continue

			value = chunk.decode()
			if value is None:
				value = PrivateChunk(name, chunk.data)
			if hasattr(value, "after_image"):
				value.after_image = after_image
			model.add(name, value)
			logger.debug("%s: read %s chunk", self.file, name)

		if keep_idat:
			model.idat = idat
		elif idat:
			model.image = Image(decode_image(model.header, inflate(b"".join(idat), "IDAT")))
		return model


class Chunks:
	class Base:
		STRUCT = None

		@classmethod
		def parse(self, png, chunk):
			if chunk.length != self.STRUCT.size:
				raise ChunkParseError("invalid chunk length for chunk {}".format(self.__name__))
			return self.make(png, *self.STRUCT.unpack(chunk.data))

		@classmethod
		def build(self, header, value):
			raise NotImplementedError

	class IHDR(Base):
		STRUCT = struct.Struct(">2I5B")

		@classmethod
		def make(self, png, width, height, bit_depth, color_type, compression, filter_type, interlace):
			try:
				ColorType(color_type)
			except ValueError:
				raise ChunkParseError("invalid IHDR color type {}".format(color_type))
			if bit_depth not in (1, 2, 4, 8, 16):
				raise ChunkParseError("invalid IHDR bit depth {}".format(bit_depth))
			if compression != COMPRESSION_DEFLATE or filter_type != 0 or interlace > 1:
				raise ChunkParseError("unknown IHDR compression, filter or interlace method")
			return ImageHeader(width, height, bit_depth, color_type, interlace == 1)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.width, value.height, value.bit_depth, value.color_type, 0, 0, 1 if value.interlace else 0)

	class PLTE(Base):
		@classmethod
		def parse(self, png, chunk):
			if chunk.length % 3 != 0:
				raise ChunkParseError("PLTE chunk length is not divisible by 3.")
			if chunk.length // 3 > config.PALETTE_MAX_ENTRIES:
				raise ChunkParseError("PLTE chunk has more than {} entries".format(config.PALETTE_MAX_ENTRIES))
			return [RGB8.unpack(chunk.data[i:i + 3]) for i in range(0, chunk.length, 3)]

		@classmethod
		def build(self, header, value):
			return b"".join(RGB8.pack(*entry) for entry in value)

	class cHRM(Base):
		STRUCT = struct.Struct(">8I")

		@classmethod
		def make(self, png, *points):
			return Chromaticity(*points)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(*[n for (_, x, y) in value.points() for n in (x, y)])

	class gAMA(Base):
		STRUCT = INT

		@classmethod
		def make(self, png, gamma):
			return Gamma(gamma)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.value)

	class iCCP(Base):
		@classmethod
		def parse(self, png, chunk):
			data = BytesStructIO(chunk.data)
			name = data.read_latin1()
			if data.read_ubyte() != COMPRESSION_DEFLATE:
				raise ChunkParseError("unknown iCCP compression method")
			return ColorProfile(name, inflate(data.read_rest(), "iCCP"))

		@classmethod
		def build(self, header, value):
			data = BytesStructIO()
			data.write_string(value.name)
			data.write_ubyte(COMPRESSION_DEFLATE)
			data.write(zlib.compress(value.profile))
			return data.getvalue()

	class sBIT(Base):
		@classmethod
		def parse(self, png, chunk):
			fields = SAMPLE_FIELDS[png.meta.kind]
			if chunk.length != len(fields):
				raise ChunkParseError("invalid length for sBIT with color type {}".format(png.meta.kind))
			return SignificantBits(**dict(zip(fields, chunk.data)))

		@classmethod
		def build(self, header, value):
			return bytes(getattr(value, field) for field in SAMPLE_FIELDS[header.kind])

	class sRGB(Base):
		STRUCT = BYTE

		@classmethod
		def make(self, png, intent):
			return SRGB(intent)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.intent)

	class bKGD(Base):
		@classmethod
		def parse(self, png, chunk):
			kind = png.meta.kind
			if kind == ColorType.PALETTE:
				if chunk.length != 1:
					raise ChunkParseError("invalid length for bKGD with color type {}".format(kind))
				return Background(index=chunk.data[0])
			elif kind == ColorType.GRAYSCALE or kind == ColorType.LA:
				if chunk.length != 2:
					raise ChunkParseError("invalid length for bKGD with color type {}".format(kind))
				return Background(gray=SHORT.unpack(chunk.data)[0])
			else:
				if chunk.length != 6:
					raise ChunkParseError("invalid length for bKGD with color type {}".format(kind))
				return Background(*((None,) + RGB16.unpack(chunk.data)))

		@classmethod
		def build(self, header, value):
			if value.index is not None:
				return BYTE.pack(value.index)
			elif value.gray is not None:
				return SHORT.pack(value.gray)
			return RGB16.pack(value.red, value.green, value.blue)

	class hIST(Base):
		@classmethod
		def parse(self, png, chunk):
			if chunk.length % 2 != 0:
				raise ChunkParseError("hIST chunk length is not even")
			return Histogram([SHORT.unpack(chunk.data[i:i + 2])[0] for i in range(0, chunk.length, 2)])

		@classmethod
		def build(self, header, value):
			return b"".join(SHORT.pack(n) for n in value.frequencies)

	class tRNS(Base):
		@classmethod
		def parse(self, png, chunk):
			kind = png.meta.kind
			if kind == ColorType.GRAYSCALE:
				if chunk.length != 2:
					raise ChunkParseError("invalid length for tRNS with color type {}".format(kind))
				return Transparency(gray=SHORT.unpack(chunk.data)[0])
			elif kind == ColorType.RGB:
				if chunk.length != 6:
					raise ChunkParseError("invalid length for tRNS with color type {}".format(kind))
				return Transparency(*((None,) + RGB16.unpack(chunk.data)))
			# alpha images may not carry tRNS at all; keep the bytes so the dump can say so
			return Transparency(alphas=list(chunk.data))

		@classmethod
		def build(self, header, value):
			if value.alphas is not None:
				return bytes(value.alphas)
			elif value.gray is not None:
				return SHORT.pack(value.gray)
			return RGB16.pack(value.red, value.green, value.blue)

	class pHYs(Base):
		STRUCT = struct.Struct(">IIB")

		@classmethod
		def make(self, png, x, y, unit):
			return PhysicalDimensions(x, y, unit)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.x, value.y, value.unit)

	class sPLT(Base):
		ENTRY8 = struct.Struct(">BBBBH")
		ENTRY16 = struct.Struct(">HHHHH")

		@classmethod
		def parse(self, png, chunk):
			data = BytesStructIO(chunk.data)
			name = data.read_latin1()
			depth = data.read_ubyte()
			if depth == 8:
				entry = self.ENTRY8
			elif depth == 16:
				entry = self.ENTRY16
			else:
				raise ChunkParseError("invalid bit depth for sPLT {}".format(depth))

			rest = data.read_rest()
			if len(rest) % entry.size != 0:
				raise ChunkParseError("invalid length for sPLT")
			return SuggestedPalette(name, depth, [entry.unpack(rest[i:i + entry.size]) for i in range(0, len(rest), entry.size)])

		@classmethod
		def build(self, header, value):
			entry = self.ENTRY8 if value.depth == 8 else self.ENTRY16
			data = BytesStructIO()
			data.write_string(value.name)
			data.write_ubyte(value.depth)
			for e in value.entries:
				data.write(entry.pack(*e))
			return data.getvalue()

	class oFFs(Base):
		STRUCT = struct.Struct(">iiB")

		@classmethod
		def make(self, png, x, y, unit):
			return Offset(x, y, unit)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.x, value.y, value.unit)

	class pCAL(Base):
		LIMITS = struct.Struct(">iiBB")

		@classmethod
		def parse(self, png, chunk):
			data = BytesStructIO(chunk.data)
			name = data.read_latin1()
			(x0, x1, mapping, nparams) = self.LIMITS.unpack(data.read_exact(self.LIMITS.size))
			unit = data.read_latin1()
			params = data.read_rest().decode("latin-1").split("\x00") if nparams else []
			if len(params) != nparams:
				raise ChunkParseError("pCAL parameter count mismatch")
			return PixelCalibration(name, x0, x1, mapping, unit, params)

		@classmethod
		def build(self, header, value):
			data = BytesStructIO()
			data.write_string(value.name)
			data.write(self.LIMITS.pack(value.x0, value.x1, value.mapping, len(value.params)))
			data.write_string(value.unit)
			data.write("\x00".join(value.params).encode("latin-1"))
			return data.getvalue()

	class sCAL(Base):
		@classmethod
		def parse(self, png, chunk):
			data = BytesStructIO(chunk.data)
			unit = data.read_ubyte()
			width = data.read_latin1()
			height = data.read_rest().decode("latin-1")
			return Scale(unit, width, height)

		@classmethod
		def build(self, header, value):
			data = BytesStructIO()
			data.write_ubyte(value.unit)
			data.write_string(value.width)
			data.write(value.height.encode("latin-1"))
			return data.getvalue()

	class tIME(Base):
		STRUCT = struct.Struct(">H5B")

		@classmethod
		def make(self, png, *fields):
			return Timestamp(*fields)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.year, value.month, value.day, value.hour, value.minute, value.second)

	class tEXt(Base):
		@classmethod
		def parse(self, png, chunk):
			(name, rest) = chunk.data.split(b"\0", maxsplit=1)
			return TextChunk("tEXt", name.decode('latin-1'), rest.decode('latin-1'))

		@classmethod
		def build(self, header, value):
			return value.keyword.encode("latin-1") + b"\0" + value.text.encode("latin-1")

	class zTXt(tEXt):
		@classmethod
		def parse(self, png, chunk):
			(name, rest) = chunk.data.split(b"\0", maxsplit=1)
			if rest[:1] != BYTE.pack(COMPRESSION_DEFLATE):
				raise ChunkParseError("unknown zTXt compression method")
			return TextChunk("zTXt", name.decode('latin-1'), inflate(rest[1:], "zTXt").decode('latin-1'))

		@classmethod
		def build(self, header, value):
			return value.keyword.encode("latin-1") + b"\0" + BYTE.pack(COMPRESSION_DEFLATE) + zlib.compress(value.text.encode("latin-1"))

	class iTXt(Base):
		@classmethod
		def parse(self, png, chunk):
			data = BytesStructIO(chunk.data)
			keyword = data.read_latin1()
			compressed = data.read_bool()
			if data.read_ubyte() != COMPRESSION_DEFLATE:
				raise ChunkParseError("unknown iTXt compression method")
			language = data.read_string().decode('ascii')
			translated = data.read_string().decode('utf-8')
			text = data.read_rest()
			if compressed:
				text = inflate(text, "iTXt")
			return TextChunk("iTXt", keyword, text.decode('utf-8'), language, translated, compressed)

		@classmethod
		def build(self, header, value):
			text = value.text.encode("utf-8")
			data = BytesStructIO()
			data.write_string(value.keyword)
			data.write_bool(value.compressed)
			data.write_ubyte(COMPRESSION_DEFLATE)
			data.write_string(value.language or "", "ascii")
			data.write_string(value.translated or "", "utf-8")
			data.write(zlib.compress(text) if value.compressed else text)
			return data.getvalue()

	class gIFg(Base):
		STRUCT = struct.Struct(">BBH")

		@classmethod
		def make(self, png, disposal, input, delay):
			return GifControl(disposal, input, delay)

		@classmethod
		def build(self, header, value):
			return self.STRUCT.pack(value.disposal, value.input, value.delay)

	class gIFx(Base):
		@classmethod
		def parse(self, png, chunk):
			if chunk.length < 11:
				raise ChunkParseError("gIFx chunk is too short")
			return GifApplication(chunk.data[:8].decode("latin-1"), chunk.data[8:11].decode("latin-1"), chunk.data[11:])

		@classmethod
		def build(self, header, value):
			return value.identifier.encode("latin-1") + value.code.encode("latin-1") + value.data


def build_chunk(header, value):
	name = value.CHUNK
	if isinstance(value, PrivateChunk):
		return (name, value.data)
	handler = getattr(Chunks, name)
	return (name, handler.build(header, value))


#
# Raster encoding
#

def paeth(a, b, c):
	p = a + b - c
	pa = abs(p - a)
	pb = abs(p - b)
	pc = abs(p - c)
	if pa <= pb and pa <= pc:
		return a
	if pb <= pc:
		return b
	return c


def unfilter_scanline(filter_type, scanline, prev, bpp):
	out = bytearray(scanline)
	if filter_type == 0:
		return out
	elif filter_type == 1:
		for i in range(bpp, len(out)):
			out[i] = (out[i] + out[i - bpp]) & 0xFF
	elif filter_type == 2:
		for i in range(len(out)):
			out[i] = (out[i] + prev[i]) & 0xFF
	elif filter_type == 3:
		for i in range(len(out)):
			left = out[i - bpp] if i >= bpp else 0
			out[i] = (out[i] + ((left + prev[i]) >> 1)) & 0xFF
	elif filter_type == 4:
		for i in range(len(out)):
			left = out[i - bpp] if i >= bpp else 0
			up_left = prev[i - bpp] if i >= bpp else 0
			out[i] = (out[i] + paeth(left, prev[i], up_left)) & 0xFF
	else:
		raise ParseError("invalid filter type {}".format(filter_type))
	return out


def unpack_samples(packed, count, depth):
	if depth >= 8:
		return bytes(packed)
	per_byte = 8 // depth
	mask = (1 << depth) - 1
	out = bytearray(count)
	for i in range(count):
		shift = 8 - depth * (i % per_byte + 1)
		out[i] = (packed[i // per_byte] >> shift) & mask
	return bytes(out)


def pack_samples(samples, depth):
	if depth >= 8:
		return bytes(samples)
	per_byte = 8 // depth
	out = bytearray((len(samples) + per_byte - 1) // per_byte)
	for (i, sample) in enumerate(samples):
		out[i // per_byte] |= sample << (8 - depth * (i % per_byte + 1))
	return bytes(out)


def passes(header):
	"""Yield (x0, y0, dx, dy, width, height) for each non-empty pass."""
	plan = ADAM7 if header.interlace else [(0, 0, 1, 1)]
	for (x0, y0, dx, dy) in plan:
		width = (header.width - x0 + dx - 1) // dx
		height = (header.height - y0 + dy - 1) // dy
		if width > 0 and height > 0:
			yield (x0, y0, dx, dy, width, height)


def decode_image(header, raw):
	"""Turn inflated IDAT data into unpacked rows."""
	bits = header.channels * header.bit_depth
	bpp = max(1, bits // 8)
	pixel = header.pixel_bytes
	needed = sum(height * ((width * bits + 7) // 8 + 1) for (x0, y0, dx, dy, width, height) in passes(header))
	if len(raw) < needed:
		raise ParseError("not enough image data ({} of {} bytes)".format(len(raw), needed))
	rows = [bytearray(header.row_bytes) for _ in range(header.height)]
	pos = 0
	for (x0, y0, dx, dy, width, height) in passes(header):
		stride = (width * bits + 7) // 8
		prev = bytearray(stride)
		for j in range(height):
			line = unfilter_scanline(raw[pos], raw[pos + 1:pos + 1 + stride], prev, bpp)
			pos += stride + 1
			prev = line
			samples = unpack_samples(line, width * header.channels, header.bit_depth)
			row = rows[y0 + j * dy]
			for i in range(width):
				x = x0 + i * dx
				row[x * pixel:(x + 1) * pixel] = samples[i * pixel:(i + 1) * pixel]
	if pos != len(raw):
		logger.warning("%d bytes of extra image data", len(raw) - pos)
	return [bytes(row) for row in rows]


def encode_image(header, rows):
	"""Filter (type 0) and deflate unpacked rows."""
	pixel = header.pixel_bytes
	out = bytearray()
	for (x0, y0, dx, dy, width, height) in passes(header):
		for j in range(height):
			row = rows[y0 + j * dy]
			samples = b"".join(row[x * pixel:(x + 1) * pixel] for x in range(x0, header.width, dx))
			out.append(0)
			out += pack_samples(samples, header.bit_depth)
	return zlib.compress(bytes(out))


#
# Writing
#

class PNGWriter:
	"""
	Streaming PNG writer. Everything set before the first image write is
	emitted, in canonical order, by write_info(); whatever is set after
	it goes out in finish().
	"""

	def __init__(self, fp):
		self.fp = fp
		self.header = None
		self.palette = None
		self.ancillary = {}
		self.texts = []
		self.unknown = []
		self.info_written = False
		self.image_written = False

	def write_chunk(self, name, data):
		cid = name.encode("ascii")
		self.fp.write(INT.pack(len(data)))
		self.fp.write(cid)
		self.fp.write(data)
		self.fp.write(INT.pack(zlib.crc32(data, zlib.crc32(cid))))
		logger.debug("wrote %s chunk, %d bytes", name, len(data))

	def set_header(self, header):
		if header.width == 0 or header.height == 0:
			raise ConsistencyError("image width and height must be nonzero")
		if not header.valid_bit_depth():
			raise ConsistencyError("invalid bit depth {} for {} image".format(header.bit_depth, header.type_name))
		self.header = header

	def set_palette(self, entries):
		self.palette = list(entries)

	def set_ancillary(self, name, value):
		self.ancillary.setdefault(name, []).append(value)

	def set_text(self, texts):
		self.texts.extend(texts)

	def set_unknown(self, records):
		self.unknown.extend(records)

	def _write_pending(self, names):
		for name in names:
			for value in self.ancillary.pop(name, []):
				self.write_chunk(*build_chunk(self.header, value))

	def _write_queued(self):
		self._write_pending(PRE_PALETTE_ORDER + POST_PALETTE_ORDER)
		for value in self.unknown:
			self.write_chunk(*build_chunk(self.header, value))
		self.unknown = []
		self._write_pending(("tIME",))
		for value in self.texts:
			self.write_chunk(*build_chunk(self.header, value))
		self.texts = []

	def write_info(self):
		if self.info_written:
			return
		if self.header is None:
			raise ConsistencyError("no IHDR chunk")
		self.fp.write(PNG.MAGIC)
		self.write_chunk("IHDR", Chunks.IHDR.build(self.header, self.header))
		self._write_pending(PRE_PALETTE_ORDER)
		if self.palette is not None:
			self.write_chunk("PLTE", Chunks.PLTE.build(self.header, self.palette))
		self._write_queued()
		self.info_written = True

	def write_raw_chunk(self, name, data):
		self.write_info()
		self.write_chunk(name, data)
		if name == "IDAT":
			self.image_written = True

	def write_image(self, rows):
		self.write_info()
		if len(rows) != self.header.height or any(len(row) != self.header.row_bytes for row in rows):
			raise ConsistencyError("image data does not match the IHDR dimensions")
		data = encode_image(self.header, rows)
		for i in range(0, len(data), config.IDAT_SIZE):
			self.write_chunk("IDAT", data[i:i + config.IDAT_SIZE])
		self.image_written = True

	def finish(self):
		if self.header is None:
			raise ConsistencyError("no IHDR chunk")
		if self.header.has_palette and self.palette is None:
			raise ConsistencyError("palette property set, but no PLTE chunk found")
		if not self.image_written:
			raise ConsistencyError("no image data")
		self._write_queued()
		self.write_chunk("IEND", b"")


def save(model, fp):
	"""Write a complete ChunkModel as a PNG."""
	if model.header is None:
		raise ConsistencyError("no IHDR chunk")
	writer = PNGWriter(fp)
	writer.set_header(model.header)
	if model.palette is not None:
		writer.set_palette(model.palette)
	for (name, value) in model.ancillary.items():
		writer.set_ancillary(name, value)
	for value in model.suggested:
		writer.set_ancillary("sPLT", value)
	writer.set_unknown(model.unknown_chunks(False))
	writer.set_text(model.texts)
	if model.image is not None:
		writer.write_image(model.image.rows)
	for block in model.idat:
		writer.write_raw_chunk("IDAT", block)
	writer.set_unknown(model.unknown_chunks(True))
	writer.finish()


def load(fp, file=None, keep_idat=False):
	png = PNG(fp, file)
	return (png.load(keep_idat), png.problems)
