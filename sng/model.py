# coding=utf-8

from collections import Counter
from enum import Enum


class ColorType(Enum):
	GRAYSCALE = 0
	RGB = 2
	PALETTE = 3
	LA = 4
	RGBA = 6


COLOR_MASK_PALETTE = 1
COLOR_MASK_COLOR = 2
COLOR_MASK_ALPHA = 4

VALID_BIT_DEPTHS = {
	ColorType.GRAYSCALE: [1, 2, 4, 8, 16],
	ColorType.RGB: [8, 16],
	ColorType.PALETTE: [1, 2, 4, 8],
	ColorType.LA: [8, 16],
	ColorType.RGBA: [8, 16]
}

CHANNELS = {
	ColorType.GRAYSCALE: 1,
	ColorType.RGB: 3,
	ColorType.PALETTE: 1,
	ColorType.LA: 2,
	ColorType.RGBA: 4
}

IMAGE_TYPE_NAMES = {
	ColorType.GRAYSCALE: "grayscale",
	ColorType.RGB: "RGB",
	ColorType.PALETTE: "colormap",
	ColorType.LA: "grayscale+alpha",
	ColorType.RGBA: "RGB+alpha"
}

# sample fields carried by sBIT for each colour type
SAMPLE_FIELDS = {
	ColorType.GRAYSCALE: ("gray",),
	ColorType.RGB: ("red", "green", "blue"),
	ColorType.PALETTE: ("red", "green", "blue"),
	ColorType.LA: ("gray", "alpha"),
	ColorType.RGBA: ("red", "green", "blue", "alpha")
}


PRE_PALETTE_ORDER = ("cHRM", "gAMA", "iCCP", "sBIT", "sRGB")
POST_PALETTE_ORDER = ("bKGD", "hIST", "tRNS", "pHYs", "sPLT", "oFFs", "pCAL", "sCAL")
TEXT_KINDS = ("tEXt", "zTXt", "iTXt")


class Record:
	CHUNK = None

	def __eq__(self, other):
		return type(self) is type(other) and self.__dict__ == other.__dict__

	def __str__(self):
		return str(self.__dict__)

	def __repr__(self):
		return "<{} {}>".format(type(self).__name__, self)


class ImageHeader(Record):
	CHUNK = "IHDR"

	def __init__(self, width=0, height=0, bit_depth=8, color_type=0, interlace=False):
		self.width = width
		self.height = height
		self.bit_depth = bit_depth
		self.color_type = color_type
		self.interlace = interlace

	@property
	def kind(self):
		try:
			return ColorType(self.color_type)
		except ValueError:
			return None

	@property
	def has_color(self):
		return bool(self.color_type & COLOR_MASK_COLOR)

	@property
	def has_alpha(self):
		return bool(self.color_type & COLOR_MASK_ALPHA)

	@property
	def has_palette(self):
		return bool(self.color_type & COLOR_MASK_PALETTE)

	@property
	def type_name(self):
		return IMAGE_TYPE_NAMES.get(self.kind, "undefined type")

	@property
	def channels(self):
		return CHANNELS.get(self.kind, 1)

	@property
	def sample_bytes(self):
		return 2 if self.bit_depth == 16 else 1

	@property
	def pixel_bytes(self):
		return self.channels * self.sample_bytes

	@property
	def row_bytes(self):
		# rows are held unpacked: one byte per sample below depth 8
		return self.width * self.pixel_bytes

	@property
	def max_sample(self):
		return (1 << self.bit_depth) - 1

	def valid_bit_depth(self):
		return self.kind is not None and self.bit_depth in VALID_BIT_DEPTHS[self.kind]


class Chromaticity(Record):
	"""White point and primaries, in PNG's 1/100000 units."""
	CHUNK = "cHRM"

	def __init__(self, white_x, white_y, red_x, red_y, green_x, green_y, blue_x, blue_y):
		self.white_x = white_x
		self.white_y = white_y
		self.red_x = red_x
		self.red_y = red_y
		self.green_x = green_x
		self.green_y = green_y
		self.blue_x = blue_x
		self.blue_y = blue_y

	def points(self):
		return [
			("white", self.white_x, self.white_y),
			("red", self.red_x, self.red_y),
			("green", self.green_x, self.green_y),
			("blue", self.blue_x, self.blue_y),
		]


class Gamma(Record):
	CHUNK = "gAMA"

	def __init__(self, value):
		self.value = value


class ColorProfile(Record):
	CHUNK = "iCCP"

	def __init__(self, name, profile):
		self.name = name
		self.profile = profile


class SignificantBits(Record):
	CHUNK = "sBIT"

	def __init__(self, gray=None, red=None, green=None, blue=None, alpha=None):
		self.gray = gray
		self.red = red
		self.green = green
		self.blue = blue
		self.alpha = alpha


class Intent(Enum):
	PERCEPTUAL = 0
	RELATIVE_COLORIMETRIC = 1
	SATURATION = 2
	ABSOLUTE_COLORIMETRIC = 3


INTENT_NAMES = {
	Intent.PERCEPTUAL: "perceptual",
	Intent.RELATIVE_COLORIMETRIC: "relative colorimetric",
	Intent.SATURATION: "saturation-preserving",
	Intent.ABSOLUTE_COLORIMETRIC: "absolute colorimetric"
}


class SRGB(Record):
	CHUNK = "sRGB"

	def __init__(self, intent):
		self.intent = intent


class Background(Record):
	CHUNK = "bKGD"

	def __init__(self, gray=None, red=None, green=None, blue=None, index=None):
		self.gray = gray
		self.red = red
		self.green = green
		self.blue = blue
		self.index = index


class Histogram(Record):
	CHUNK = "hIST"

	def __init__(self, frequencies):
		self.frequencies = frequencies


class Transparency(Record):
	CHUNK = "tRNS"

	def __init__(self, gray=None, red=None, green=None, blue=None, alphas=None):
		self.gray = gray
		self.red = red
		self.green = green
		self.blue = blue
		self.alphas = alphas


class Unit(Enum):
	UNKNOWN = 0
	METER = 1


class PhysicalDimensions(Record):
	CHUNK = "pHYs"

	def __init__(self, x, y, unit=0):
		self.x = x
		self.y = y
		self.unit = unit


class SuggestedPalette(Record):
	"""Entries are (red, green, blue, alpha, frequency) tuples."""
	CHUNK = "sPLT"

	def __init__(self, name, depth, entries):
		self.name = name
		self.depth = depth
		self.entries = entries


class OffsetUnit(Enum):
	PIXEL = 0
	MICROMETER = 1


class Offset(Record):
	CHUNK = "oFFs"

	def __init__(self, x, y, unit=0):
		self.x = x
		self.y = y
		self.unit = unit


class Equation(Enum):
	LINEAR = 0
	EULER = 1
	EXPONENTIAL = 2
	HYPERBOLIC = 3


EQUATION_PARAMETERS = {
	Equation.LINEAR: 2,
	Equation.EULER: 3,
	Equation.EXPONENTIAL: 3,
	Equation.HYPERBOLIC: 4
}


class PixelCalibration(Record):
	CHUNK = "pCAL"

	def __init__(self, name, x0, x1, mapping, unit, params):
		self.name = name
		self.x0 = x0
		self.x1 = x1
		self.mapping = mapping
		self.unit = unit
		self.params = params


class ScaleUnit(Enum):
	METER = 1
	RADIAN = 2


class Scale(Record):
	"""Width and height are kept as the decimal strings PNG stores."""
	CHUNK = "sCAL"

	def __init__(self, unit, width, height):
		self.unit = unit
		self.width = width
		self.height = height


class Timestamp(Record):
	CHUNK = "tIME"

	def __init__(self, year, month, day, hour, minute, second):
		self.year = year
		self.month = month
		self.day = day
		self.hour = hour
		self.minute = minute
		self.second = second


class TextChunk(Record):
	def __init__(self, kind, keyword, text, language=None, translated=None, compressed=False):
		self.kind = kind
		self.keyword = keyword
		self.text = text
		self.language = language
		self.translated = translated
		self.compressed = compressed

	@property
	def CHUNK(self):
		return self.kind


class PrivateChunk(Record):
	def __init__(self, name, data, after_image=False):
		self.name = name
		self.data = data
		self.after_image = after_image

	@property
	def CHUNK(self):
		return self.name


class GifControl(Record):
	CHUNK = "gIFg"

	def __init__(self, disposal, input, delay, after_image=False):
		self.disposal = disposal
		self.input = input
		self.delay = delay
		self.after_image = after_image


class GifApplication(Record):
	CHUNK = "gIFx"

	def __init__(self, identifier, code, data, after_image=False):
		self.identifier = identifier
		self.code = code
		self.data = data
		self.after_image = after_image


class Image(Record):
	CHUNK = "IMAGE"

	def __init__(self, rows):
		self.rows = rows


class ChunkModel:
	"""
	One image container, as parsed from SNG or read from PNG.

	Non-repeatable ancillary chunks live in `ancillary`, keyed by chunk
	name. `counts` and `last_chunk` record what has been seen so far and
	are not part of the model's value.
	"""

	FIELDS = ("header", "palette", "ancillary", "suggested", "texts", "unknown", "image", "idat")
	SINGLETONS = ("IHDR", "PLTE", "IMAGE", "tIME") + PRE_PALETTE_ORDER + tuple(name for name in POST_PALETTE_ORDER if name != "sPLT")

	def __init__(self):
		self.header = None
		self.palette = None
		self.ancillary = {}
		self.suggested = []
		self.texts = []
		self.unknown = []
		self.image = None
		self.idat = []

		self.counts = Counter()
		self.last_chunk = None

	def seen(self, name):
		return self.counts[name] > 0

	def image_seen(self):
		return self.seen("IDAT") or self.seen("IMAGE")

	def record(self, name):
		self.counts[name] += 1
		self.last_chunk = name

	def get(self, name):
		return self.ancillary.get(name)

	def add(self, name, value):
		"""File a chunk's value in the slot its chunk type uses."""
		if name == "IHDR":
			self.header = value
		elif name == "PLTE":
			self.palette = value
		elif name == "IMAGE":
			self.image = value
		elif name == "IDAT":
			self.idat.append(value)
		elif name == "sPLT":
			self.suggested.append(value)
		elif name in TEXT_KINDS:
			self.texts.append(value)
		elif name in self.SINGLETONS:
			self.ancillary[name] = value
		else:
			self.unknown.append(value)

	def unknown_chunks(self, after_image):
		return [chunk for chunk in self.unknown if chunk.after_image == after_image]

	def __eq__(self, other):
		if not isinstance(other, ChunkModel):
			return NotImplemented
		return all(getattr(self, field) == getattr(other, field) for field in self.FIELDS)

	def __repr__(self):
		return "<ChunkModel {}>".format({field: getattr(self, field) for field in self.FIELDS})
