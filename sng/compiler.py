# coding=utf-8

"""
SNG -> PNG. The Compiler reads chunk after chunk, checks each against the
chunk property table and builds a ChunkModel; with a PNGWriter attached it
streams the image out as it goes.
"""

import logging

import chardet

from sng import chunks, config, datacodec, tokenizer
from sng.datacodec import Format
from sng.errors import ConsistencyError, GrammarError, ValueRangeError
from sng.model import (
	ChunkModel, ImageHeader, Chromaticity, Gamma, ColorProfile, SignificantBits, SRGB,
	Background, Histogram, Transparency, PhysicalDimensions, SuggestedPalette, Offset,
	PixelCalibration, Scale, Timestamp, TextChunk, PrivateChunk, GifControl, GifApplication, Image,
	Equation, EQUATION_PARAMETERS, OffsetUnit, ScaleUnit, Unit, SAMPLE_FIELDS, TEXT_KINDS,
	COLOR_MASK_ALPHA, COLOR_MASK_COLOR, COLOR_MASK_PALETTE,
)
from sng.png import PNG, PNGWriter
from sng.tokenizer import ParserContext, Tokenizer

logger = logging.getLogger(__name__)


def decode_bytes(b, threshold=0.50, fallback="latin-1"):
	encoding = chardet.detect(b)
	if encoding['confidence'] > threshold:
		try:
			return b.decode(encoding['encoding'])
		except (LookupError, UnicodeDecodeError):
			logger.debug("guessed encoding %s does not fit, using %s", encoding['encoding'], fallback)

	return b.decode(fallback)


class Compiler:
	def __init__(self, text, file="stdin", writer=None):
		self.ctx = ParserContext(text, file)
		self.tokens = Tokenizer(self.ctx)
		self.writer = writer
		self.model = ChunkModel()
		self.chunk = None

	#
	# Token helpers for the body parsers
	#

	def error(self, message, token=None, cls=GrammarError):
		return self.ctx.error(cls, message, token)

	def unexpected(self, token):
		return self.error("bad token {} in {} chunk".format(token, self.chunk), token)

	def token(self):
		token = self.tokens.next_token()
		if token is None:
			self.ctx.at_eof()
		return token

	def next(self):
		token = self.token()
		if token is None:
			raise self.error("unexpected EOF in {} chunk".format(self.chunk))
		return token

	def expect(self, char):
		token = self.next()
		if not token.is_punct(char):
			raise self.error("expected {!r} in {} chunk, found {}".format(char, self.chunk, token), token)

	def close(self):
		self.expect("}")

	def fields(self):
		"""Yield the tokens of a chunk body up to the closing brace."""
		while True:
			token = self.next()
			if token.is_punct("}"):
				return
			yield token

	def closes(self):
		token = self.tokens.peek()
		return token is not None and token.is_punct("}")

	def quoted_follows(self):
		token = self.tokens.peek()
		return token is not None and token.quoted

	def number(self, validator):
		return validator(self.token(), self.ctx)

	def group(self, validator, count):
		"""A parenthesized tuple such as (r, g, b)."""
		self.expect("(")
		values = tuple(self.number(validator) for _ in range(count))
		self.expect(")")
		return values

	def keyword(self):
		return tokenizer.keyword(self.token(), self.ctx)

	def text(self, what="string"):
		"""A string field; adjacent quoted pieces are joined."""
		token = self.token()
		value = tokenizer.string(token, self.ctx, what)
		if token.quoted:
			while self.quoted_follows():
				value += tokenizer.string(self.next(), self.ctx, what)
		return value

	def word(self, choices):
		token = self.next()
		if token.quoted or token.value not in choices:
			raise self.error("expected one of {} in {} chunk, found {}".format(", ".join(choices), self.chunk, token), token)
		return choices[token.value]

	def data(self):
		"""Read a data segment; it runs up to the closing brace of the body."""
		token = self.next()
		if token.quoted:
			raws = [token.value]
			while self.quoted_follows():
				raws.append(self.next().value)
			return b"".join(datacodec.unescape_bytes(raw) for raw in raws)

		for fmt in (Format.BASE64, Format.HEX):
			if token.value == fmt.value:
				break
		else:
			raise self.error("expected a data segment in {} chunk, found {}".format(self.chunk, token), token)

		words = []
		while not self.closes():
			token = self.next()
			if token.quoted or token.value in Tokenizer.PUNCTUATION:
				raise self.unexpected(token)
			words.append(token.value)
		return datacodec.decode(fmt, "".join(words))

	@property
	def header(self):
		if self.model.header is None:
			raise self.error("IHDR chunk must come first")
		return self.model.header

	#
	# Main loop
	#

	def chunk_name(self, token):
		if token.quoted:
			raise self.error("expected a chunk name, found {}".format(token), token)
		if token.value == chunks.PRIVATE:
			self.chunk = chunks.PRIVATE
			name = tokenizer.string(self.next(), self.ctx, "private chunk name")
			if len(name) != 4 or not all(ord(c) in PNG.VALID_ASCII for c in name):
				raise self.error("invalid private chunk name {!r}".format(name), token)
			if chunks.lookup(name) is not None or name == "IEND":
				raise self.error("{} is not a private chunk".format(name), token)
			return name
		if chunks.lookup(token.value) is None:
			raise self.error("unknown chunk type {}".format(token), token)
		return token.value

	def compile(self):
		logger.debug("%s: compiling", self.ctx.file)
		while True:
			token = self.token()
			if token is None:
				break
			name = self.chunk_name(token)
			self.chunk = name
			self.expect("{")

			reason = chunks.check(self.model, name)
			if reason:
				raise self.error(reason, token)

			body = getattr(Bodies, name, Bodies.private)
			value = body.parse(self)
			after_image = self.model.image_seen()
			self.model.record(name)
			self.add(name, value, after_image)
			logger.debug("%s: compiled %s chunk", self.ctx.file, name)

		reasons = chunks.final_check(self.model)
		if reasons:
			raise self.error(reasons[0], cls=ConsistencyError)

		if self.writer is not None:
			self.flush_texts()
			self.writer.finish()
		return self.model

	def add(self, name, value, after_image):
		model = self.model
		if hasattr(value, "after_image"):
			value.after_image = after_image
		model.add(name, value)

		writer = self.writer
		if writer is None:
			return
		if name == "IHDR":
			writer.set_header(value)
		elif name == "PLTE":
			writer.set_palette(value)
		elif name in TEXT_KINDS:
			self.ctx.text_queue.append(value)
		elif name == "IDAT":
			self.flush_texts()
			writer.write_raw_chunk("IDAT", value)
		elif name == "IMAGE":
			self.flush_texts()
			writer.write_image(value.rows)
		elif name in model.SINGLETONS or name == "sPLT":
			writer.set_ancillary(name, value)
		else:
			writer.set_unknown([value])

	def flush_texts(self):
		# the writer takes ownership of whatever is queued
		if self.ctx.text_queue:
			self.writer.set_text(self.ctx.text_queue)
		self.ctx.text_queue = []


#
# Chunk bodies. Each parse() starts after the opening brace and consumes
# the closing one.
#

def _check_samples(engine, record, fields, limit):
	for field in fields:
		value = getattr(record, field)
		if value is None:
			raise engine.error("{} chunk needs a {} value for {} images".format(engine.chunk, field, engine.header.type_name), cls=ConsistencyError)
		if value > limit:
			raise engine.error("{} {} value {} is out of range".format(engine.chunk, field, value), cls=ValueRangeError)


def _only(engine, record, fields):
	for (field, value) in record.__dict__.items():
		if value is not None and field not in fields:
			raise engine.error("{} field {} not allowed in a {} image".format(engine.chunk, field, engine.header.type_name))


class Bodies:
	class IHDR:
		NOISE = ("using", "uses", "with", "grayscale")
		FLAGS = {
			"color": COLOR_MASK_COLOR,
			"palette": COLOR_MASK_PALETTE | COLOR_MASK_COLOR,
			"alpha": COLOR_MASK_ALPHA,
		}

		@classmethod
		def parse(self, engine):
			header = ImageHeader()
			for token in engine.fields():
				if token.value == "width":
					header.width = engine.number(tokenizer.png_uint31)
				elif token.value == "height":
					header.height = engine.number(tokenizer.png_uint31)
				elif token.value == "bitdepth":
					header.bit_depth = engine.number(tokenizer.byte)
				elif token.value in self.FLAGS:
					header.color_type |= self.FLAGS[token.value]
				elif token.value == "interlace":
					header.interlace = True
				elif token.value not in self.NOISE:
					raise engine.unexpected(token)

			if header.width == 0 or header.height == 0:
				raise engine.error("invalid IHDR image dimensions ({}x{})".format(header.width, header.height), cls=ValueRangeError)
			if header.kind is None:
				raise engine.error("invalid IHDR color type {}".format(header.color_type), cls=ValueRangeError)
			if not header.valid_bit_depth():
				raise engine.error("invalid IHDR bit depth ({}) for {} image".format(header.bit_depth, header.type_name), cls=ValueRangeError)
			return header

	class PLTE:
		@classmethod
		def parse(self, engine):
			entries = []
			while not engine.closes():
				entries.append(engine.group(tokenizer.byte, 3))
			engine.close()
			if not 0 < len(entries) <= config.PALETTE_MAX_ENTRIES:
				raise engine.error("PLTE chunk must have 1 to {} entries".format(config.PALETTE_MAX_ENTRIES), cls=ConsistencyError)
			if len(entries) > 1 << engine.header.bit_depth:
				raise engine.error("too many PLTE entries for bit depth {}".format(engine.header.bit_depth), cls=ConsistencyError)
			return entries

	class cHRM:
		POINTS = ("white", "red", "green", "blue")

		@classmethod
		def parse(self, engine):
			points = {}
			for token in engine.fields():
				if token.value not in self.POINTS:
					raise engine.unexpected(token)
				points[token.value] = engine.group(tokenizer.fixed_point, 2)
			for name in self.POINTS:
				if name not in points:
					raise engine.error("cHRM chunk has no {} point".format(name))
			return Chromaticity(*[n for name in self.POINTS for n in points[name]])

	class gAMA:
		@classmethod
		def parse(self, engine):
			value = engine.number(tokenizer.fixed_point)
			engine.close()
			if value == 0:
				raise engine.error("gAMA value must be positive", cls=ValueRangeError)
			return Gamma(value)

	class iCCP:
		@classmethod
		def parse(self, engine):
			(name, profile) = (None, None)
			while not engine.closes():
				token = engine.next()
				if token.value == "name":
					name = engine.keyword()
				elif token.value == "profile":
					profile = engine.data()
				else:
					raise engine.unexpected(token)
			engine.close()
			if name is None or profile is None:
				raise engine.error("iCCP chunk needs a name and a profile")
			return ColorProfile(name, profile)

	class sBIT:
		@classmethod
		def parse(self, engine):
			header = engine.header
			bits = SignificantBits()
			for token in engine.fields():
				if token.value not in ("gray", "red", "green", "blue", "alpha"):
					raise engine.unexpected(token)
				value = engine.number(tokenizer.byte)
				if value == 0:
					raise engine.error("sBIT {} value must be positive".format(token.value), token, ValueRangeError)
				setattr(bits, token.value, value)
			fields = SAMPLE_FIELDS[header.kind]
			_only(engine, bits, fields)
			_check_samples(engine, bits, fields, 8 if header.has_palette else header.bit_depth)
			return bits

	class sRGB:
		@classmethod
		def parse(self, engine):
			intent = engine.number(tokenizer.byte)
			engine.close()
			if intent > 3:
				raise engine.error("sRGB invalid rendering intent {}".format(intent), cls=ValueRangeError)
			return SRGB(intent)

	class bKGD:
		@classmethod
		def parse(self, engine):
			header = engine.header
			background = Background()
			for token in engine.fields():
				if token.value == "index":
					background.index = engine.number(tokenizer.byte)
				elif token.value in ("gray", "red", "green", "blue"):
					setattr(background, token.value, engine.number(tokenizer.uint16))
				else:
					raise engine.unexpected(token)

			if header.has_palette:
				_only(engine, background, ("index",))
				if background.index is None:
					raise engine.error("bKGD chunk needs an index for colormap images", cls=ConsistencyError)
				if engine.model.palette is not None and background.index >= len(engine.model.palette):
					raise engine.error("bKGD index {} is outside the palette".format(background.index), cls=ValueRangeError)
			else:
				fields = ("red", "green", "blue") if header.has_color else ("gray",)
				_only(engine, background, fields)
				_check_samples(engine, background, fields, header.max_sample)
			return background

	class hIST:
		@classmethod
		def parse(self, engine):
			frequencies = []
			while not engine.closes():
				frequencies.append(engine.number(tokenizer.uint16))
			engine.close()
			if len(frequencies) != len(engine.model.palette):
				raise engine.error("hIST has {} entries but PLTE has {}".format(len(frequencies), len(engine.model.palette)), cls=ConsistencyError)
			return Histogram(frequencies)

	class tRNS:
		@classmethod
		def parse(self, engine):
			header = engine.header
			if header.has_alpha:
				raise engine.error("tRNS chunk illegal with {} images".format(header.type_name))
			transparency = Transparency()
			if header.has_palette:
				alphas = []
				while not engine.closes():
					alphas.append(engine.number(tokenizer.byte))
				engine.close()
				if engine.model.palette is not None and len(alphas) > len(engine.model.palette):
					raise engine.error("tRNS has more entries than PLTE", cls=ConsistencyError)
				transparency.alphas = alphas
				return transparency

			for token in engine.fields():
				if token.value not in ("gray", "red", "green", "blue"):
					raise engine.unexpected(token)
				setattr(transparency, token.value, engine.number(tokenizer.uint16))
			fields = ("red", "green", "blue") if header.has_color else ("gray",)
			_only(engine, transparency, fields)
			_check_samples(engine, transparency, fields, header.max_sample)
			return transparency

	class pHYs:
		@classmethod
		def parse(self, engine):
			dimensions = PhysicalDimensions(None, None, Unit.UNKNOWN.value)
			for token in engine.fields():
				if token.value == "xpixels":
					dimensions.x = engine.number(tokenizer.png_uint31)
				elif token.value == "ypixels":
					dimensions.y = engine.number(tokenizer.png_uint31)
				elif token.value == "per":
					dimensions.unit = engine.word({"meter": Unit.METER.value})
				else:
					raise engine.unexpected(token)
			if dimensions.x is None or dimensions.y is None:
				raise engine.error("pHYs chunk needs xpixels and ypixels")
			return dimensions

	class sPLT:
		@classmethod
		def parse(self, engine):
			(name, depth, entries) = (None, None, [])
			while not engine.closes():
				token = engine.next()
				if token.is_punct("("):
					if depth is None:
						raise engine.error("sPLT depth must come before the entries", token)
					engine.tokens.unget(token)
					sample = tokenizer.byte if depth == 8 else tokenizer.uint16
					(r, g, b) = engine.group(sample, 3)
					entries.append((r, g, b, engine.number(sample), engine.number(tokenizer.uint16)))
				elif token.value == "name":
					name = engine.keyword()
				elif token.value == "depth":
					depth = engine.number(tokenizer.byte)
					if depth not in (8, 16):
						raise engine.error("sPLT depth must be 8 or 16", token, ValueRangeError)
				else:
					raise engine.unexpected(token)
			engine.close()
			if name is None or depth is None:
				raise engine.error("sPLT chunk needs a name and a depth")
			if len(entries) > config.PALETTE_MAX_ENTRIES:
				raise engine.error("sPLT chunk has more than {} entries".format(config.PALETTE_MAX_ENTRIES), cls=ConsistencyError)
			return SuggestedPalette(name, depth, entries)

	class oFFs:
		UNITS = {"pixels": OffsetUnit.PIXEL.value, "micrometers": OffsetUnit.MICROMETER.value}

		@classmethod
		def parse(self, engine):
			offset = Offset(None, None, OffsetUnit.PIXEL.value)
			for token in engine.fields():
				if token.value == "xoffset":
					offset.x = engine.number(tokenizer.int32)
				elif token.value == "yoffset":
					offset.y = engine.number(tokenizer.int32)
				elif token.value == "unit":
					offset.unit = engine.word(self.UNITS)
				else:
					raise engine.unexpected(token)
			if offset.x is None or offset.y is None:
				raise engine.error("oFFs chunk needs xoffset and yoffset")
			return offset

	class pCAL:
		MAPPINGS = {equation.name.lower(): equation.value for equation in Equation}

		@classmethod
		def parse(self, engine):
			calibration = PixelCalibration(None, None, None, None, None, [])
			while not engine.closes():
				token = engine.next()
				if token.value == "name":
					calibration.name = engine.keyword()
				elif token.value == "x0":
					calibration.x0 = engine.number(tokenizer.int32)
				elif token.value == "x1":
					calibration.x1 = engine.number(tokenizer.int32)
				elif token.value == "mapping":
					calibration.mapping = engine.word(self.MAPPINGS)
				elif token.value == "unit":
					calibration.unit = engine.text("unit")
				elif token.value == "parameters":
					while not engine.closes():
						token = engine.next()
						text = tokenizer.string(token, engine.ctx, "parameter")
						calibration.params.append(tokenizer.real(text, engine.ctx))
				else:
					raise engine.unexpected(token)
			engine.close()

			if None in (calibration.name, calibration.x0, calibration.x1, calibration.mapping, calibration.unit):
				raise engine.error("pCAL chunk needs name, x0, x1, mapping and unit")
			wanted = EQUATION_PARAMETERS[Equation(calibration.mapping)]
			if len(calibration.params) != wanted:
				raise engine.error("pCAL {} mapping takes {} parameters".format(Equation(calibration.mapping).name.lower(), wanted), cls=ConsistencyError)
			return calibration

	class sCAL:
		UNITS = {"meter": ScaleUnit.METER.value, "radian": ScaleUnit.RADIAN.value}

		@classmethod
		def parse(self, engine):
			scale = Scale(None, None, None)
			for token in engine.fields():
				if token.value == "unit":
					scale.unit = engine.word(self.UNITS)
				elif token.value in ("width", "height"):
					setattr(scale, token.value, tokenizer.real(engine.token(), engine.ctx, positive=True))
				else:
					raise engine.unexpected(token)
			if None in (scale.unit, scale.width, scale.height):
				raise engine.error("sCAL chunk needs unit, width and height")
			return scale

	class tIME:
		FIELDS = (
			("year", 0, 0xFFFF),
			("month", 1, 12),
			("day", 1, 31),
			("hour", 0, 23),
			("minute", 0, 59),
			("second", 0, 60),
		)

		@classmethod
		def parse(self, engine):
			values = {}
			limits = {name: (low, high) for (name, low, high) in self.FIELDS}
			for token in engine.fields():
				if token.value not in limits:
					raise engine.unexpected(token)
				value = engine.number(tokenizer.uint16)
				(low, high) = limits[token.value]
				if not low <= value <= high:
					raise engine.error("tIME {} {} is out of range".format(token.value, value), token, ValueRangeError)
				values[token.value] = value
			for (name, low, high) in self.FIELDS:
				if name not in values:
					raise engine.error("tIME chunk has no {}".format(name))
			return Timestamp(**values)

	class tEXt:
		@classmethod
		def parse(self, engine):
			text = TextChunk(engine.chunk, None, "")
			for token in engine.fields():
				if token.value == "keyword":
					text.keyword = engine.keyword()
				elif token.value == "text":
					text.text = engine.text("text")
				else:
					raise engine.unexpected(token)
			if text.keyword is None:
				raise engine.error("{} chunk has no keyword".format(engine.chunk))
			try:
				text.text.encode("latin-1")
			except UnicodeEncodeError:
				raise engine.error("{} text must be Latin-1; use iTXt".format(engine.chunk), cls=ValueRangeError)
			return text

	class zTXt(tEXt):
		pass

	class iTXt:
		@classmethod
		def parse(self, engine):
			text = TextChunk("iTXt", None, "", "", "")
			for token in engine.fields():
				if token.value == "keyword":
					text.keyword = engine.keyword()
				elif token.value == "text":
					text.text = engine.text("text")
				elif token.value == "language":
					text.language = engine.text("language tag")
				elif token.value == "translated":
					text.translated = engine.text("translated keyword")
				elif token.value == "compressed":
					text.compressed = True
				else:
					raise engine.unexpected(token)
			if text.keyword is None:
				raise engine.error("iTXt chunk has no keyword")
			return text

	class IDAT:
		@classmethod
		def parse(self, engine):
			data = engine.data()
			engine.close()
			return data

	class IMAGE:
		@classmethod
		def parse(self, engine):
			header = engine.header
			token = engine.next()
			if token.quoted or token.value != "pixels":
				engine.tokens.unget(token)
			data = engine.data()
			engine.close()

			if len(data) != header.height * header.row_bytes:
				raise engine.error("IMAGE has {} bytes of pixel data, {}x{} {} needs {}".format(
					len(data), header.width, header.height, header.type_name, header.height * header.row_bytes), cls=ConsistencyError)
			if header.has_palette:
				if engine.model.palette is None:
					raise engine.error("PLTE chunk must come before image data", cls=ConsistencyError)
				limit = len(engine.model.palette) - 1
			elif header.bit_depth < 8:
				limit = header.max_sample
			else:
				limit = 0xFF
			if data and max(data) > limit:
				raise engine.error("IMAGE sample value {} is out of range".format(max(data)), cls=ValueRangeError)
			return Image([data[i:i + header.row_bytes] for i in range(0, len(data), header.row_bytes)])

	class gIFg:
		@classmethod
		def parse(self, engine):
			control = GifControl(0, 0, 0)
			for token in engine.fields():
				if token.value in ("disposal", "input"):
					setattr(control, token.value, engine.number(tokenizer.byte))
				elif token.value == "delay":
					control.delay = engine.number(tokenizer.uint16)
				else:
					raise engine.unexpected(token)
			return control

	class gIFx:
		@classmethod
		def parse(self, engine):
			application = GifApplication(None, None, b"")
			while not engine.closes():
				token = engine.next()
				if token.value == "identifier":
					application.identifier = engine.text("identifier")
				elif token.value == "code":
					application.code = engine.text("authentication code")
				elif token.value == "data":
					application.data = engine.data()
				else:
					raise engine.unexpected(token)
			engine.close()
			if application.identifier is None or len(application.identifier) != 8:
				raise engine.error("gIFx identifier must be 8 characters", cls=ValueRangeError)
			if application.code is None or len(application.code) != 3:
				raise engine.error("gIFx code must be 3 characters", cls=ValueRangeError)
			return application

	class private:
		@classmethod
		def parse(self, engine):
			data = engine.data()
			engine.close()
			return PrivateChunk(engine.chunk, data)


def compile_sng(source, out=None, file="stdin"):
	"""
	Compile SNG source (text, bytes or a readable stream) into a ChunkModel.
	If `out` is given the PNG is written to it as the source is parsed.
	"""
	if hasattr(source, "read"):
		source = source.read()
	if isinstance(source, bytes):
		source = decode_bytes(source)
	writer = PNGWriter(out) if out is not None else None
	return Compiler(source, file, writer).compile()
