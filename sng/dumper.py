# coding=utf-8

"""
PNG -> SNG. Walks a ChunkModel in canonical order and writes each chunk
back out in the form the compiler reads. Problems found along the way are
logged and make dump() return 1, but never stop the dump.
"""

import logging

from lxml import etree

from sng import config, datacodec, png
from sng.colors import default as default_colors
from sng.datacodec import Format
from sng.icc import ICCProfile, ICCException
from sng.model import (
	Equation, INTENT_NAMES, Intent, OffsetUnit, ScaleUnit, Unit, SAMPLE_FIELDS,
	PRE_PALETTE_ORDER, POST_PALETTE_ORDER,
)

logger = logging.getLogger(__name__)

INDENT = "    "
XMP_KEYWORD = "XML:com.adobe.xmp"
MONTHS = ["(undefined)", "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def fixed(value):
	"""Render a 1/100000 fixed-point number as an exact decimal."""
	text = "{}.{:05d}".format(value // 100000, value % 100000).rstrip("0")
	return text + "0" if text.endswith(".") else text


class Dumper:
	def __init__(self, model, out, file="stdin", colors=None, problems=()):
		self.model = model
		self.out = out
		self.file = file
		self.colors = colors if colors is not None else default_colors
		self.problems = problems
		self.status = 0

	def write(self, text):
		self.out.write(text + "\n")

	def report(self, message):
		logger.error("in %s, %s", self.file, message)
		self.status = 1

	def segment(self, leader, rows, group=0):
		"""Write a data segment; rows after the first go on lines of their own."""
		(fmt, lines) = datacodec.encode_rows(rows, group)
		head = " ".join(word for word in (leader, "" if fmt == Format.LITERAL else fmt.value) if word)
		if len(rows) == 1 and len(rows[0]) < config.SHORT_DATA:
			self.write(INDENT + " ".join(word for word in (head, lines[0]) if word) + ";")
			return
		if head:
			self.write(INDENT + head)
		for line in lines:
			self.write(INDENT * 2 + line)

	def blob(self, leader, data):
		run = config.LITERAL_RUN if datacodec.select_format([data]) == Format.LITERAL else config.DATA_RUN
		rows = [data[i:i + run] for i in range(0, len(data), run)] or [data]
		self.segment(leader, rows)

	def color_name(self, r, g, b):
		return self.colors.resolve(r, g, b)

	def dump(self):
		model = self.model
		for problem in self.problems:
			self.report(problem)

		self.write("#SNG: from {}".format(self.file))
		self.dump_IHDR(model.header)
		for name in PRE_PALETTE_ORDER:
			if model.get(name) is not None:
				getattr(self, "dump_" + name)(model.get(name))
		if model.palette is not None:
			self.dump_PLTE(model.palette)
		for name in POST_PALETTE_ORDER:
			if name == "sPLT":
				for palette in model.suggested:
					self.dump_sPLT(palette)
			elif model.get(name) is not None:
				getattr(self, "dump_" + name)(model.get(name))
		for chunk in model.unknown_chunks(False):
			self.dump_unknown(chunk)
		if model.get("tIME") is not None:
			self.dump_tIME(model.get("tIME"))
		for text in model.texts:
			self.dump_text(text)
		self.dump_image()
		for chunk in model.unknown_chunks(True):
			self.dump_unknown(chunk)
		return self.status

	#
	# Chunk writers
	#

	def dump_IHDR(self, header):
		if header.width == 0 or header.height == 0:
			self.report("invalid IHDR image dimensions ({}x{})".format(header.width, header.height))
		if header.kind is None:
			self.report("invalid IHDR color type {}".format(header.color_type))
		elif not header.valid_bit_depth():
			self.report("invalid IHDR bit depth ({}) for {} image".format(header.bit_depth, header.type_name))

		flags = ["color" if header.has_color else "grayscale"]
		if header.has_palette:
			flags.append("palette")
		if header.has_alpha:
			flags.append("alpha")
		self.write("IHDR {")
		self.write(INDENT + "width: {}; height: {}; bitdepth: {};".format(header.width, header.height, header.bit_depth))
		self.write(INDENT + "using {};".format(" ".join(flags)))
		if header.interlace:
			self.write(INDENT + "with interlace;        # type adam7 assumed")
		self.write("}")

	def dump_cHRM(self, chrm):
		for (name, x, y) in chrm.points():
			if x > 80000 or y > 80000 or x + y > 100000:
				self.report("invalid cHRM {} point {} {}".format(name, fixed(x), fixed(y)))
				break
		self.write("cHRM {")
		for (name, x, y) in chrm.points():
			self.write(INDENT + "{:7}({}, {});".format(name + ":", fixed(x), fixed(y)))
		self.write("}")

	def dump_gAMA(self, gamma):
		self.write("gAMA {{{}}}".format(fixed(gamma.value)))

	def dump_iCCP(self, profile):
		self.write("iCCP {")
		self.write(INDENT + "name: {};".format(datacodec.quote(profile.name)))
		try:
			self.write(INDENT + "# " + ICCProfile.parse(profile.profile).summary())
		except ICCException as e:
			logger.warning("%s: iCCP profile not understood: %s", self.file, e)
		self.blob("profile:", profile.profile)
		self.write("}")

	def dump_sBIT(self, bits):
		header = self.model.header
		limit = 8 if header.has_palette else header.bit_depth
		fields = SAMPLE_FIELDS.get(header.kind, ())
		for field in fields:
			value = getattr(bits, field)
			if not value or value > limit:
				self.report("{} sBIT {} bits not valid for {}bit/sample image".format(value, field, limit))
				return
		self.write("sBIT {")
		self.write(INDENT + " ".join("{}: {};".format(field, getattr(bits, field)) for field in fields))
		self.write("}")

	def dump_sRGB(self, srgb):
		try:
			intent = Intent(srgb.intent)
		except ValueError:
			self.report("sRGB invalid rendering intent {}".format(srgb.intent))
			return
		self.write("sRGB {{{};}}             # {}".format(intent.value, INTENT_NAMES[intent]))

	def dump_PLTE(self, palette):
		self.write("PLTE {")
		for (r, g, b) in palette:
			line = INDENT + "({:3},{:3},{:3})     # rgb = (0x{:02x},0x{:02x},0x{:02x})".format(r, g, b, r, g, b)
			name = self.color_name(r, g, b)
			if name:
				line += " " + name
			self.write(line)
		self.write("}")

	def dump_bKGD(self, background):
		if background.index is not None:
			self.write("bKGD {{index: {};}}".format(background.index))
		elif background.gray is not None:
			self.write("bKGD {{gray: {};}}".format(background.gray))
		else:
			self.write("bKGD {{red: {};  green: {};  blue: {};}}".format(background.red, background.green, background.blue))

	def dump_hIST(self, histogram):
		palette = self.model.palette or []
		if len(histogram.frequencies) != len(palette):
			self.report("hIST has {} entries but PLTE has {}".format(len(histogram.frequencies), len(palette)))
		self.write("hIST {")
		self.write(INDENT + " ".join("{:3}".format(n) for n in histogram.frequencies) + ";")
		self.write("}")

	def dump_tRNS(self, transparency):
		if self.model.header.has_alpha:
			self.report("tRNS chunk illegal with this image type")
			return
		self.write("tRNS {")
		if transparency.alphas is not None:
			self.write(INDENT + " ".join(str(n) for n in transparency.alphas))
		elif transparency.gray is not None:
			self.write(INDENT + "gray: {};".format(transparency.gray))
		else:
			self.write(INDENT + "red: {}; green: {}; blue: {};".format(transparency.red, transparency.green, transparency.blue))
		self.write("}")

	def dump_pHYs(self, dimensions):
		if dimensions.unit not in (Unit.UNKNOWN.value, Unit.METER.value):
			self.report("invalid pHYs unit {}".format(dimensions.unit))
			return
		line = "pHYs {{xpixels: {}; ypixels: {};".format(dimensions.x, dimensions.y)
		if dimensions.unit == Unit.METER.value:
			line += " per: meter;"
		line += "}"
		if dimensions.unit == Unit.METER.value and dimensions.x == dimensions.y:
			line += "  # ({} dpi)".format(int(dimensions.x * 0.0254 + 0.5))
		self.write(line)

	def dump_sPLT(self, palette):
		self.write("sPLT {")
		self.write(INDENT + "name: {};".format(datacodec.quote(palette.name)))
		self.write(INDENT + "depth: {};".format(palette.depth))
		for (r, g, b, a, f) in palette.entries:
			line = INDENT + "({:3},{:3},{:3}), {:3}, {:3}     # rgba = [0x{:02x},0x{:02x},0x{:02x},0x{:02x}]".format(r, g, b, a, f, r, g, b, a)
			name = self.color_name(r, g, b) if palette.depth == 8 else None
			if name:
				line += ", name = " + name
			self.write(line + ", freq = {}".format(f))
		self.write("}")

	def dump_oFFs(self, offset):
		try:
			unit = OffsetUnit(offset.unit)
		except ValueError:
			self.report("invalid oFFs unit {}".format(offset.unit))
			return
		self.write("oFFs {{xoffset: {}; yoffset: {}; unit: {};}}".format(
			offset.x, offset.y, "pixels" if unit == OffsetUnit.PIXEL else "micrometers"))

	def dump_pCAL(self, calibration):
		try:
			equation = Equation(calibration.mapping)
		except ValueError:
			self.report("invalid equation type in pCAL")
			return
		self.write("pCAL {")
		self.write(INDENT + "name: {};".format(datacodec.quote(calibration.name)))
		self.write(INDENT + "x0: {};".format(calibration.x0))
		self.write(INDENT + "x1: {};".format(calibration.x1))
		self.write(INDENT + "mapping: {};        # equation type {}".format(equation.name.lower(), equation.value))
		self.write(INDENT + "unit: {};".format(datacodec.quote(calibration.unit)))
		if calibration.params:
			self.write(INDENT + "parameters: {};".format(" ".join(datacodec.quote(p) for p in calibration.params)))
		self.write("}")

	def dump_sCAL(self, scale):
		try:
			unit = ScaleUnit(scale.unit)
		except ValueError:
			self.report("invalid sCAL unit {}".format(scale.unit))
			return
		self.write("sCAL {")
		self.write(INDENT + "unit:   {}".format(unit.name.lower()))
		self.write(INDENT + "width:  {}".format(scale.width))
		self.write(INDENT + "height: {}".format(scale.height))
		self.write("}")

	def dump_tIME(self, time):
		month = MONTHS[time.month] if 1 <= time.month <= 12 else MONTHS[0]
		if month == MONTHS[0] or not 1 <= time.day <= 31 or time.hour > 23 or time.minute > 59 or time.second > 60:
			self.report("invalid tIME date {}-{}-{} {}:{}:{}".format(time.year, time.month, time.day, time.hour, time.minute, time.second))
		self.write("tIME {")
		self.write(INDENT + "# {:2} {} {:4} {:02}:{:02}:{:02} GMT".format(time.day, month, time.year, time.hour, time.minute, time.second))
		for field in ("year", "month", "day", "hour", "minute", "second"):
			self.write(INDENT + "{:7} {}".format(field + ":", getattr(time, field)))
		self.write("}")

	def dump_text(self, text):
		if text.keyword == XMP_KEYWORD:
			try:
				etree.fromstring(text.text.encode("utf-8"))
			except etree.XMLSyntaxError as e:
				self.report("malformed XMP packet in {} chunk: {}".format(text.kind, e))

		self.write(text.kind + " {")
		if text.kind == "iTXt":
			self.write(INDENT + "language: {};".format(datacodec.quote(text.language or "")))
		self.write(INDENT + "keyword: {};".format(datacodec.quote(text.keyword)))
		if text.kind == "iTXt":
			self.write(INDENT + "translated: {};".format(datacodec.quote(text.translated or "")))
			if text.compressed:
				self.write(INDENT + "compressed;")
		self.write(INDENT + "text: {};".format(datacodec.quote(text.text, "\n" + INDENT * 2)))
		self.write("}")

	def dump_image(self):
		model = self.model
		header = model.header
		if model.idat:
			for block in model.idat:
				self.write("IDAT {")
				self.blob("", block)
				self.write("}")
			return
		if model.image is None:
			self.report("no image data")
			return

		# hex spacers only for multi-channel 8-bit and for 16-bit images
		if header.bit_depth == 16 or header.bit_depth == 8 and header.channels > 1:
			group = header.pixel_bytes
		else:
			group = 0
		self.write("IMAGE {")
		self.segment("pixels", model.image.rows, group)
		self.write("}")

	def dump_unknown(self, chunk):
		if chunk.CHUNK == "gIFg":
			self.write("gIFg {")
			self.write(INDENT + "disposal: {}; input: {}; delay: {};".format(chunk.disposal, chunk.input, chunk.delay))
		elif chunk.CHUNK == "gIFx":
			self.write("gIFx {")
			self.write(INDENT + "identifier: {}; code: {};".format(datacodec.quote(chunk.identifier), datacodec.quote(chunk.code)))
			self.blob("data:", chunk.data)
		else:
			self.write("private {} {{".format(chunk.name))
			self.blob("", chunk.data)
		self.write("}")


def decompile_png(stream, out, file=None, keep_idat=False, colors=None):
	"""Dump the PNG read from `stream` as SNG text on `out`; returns the status."""
	file = file or getattr(stream, "name", "stdin")
	(model, problems) = png.load(stream, file, keep_idat)
	return Dumper(model, out, file, colors, problems).dump()
