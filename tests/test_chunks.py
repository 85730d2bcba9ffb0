# coding=utf-8

from sng import chunks
from sng.model import ChunkModel, ImageHeader, Gamma, PrivateChunk, TextChunk


def model_with(*names, color_type=2):
	model = ChunkModel()
	for name in names:
		if name == "IHDR":
			model.header = ImageHeader(1, 1, 8, color_type)
		model.record(name)
	return model


class TestTable:
	def test_every_chunk_is_listed(self):
		for name in ("IHDR", "PLTE", "IDAT", "IMAGE", "cHRM", "gAMA", "iCCP", "sBIT", "sRGB", "bKGD", "hIST",
				"tRNS", "pHYs", "sPLT", "oFFs", "pCAL", "sCAL", "tIME", "tEXt", "zTXt", "iTXt", "gIFg", "gIFx"):
			assert chunks.lookup(name) is not None, name

	def test_multiplicity(self):
		repeatable = {name for (name, chunk) in chunks.TABLE.items() if chunk.multiple_ok}
		assert repeatable == {"IDAT", "sPLT", "tEXt", "zTXt", "iTXt", "gIFg", "gIFx", chunks.PRIVATE}


class TestCheck:
	def test_ihdr_must_come_first(self):
		assert chunks.check(ChunkModel(), "gAMA") == "IHDR chunk must come first"
		assert chunks.check(ChunkModel(), "IHDR") is None

	def test_repeated_header(self):
		assert chunks.check(model_with("IHDR"), "IHDR") == "illegal repeated chunk IHDR"

	def test_repeated_gamma(self):
		model = model_with("IHDR")
		assert chunks.check(model, "gAMA") is None
		model.record("gAMA")
		assert chunks.check(model, "gAMA") == "illegal repeated chunk gAMA"

	def test_repeated_text_is_fine(self):
		model = model_with("IHDR", "tEXt", "tEXt")
		assert chunks.check(model, "tEXt") is None

	def test_palette_after_image_data(self):
		assert chunks.check(model_with("IHDR", "IDAT"), "PLTE") == "PLTE chunk must come before image data"
		assert chunks.check(model_with("IHDR", "IMAGE"), "PLTE") == "PLTE chunk must come before image data"

	def test_palette_after_background(self):
		assert chunks.check(model_with("IHDR", "bKGD"), "PLTE") == "PLTE chunk encountered after bKGD"

	def test_palette_in_grayscale_image(self):
		model = model_with("IHDR", color_type=0)
		assert chunks.check(model, "PLTE") == "PLTE chunk not allowed in a grayscale image"

	def test_pre_palette_chunks(self):
		model = model_with("IHDR", "PLTE")
		for name in ("cHRM", "gAMA", "iCCP", "sBIT", "sRGB"):
			assert chunks.check(model, name) == "{} chunk must come before PLTE".format(name)

	def test_histogram_needs_palette(self):
		assert chunks.check(model_with("IHDR"), "hIST") == "hIST chunk must come between PLTE and image data"
		assert chunks.check(model_with("IHDR", "PLTE"), "hIST") is None

	def test_post_palette_chunks_before_image(self):
		model = model_with("IHDR", "PLTE", "IDAT")
		for name in ("bKGD", "hIST", "tRNS", "pHYs", "sPLT", "oFFs", "pCAL", "sCAL"):
			assert chunks.check(model, name) == "{} chunk must come before image data".format(name)

	def test_anywhere_chunks(self):
		model = model_with("IHDR", "IDAT")
		for name in ("tIME", "tEXt", "zTXt", "iTXt", "gIFg", "gIFx", "prVt"):
			assert chunks.check(model, name) is None

	def test_idat_must_be_contiguous(self):
		model = model_with("IHDR", "IDAT")
		assert chunks.check(model, "IDAT") is None
		model.record("tEXt")
		assert chunks.check(model, "IDAT") == "IDAT chunks must be contiguous"

	def test_image_and_idat_exclude_each_other(self):
		assert chunks.check(model_with("IHDR", "IMAGE"), "IDAT") == "IDAT chunk encountered after IMAGE"
		assert chunks.check(model_with("IHDR", "IDAT"), "IMAGE") == "IMAGE chunk encountered after IDAT"

	def test_counts_belong_to_the_model(self):
		model_with("IHDR", "gAMA")
		assert chunks.check(model_with("IHDR"), "gAMA") is None


class TestFinalCheck:
	def test_empty_model(self):
		assert chunks.final_check(ChunkModel()) == ["no IHDR chunk", "no image data"]

	def test_missing_palette(self):
		model = model_with("IHDR", "IDAT", color_type=3)
		assert chunks.final_check(model) == ["palette property set, but no PLTE chunk found"]

	def test_complete(self):
		assert chunks.final_check(model_with("IHDR", "PLTE", "IDAT", color_type=3)) == []


class TestModel:
	def test_add_routes_values(self):
		model = ChunkModel()
		model.add("gAMA", Gamma(45455))
		model.add("tEXt", TextChunk("tEXt", "Title", "x"))
		model.add("prVt", PrivateChunk("prVt", b"", after_image=True))
		model.add("IDAT", b"\x78\x9c")
		assert model.get("gAMA") == Gamma(45455)
		assert len(model.texts) == 1
		assert model.unknown_chunks(True) == [PrivateChunk("prVt", b"", True)]
		assert model.unknown_chunks(False) == []
		assert model.idat == [b"\x78\x9c"]

	def test_bookkeeping_is_not_compared(self):
		one = ChunkModel()
		two = ChunkModel()
		one.record("IHDR")
		assert one == two

	def test_header_properties(self):
		header = ImageHeader(3, 2, 16, 6)
		assert header.has_color and header.has_alpha and not header.has_palette
		assert header.channels == 4
		assert header.row_bytes == 24
		assert header.type_name == "RGB+alpha"
		assert not ImageHeader(1, 1, 16, 3).valid_bit_depth()
