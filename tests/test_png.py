# coding=utf-8

import io
import random
import zlib

import pytest

from sng import png
from sng.compiler import compile_sng
from sng.model import ImageHeader, Gamma
from sng.png import PNG, PNGWriter, ParseError, CRCError, INT


def reload(data, keep_idat=False):
	return png.load(io.BytesIO(data), "test.png", keep_idat)


def round_trip(png_bytes, source):
	(model, problems) = reload(png_bytes(source))
	assert problems == []
	return model


class TestRoundTrip:
	def test_every_chunk(self, png_bytes, kitchen_sink):
		assert round_trip(png_bytes, kitchen_sink) == compile_sng(kitchen_sink)

	def test_truecolor(self, png_bytes, truecolor):
		model = round_trip(png_bytes, truecolor)
		assert model.image.rows == [bytes.fromhex("000000ffffff")]

	def test_interlaced(self, png_bytes):
		pixels = bytes(range(15))
		source = "IHDR { width: 5; height: 3; bitdepth: 8; with interlace; } IMAGE { hex " + pixels.hex() + " }"
		model = round_trip(png_bytes, source)
		assert model.header.interlace
		assert model.image.rows == [pixels[0:5], pixels[5:10], pixels[10:15]]

	def test_sub_byte_samples(self, png_bytes):
		rows = [bytes([1, 0, 1, 1, 0, 0, 1, 0, 1, 1]), bytes([0, 1, 0, 0, 1, 1, 0, 1, 0, 0])]
		source = "IHDR { width: 10; height: 2; bitdepth: 1; } IMAGE { hex " + " ".join(row.hex() for row in rows) + " }"
		assert round_trip(png_bytes, source).image.rows == rows

	def test_sixteen_bit_alpha(self, png_bytes):
		pixel = bytes.fromhex("0102030405060708")
		source = "IHDR { width: 1; height: 1; bitdepth: 16; using color alpha; } IMAGE { hex " + pixel.hex() + " }"
		model = round_trip(png_bytes, source)
		assert model.header.channels == 4
		assert model.image.rows == [pixel]

	def test_save_matches_streamed_output(self, png_bytes, kitchen_sink):
		out = io.BytesIO()
		png.save(compile_sng(kitchen_sink), out)
		assert out.getvalue() == png_bytes(kitchen_sink)

	def test_keep_idat(self, png_bytes, truecolor):
		(model, problems) = reload(png_bytes(truecolor), keep_idat=True)
		assert model.image is None
		assert len(model.idat) == 1


class TestDamage:
	def test_bad_signature(self):
		with pytest.raises(ParseError):
			reload(b"GIF89a" + b"\x00" * 20)

	def test_bad_crc(self, png_bytes, truecolor):
		data = bytearray(png_bytes(truecolor))
		# low byte of the IHDR width
		data[19] ^= 0xFF
		with pytest.raises(CRCError):
			reload(bytes(data))

	def test_truncated(self, png_bytes, truecolor):
		with pytest.raises(ParseError) as e:
			reload(png_bytes(truecolor)[:-6])
		assert "without IEND" in str(e.value)

	def test_first_chunk_must_be_header(self):
		out = io.BytesIO()
		out.write(PNG.MAGIC)
		PNGWriter(out).write_chunk("gAMA", INT.pack(45455))
		with pytest.raises(ParseError):
			reload(out.getvalue())


	def test_short_image_data_on_a_huge_header(self):
		out = io.BytesIO()
		writer = PNGWriter(out)
		writer.set_header(ImageHeader(100000, 100000, 8, 0))
		writer.write_raw_chunk("IDAT", zlib.compress(b"\x00" * 10))
		writer.finish()
		with pytest.raises(ParseError) as e:
			reload(out.getvalue())
		assert "not enough image data" in str(e.value)

	def test_decode_checks_length_first(self):
		with pytest.raises(ParseError):
			png.decode_image(ImageHeader(100000, 100000, 8, 0), b"\x00" * 10)


class TestProblems:
	def writer(self):
		out = io.BytesIO()
		writer = PNGWriter(out)
		writer.set_header(ImageHeader(1, 1, 8, 0))
		writer.write_info()
		return (out, writer)

	def test_gamma_after_image_data(self):
		(out, writer) = self.writer()
		writer.write_image([b"\x00"])
		writer.write_chunk("gAMA", INT.pack(45455))
		writer.finish()
		(model, problems) = reload(out.getvalue())
		assert problems == ["gAMA chunk must come before image data"]
		assert model.get("gAMA") == Gamma(45455)

	def test_repeated_singleton_keeps_the_first(self):
		(out, writer) = self.writer()
		writer.write_chunk("gAMA", INT.pack(45455))
		writer.write_chunk("gAMA", INT.pack(100000))
		writer.write_image([b"\x00"])
		writer.finish()
		(model, problems) = reload(out.getvalue())
		assert problems == ["illegal repeated chunk gAMA"]
		assert model.get("gAMA") == Gamma(45455)

	def test_raw_idat_is_unfiltered(self):
		out = io.BytesIO()
		writer = PNGWriter(out)
		writer.set_header(ImageHeader(3, 1, 8, 0))
		# one scanline, filter type 1 (sub)
		writer.write_raw_chunk("IDAT", zlib.compress(b"\x01\x01\x01\x01"))
		writer.finish()
		(model, problems) = reload(out.getvalue())
		assert model.image.rows == [b"\x01\x02\x03"]


class TestWriter:
	def test_no_image_data(self):
		writer = PNGWriter(io.BytesIO())
		writer.set_header(ImageHeader(1, 1, 8, 0))
		with pytest.raises(png.ConsistencyError):
			writer.finish()

	def test_invalid_header(self):
		with pytest.raises(png.ConsistencyError):
			PNGWriter(io.BytesIO()).set_header(ImageHeader(1, 1, 4, 2))

	def test_image_must_match_header(self):
		writer = PNGWriter(io.BytesIO())
		writer.set_header(ImageHeader(2, 1, 8, 0))
		with pytest.raises(png.ConsistencyError):
			writer.write_image([b"\x00"])

	def test_large_images_are_split(self):
		out = io.BytesIO()
		writer = PNGWriter(out)
		writer.set_header(ImageHeader(256, 256, 8, 2))
		# noise does not compress, so this needs several blocks
		rng = random.Random(7)
		rows = [bytes(rng.randrange(256) for _ in range(768)) for _ in range(256)]
		writer.write_image(rows)
		writer.finish()
		names = [chunk.cname for chunk in PNG(io.BytesIO(out.getvalue())).chunks()]
		assert names.count("IDAT") > 1
		assert reload(out.getvalue())[0].image.rows == rows


class TestRaster:
	def test_sub(self):
		assert png.unfilter_scanline(1, b"\x01\x01\x01", bytearray(3), 1) == bytearray([1, 2, 3])

	def test_up(self):
		assert png.unfilter_scanline(2, b"\x01\x02", bytearray([10, 20]), 1) == bytearray([11, 22])

	def test_average(self):
		assert png.unfilter_scanline(3, b"\x02\x04", bytearray([2, 2]), 1) == bytearray([3, 6])

	def test_paeth(self):
		assert png.paeth(1, 2, 3) == 1
		assert png.paeth(10, 20, 10) == 20
		assert png.paeth(5, 5, 5) == 5
		assert png.unfilter_scanline(4, b"\x01\x01", bytearray([0, 0]), 1) == bytearray([1, 2])

	def test_wraps_at_a_byte(self):
		assert png.unfilter_scanline(1, b"\xff\x02", bytearray(2), 1) == bytearray([255, 1])

	def test_unknown_filter(self):
		with pytest.raises(ParseError):
			png.unfilter_scanline(5, b"\x00", bytearray(1), 1)

	def test_sample_packing(self):
		assert png.pack_samples(bytes([1, 0, 1, 1]), 1) == bytes([0b10110000])
		assert png.unpack_samples(bytes([0b10110000]), 4, 1) == bytes([1, 0, 1, 1])
		assert png.pack_samples(bytes([3, 0, 2]), 2) == bytes([0b11001000])

	def test_adam7_passes_skip_empty(self):
		passes = list(png.passes(ImageHeader(1, 1, 8, 0, True)))
		assert passes == [(0, 0, 8, 8, 1, 1)]
