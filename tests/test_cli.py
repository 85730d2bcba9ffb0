# coding=utf-8

import io

from sng import cli
from sng.compiler import compile_sng

BROKEN = "IHDR { width: 1; height: 1; bitdepth: 8; } bogus { }"


class TestFiles:
	def test_sng_to_png_and_back(self, tmp_path, truecolor):
		source = tmp_path / "pic.sng"
		source.write_text(truecolor)
		assert cli.main([str(source)]) == cli.OK
		target = tmp_path / "pic.png"
		assert target.read_bytes().startswith(b"\x89PNG")

		source.unlink()
		assert cli.main([str(target)]) == cli.OK
		assert compile_sng(source.read_text(encoding="utf-8")) == compile_sng(truecolor)

	def test_broken_source_writes_nothing(self, tmp_path):
		source = tmp_path / "bad.sng"
		source.write_text(BROKEN)
		assert cli.main([str(source)]) == cli.FATAL
		assert not (tmp_path / "bad.png").exists()

	def test_unknown_extension(self, tmp_path):
		path = tmp_path / "notes.txt"
		path.write_text("hello")
		assert cli.main([str(path)]) == cli.BAD

	def test_missing_file(self, tmp_path):
		assert cli.main([str(tmp_path / "gone.sng")]) == cli.BAD

	def test_damaged_png(self, tmp_path):
		path = tmp_path / "damaged.png"
		path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
		assert cli.main([str(path)]) == cli.FATAL

	def test_worst_status_wins(self, tmp_path, truecolor):
		good = tmp_path / "good.sng"
		good.write_text(truecolor)
		bad = tmp_path / "bad.sng"
		bad.write_text(BROKEN)
		assert cli.main([str(good), str(tmp_path / "gone.png"), str(bad)]) == cli.FATAL
		assert (tmp_path / "good.png").exists()

	def test_bad_number_fails_only_its_file(self, tmp_path, truecolor):
		bad = tmp_path / "huge.sng"
		bad.write_text("IHDR { width: 1; height: 1; bitdepth: 8; } gAMA {1e400} IMAGE { hex 00 }")
		good = tmp_path / "good.sng"
		good.write_text(truecolor)
		assert cli.main([str(bad), str(good)]) == cli.FATAL
		assert not (tmp_path / "huge.png").exists()
		assert (tmp_path / "good.png").exists()

	def test_idat_flag(self, tmp_path, png_bytes, truecolor):
		path = tmp_path / "pic.png"
		path.write_bytes(png_bytes(truecolor))
		assert cli.main(["-i", str(path)]) == cli.OK
		assert "IDAT {" in (tmp_path / "pic.sng").read_text(encoding="utf-8")


class TestStreams:
	def test_text_is_compiled(self, truecolor):
		out = io.BytesIO()
		assert cli.convert_stream(io.BytesIO(truecolor.encode("ascii")), out) == cli.OK
		assert out.getvalue().startswith(b"\x89PNG")

	def test_binary_is_decompiled(self, png_bytes, truecolor):
		out = io.BytesIO()
		assert cli.convert_stream(io.BytesIO(png_bytes(truecolor)), out) == cli.OK
		assert out.getvalue().startswith(b"#SNG: from stdin")

	def test_broken_text(self):
		out = io.BytesIO()
		assert cli.convert_stream(io.BytesIO(BROKEN.encode("ascii")), out) == cli.FATAL
		assert out.getvalue() == b""

	def test_sniffing(self):
		assert cli.is_text(b"IHDR {")
		assert cli.is_text(b"# comment")
		assert not cli.is_text(b"\x89PNG")
