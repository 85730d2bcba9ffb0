# coding=utf-8

import io

import pytest

from sng.colors import ColorNames
from sng.compiler import compile_sng

# the 2x1 truecolor image used throughout: one black and one white pixel
TRUECOLOR = "IHDR { width: 2; height: 1; bitdepth: 8; using color; } IMAGE { hex 000000 ffffff }"

# a colormapped image touching every chunk type the compiler knows
KITCHEN_SINK = """\
IHDR {
	width: 4; height: 2; bitdepth: 2;
	using color palette;
}
gAMA {0.45455}
cHRM { white: (0.3127, 0.329); red: (0.64, 0.33); green: (0.3, 0.6); blue: (0.15, 0.06); }
sRGB {0;}
sBIT { red: 5; green: 6; blue: 5; }
PLTE { (0, 0, 0) (255, 255, 255) (255, 0, 0) }
bKGD { index: 1; }
hIST { 10 20 30; }
tRNS { 0 128 }
pHYs { xpixels: 2835; ypixels: 2835; per: meter; }
sPLT { name: "six"; depth: 8; (1, 2, 3), 255, 7 }
oFFs { xoffset: -5; yoffset: 7; unit: micrometers; }
pCAL { name: "temp"; x0: 0; x1: 255; mapping: linear; unit: "K"; parameters: "0" "1.5"; }
sCAL { unit: meter; width: 0.5; height: 1.5e2; }
private prVt { hex 00ff }
tIME { year: 2000; month: 1; day: 2; hour: 3; minute: 4; second: 5; }
tEXt { keyword: "Title"; text: "Hello, world"; }
zTXt { keyword: "Comment"; text: "compressed text"; }
iTXt { language: "en"; keyword: "Author"; translated: "Auteur"; text: "Ümlaut"; compressed; }
IMAGE { pixels base64 0120 2101 }
gIFg { disposal: 1; input: 0; delay: 50; }
"""


@pytest.fixture
def no_colors():
	"""A resolver with no database behind it."""
	return ColorNames(paths=[])


@pytest.fixture
def rgb_txt(tmp_path):
	path = tmp_path / "rgb.txt"
	path.write_text(
		"! $Xorg: rgb.txt excerpt $\n"
		"  0   0   0\t\tblack\n"
		"255 255 255\t\twhite\n"
		"255   0   0\t\tred\n"
		"  0   0   0\t\tBlack\n"
		"not a color line\n")
	return path


@pytest.fixture
def colors(rgb_txt):
	return ColorNames(paths=[str(rgb_txt)])


@pytest.fixture
def png_bytes():
	"""Compile SNG source and return the PNG it produces."""
	def build(source):
		out = io.BytesIO()
		compile_sng(source, out)
		return out.getvalue()
	return build


@pytest.fixture
def truecolor():
	return TRUECOLOR


@pytest.fixture
def kitchen_sink():
	return KITCHEN_SINK
