# coding=utf-8

import io
import logging
import string
import sys

from pathlib import Path

from sng.compiler import compile_sng
from sng.dumper import decompile_png
from sng.errors import SNGError

logger = logging.getLogger(__name__)

OK = 0
BAD = 1
FATAL = 2


def is_text(data):
	return chr(data[0]) in string.printable


def compile_file(source, file, out):
	"""Compile into a buffer so nothing is written for a broken source."""
	buffer = io.BytesIO()
	try:
		compile_sng(source, buffer, file)
	except SNGError as e:
		logger.error("%s", e)
		return FATAL
	out.write(buffer.getvalue())
	return OK


def decompile_file(stream, file, out, keep_idat=False):
	try:
		return decompile_png(stream, out, file, keep_idat)
	except SNGError as e:
		logger.error("%s", e)
		return FATAL


def convert_stream(stream, out, keep_idat=False):
	"""Convert stdin-style input, sniffing the direction from the first byte."""
	data = stream.read()
	if data and is_text(data):
		return compile_file(data, "stdin", out)
	text = io.StringIO()
	status = decompile_file(io.BytesIO(data), "stdin", text, keep_idat)
	out.write(text.getvalue().encode("utf-8"))
	return status


def convert_file(path, keep_idat=False):
	if path.suffix == ".sng":
		target = path.with_suffix(".png")
	elif path.suffix == ".png":
		target = path.with_suffix(".sng")
	else:
		logger.error("%s is neither SNG nor PNG", path)
		return BAD

	logger.info("converting %s to %s", path, target)
	try:
		if path.suffix == ".sng":
			buffer = io.BytesIO()
			status = compile_file(path.read_bytes(), str(path), buffer)
			if status == OK:
				target.write_bytes(buffer.getvalue())
			return status
		with open(path, "rb") as f, open(target, "w", encoding="utf-8") as out:
			return decompile_file(f, str(path), out, keep_idat)
	except OSError as e:
		logger.error("couldn't convert %s: %s", path, e)
		return BAD


def main(argv=None):
	import argparse
	parser = argparse.ArgumentParser(prog="sng", description="Convert between PNG and the SNG text format.")
	parser.add_argument("-v", "--verbose", action="store_true", help="trace chunks and tokens")
	parser.add_argument("-i", "--idat", action="store_true", help="dump IDAT chunks as they are instead of decoding the image")
	parser.add_argument("files", nargs="*", help=".sng or .png files; read stdin if none")
	args = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

	if not args.files:
		if sys.stdin.isatty():
			parser.print_usage(sys.stderr)
			return BAD
		return convert_stream(sys.stdin.buffer, sys.stdout.buffer, args.idat)

	status = OK
	for file in args.files:
		status = max(status, convert_file(Path(file), args.idat))
	return status


if __name__ == '__main__':
	sys.exit(main())
