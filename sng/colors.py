# coding=utf-8

import logging

from sng import config

logger = logging.getLogger(__name__)


class ColorNames:
	"""
	RGB -> name lookup backed by an X11 rgb.txt database. The database is
	read on first use; if none can be found every lookup returns None.
	"""

	def __init__(self, paths=None):
		self.paths = paths
		self.table = None

	@property
	def initialized(self):
		return self.table is not None

	def initialize(self):
		if self.table is not None:
			return
		self.table = {}
		for path in (self.paths if self.paths is not None else config.rgb_txt_paths()):
			try:
				with open(path, encoding="latin-1") as f:
					self.load(f)
			except OSError:
				continue
			logger.debug("loaded %d color names from %s", len(self.table), path)
			return
		logger.debug("no color name database found")

	def load(self, lines):
		if self.table is None:
			self.table = {}
		for line in lines:
			fields = line.split(None, 3)
			if len(fields) < 4 or line.startswith("!"):
				continue
			try:
				rgb = tuple(int(field) for field in fields[:3])
			except ValueError:
				continue
			self.table.setdefault(rgb, fields[3].strip())

	def resolve(self, r, g, b):
		self.initialize()
		return self.table.get((r, g, b))


default = ColorNames()


def resolve(r, g, b):
	return default.resolve(r, g, b)
