# coding=utf-8

"""
Chunk property table: which chunk names exist, whether they may repeat,
and what must (not) have been seen before each one. Predicates look only
at the occurrence counts of the model being built.
"""

from collections import OrderedDict

PRIVATE = "private"


class ChunkType:
	def __init__(self, name, multiple_ok, *rules):
		self.name = name
		self.multiple_ok = multiple_ok
		self.rules = rules

	def check(self, model):
		"""Return None if this chunk may come next, else the reason it can't."""
		if self.name != "IHDR" and not model.seen("IHDR"):
			return "IHDR chunk must come first"
		if not self.multiple_ok and model.seen(self.name):
			return "illegal repeated chunk {}".format(self.name)
		for rule in self.rules:
			reason = rule(self.name, model)
			if reason:
				return reason
		return None

	def __repr__(self):
		return "<ChunkType {} multiple={}>".format(self.name, self.multiple_ok)


#
# Ordering rules
#

def first(name, model):
	if sum(model.counts.values()):
		return "{} chunk must come first".format(name)


def before_image(name, model):
	if model.image_seen():
		return "{} chunk must come before image data".format(name)


def before_palette(name, model):
	if model.seen("PLTE"):
		return "{} chunk must come before PLTE".format(name)


def after_palette(name, model):
	if not model.seen("PLTE"):
		return "{} chunk must come between PLTE and image data".format(name)


def not_after(*others):
	def rule(name, model):
		for other in others:
			if model.seen(other):
				return "{} chunk encountered after {}".format(name, other)
	return rule


def not_grayscale(name, model):
	if model.header is not None and not model.header.has_color:
		return "{} chunk not allowed in a grayscale image".format(name)


def contiguous(name, model):
	if model.seen(name) and model.last_chunk != name:
		return "{} chunks must be contiguous".format(name)


TABLE = OrderedDict((chunk.name, chunk) for chunk in [
	ChunkType("IHDR", False, first),
	ChunkType("cHRM", False, before_palette, before_image),
	ChunkType("gAMA", False, before_palette, before_image),
	ChunkType("iCCP", False, before_palette, before_image),
	ChunkType("sBIT", False, before_palette, before_image),
	ChunkType("sRGB", False, before_palette, before_image),
	ChunkType("PLTE", False, before_image, not_after("bKGD", "hIST", "tRNS"), not_grayscale),
	ChunkType("bKGD", False, before_image),
	ChunkType("hIST", False, after_palette, before_image),
	ChunkType("tRNS", False, before_image),
	ChunkType("pHYs", False, before_image),
	ChunkType("sPLT", True, before_image),
	ChunkType("oFFs", False, before_image),
	ChunkType("pCAL", False, before_image),
	ChunkType("sCAL", False, before_image),
	ChunkType("tIME", False),
	ChunkType("tEXt", True),
	ChunkType("zTXt", True),
	ChunkType("iTXt", True),
	ChunkType("gIFg", True),
	ChunkType("gIFx", True),
	ChunkType("IDAT", True, contiguous, not_after("IMAGE")),
	ChunkType("IMAGE", False, not_after("IDAT")),
	ChunkType(PRIVATE, True),
])


def lookup(name):
	return TABLE.get(name)


def check(model, name):
	"""Check `name` against the table; private chunk names share one entry."""
	chunk = TABLE.get(name, TABLE[PRIVATE])
	return chunk.check(model)


def final_check(model):
	"""Reasons the finished model is invalid, in the order they are found."""
	reasons = []
	if model.header is None:
		reasons.append("no IHDR chunk")
	elif model.header.has_palette and not model.seen("PLTE"):
		reasons.append("palette property set, but no PLTE chunk found")
	if not model.image_seen():
		reasons.append("no image data")
	return reasons
