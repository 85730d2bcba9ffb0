# coding=utf-8

import pytest

from sng import config, tokenizer
from sng.errors import LexError, ValueRangeError
from sng.tokenizer import ParserContext, Token, Tokenizer


def tokens(text):
	lexer = Tokenizer(ParserContext(text))
	out = []
	while True:
		token = lexer.next_token()
		if token is None:
			return out
		out.append(token)


def values(text):
	return [token.value for token in tokens(text)]


class TestLexing:
	def test_separators_are_whitespace(self):
		assert values("a,b;c:d  e\tf") == ["a", "b", "c", "d", "e", "f"]

	def test_punctuation_splits_bare_tokens(self):
		assert values("IHDR{width:2}") == ["IHDR", "{", "width", "2", "}"]
		assert values("(1,2,3)") == ["(", "1", "2", "3", ")"]

	def test_numbers_and_base64_stay_whole(self):
		assert values("0.45455 -5 +3 ab+/Z9") == ["0.45455", "-5", "+3", "ab+/Z9"]

	def test_comment_runs_to_end_of_line(self):
		toks = tokens("a # ignored } {\nb")
		assert [t.value for t in toks] == ["a", "b"]
		assert toks[1].line == 2

	def test_quoted_tokens(self):
		toks = tokens("\"a b\" 'c # d'")
		assert [(t.value, t.quoted) for t in toks] == [("a b", True), ("c # d", True)]

	def test_escaped_quote_does_not_end_string(self):
		(token,) = tokens(r'"say \"hi\""')
		assert token.value == r'say \"hi\"'
		assert tokenizer.string(token) == 'say "hi"'

	def test_line_counting(self):
		toks = tokens("a\n\n  b\n# c\nd")
		assert [t.line for t in toks] == [1, 3, 5]

	def test_runaway_string(self):
		with pytest.raises(LexError) as e:
			tokens('tEXt { "abc\ndef" }')
		assert "runaway string" in str(e.value)
		assert e.value.line == 1

	def test_string_at_eof_is_runaway(self):
		with pytest.raises(LexError):
			tokens('"abc')

	def test_token_too_long(self):
		with pytest.raises(LexError) as e:
			tokens("a" * (config.MAX_TOKEN_LENGTH + 1))
		assert "too long" in str(e.value)

	def test_longest_token_is_accepted(self):
		assert len(values("a" * config.MAX_TOKEN_LENGTH)[0]) == config.MAX_TOKEN_LENGTH


class TestPushback:
	def test_unget_returns_same_token(self):
		lexer = Tokenizer(ParserContext("a b"))
		first = lexer.next_token()
		lexer.unget(first)
		assert lexer.next_token() is first
		assert lexer.next_token().value == "b"

	def test_peek_does_not_consume(self):
		lexer = Tokenizer(ParserContext("a b"))
		assert lexer.peek().value == "a"
		assert lexer.next_token().value == "a"

	def test_double_unget_is_an_error(self):
		lexer = Tokenizer(ParserContext("a b"))
		first = lexer.next_token()
		lexer.unget(first)
		with pytest.raises(RuntimeError):
			lexer.unget(first)

	def test_peek_at_eof(self):
		lexer = Tokenizer(ParserContext("  # nothing\n"))
		assert lexer.peek() is None
		assert lexer.next_token() is None


class TestNumbers:
	def test_byte_bounds(self):
		assert tokenizer.byte(Token("0")) == 0
		assert tokenizer.byte(Token("255")) == 255
		assert tokenizer.byte(Token("0xff")) == 255

	@pytest.mark.parametrize("text", ["256", "-1", "abc", "1.5", ""])
	def test_byte_rejects(self, text):
		with pytest.raises(ValueRangeError) as e:
			tokenizer.byte(Token(text))
		assert isinstance(e.value, ValueError)

	def test_error_echoes_token(self):
		with pytest.raises(ValueRangeError) as e:
			tokenizer.byte(Token("256"))
		assert "'256'" in str(e.value)

	def test_error_carries_location(self):
		ctx = ParserContext("", file="x.sng")
		with pytest.raises(ValueRangeError) as e:
			tokenizer.uint16(Token("70000", line=4), ctx)
		assert (e.value.file, e.value.line) == ("x.sng", 4)
		assert str(e.value).startswith("x.sng:4: ")

	def test_eof(self):
		with pytest.raises(ValueRangeError) as e:
			tokenizer.uint16(None)
		assert "EOF while expecting" in str(e.value)

	def test_wide_domains(self):
		assert tokenizer.uint32(Token("4294967295")) == 0xFFFFFFFF
		assert tokenizer.int32(Token("-2147483648")) == -0x80000000
		with pytest.raises(ValueRangeError):
			tokenizer.int32(Token("2147483648"))
		with pytest.raises(ValueRangeError):
			tokenizer.png_uint31(Token("2147483648"))

	def test_fixed_point(self):
		assert tokenizer.fixed_point(Token("0.45455")) == 45455
		assert tokenizer.fixed_point(Token("1")) == 100000
		with pytest.raises(ValueRangeError):
			tokenizer.fixed_point(Token("-0.5"))

	@pytest.mark.parametrize("text", ["1e400", "1e308", "21475"])
	def test_fixed_point_overflow(self, text):
		with pytest.raises(ValueRangeError) as e:
			tokenizer.fixed_point(Token(text))
		assert "out of range" in str(e.value)

	def test_real(self):
		assert tokenizer.real(Token("1.5e2")) == "1.5e2"
		with pytest.raises(ValueRangeError):
			tokenizer.real(Token("0"), positive=True)
		with pytest.raises(ValueRangeError):
			tokenizer.real(Token("1.2.3"))
		with pytest.raises(ValueRangeError):
			tokenizer.real(Token("1e400"), positive=True)


class TestStrings:
	def test_bare_and_quoted(self):
		assert tokenizer.string(Token("bare")) == "bare"
		assert tokenizer.string(Token(r"tab\there", True)) == "tab\there"

	def test_punctuation_is_not_a_string(self):
		with pytest.raises(ValueRangeError):
			tokenizer.string(Token("}"))

	def test_keyword(self):
		assert tokenizer.keyword(Token("Title", True)) == "Title"
		assert tokenizer.keyword(Token("Creation Time", True)) == "Creation Time"

	@pytest.mark.parametrize("text", ["", " lead", "trail ", "two  spaces", "k" * 80, r"ctrl\x01"])
	def test_keyword_rejects(self, text):
		with pytest.raises(ValueRangeError):
			tokenizer.keyword(Token(text, True))
