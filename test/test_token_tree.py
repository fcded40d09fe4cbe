"""
Lexer and token tree tests
"""

import re

import pytest

from token_tree import (
    Span, Delimiter, Spacing, Ident, Literal, Punct, Group, TokenStream,
    TokenTreeLexer, parse_token_stream,
)
from error_handling import TokenizerError


class TestLexer:
  """Test source text to token tree conversion"""

  @pytest.fixture
  def lexer(self):
    return TokenTreeLexer("sample.txt")

  def test_leaf_kinds(self, lexer):
    stream = lexer.tokenize('name "text" +')
    assert [type(tree) for tree in stream] == [Ident, Literal, Punct]

  @pytest.mark.parametrize("text", [
      '"plain"', '"esc\\"aped"', "'c'", "'\\n'", "42", "3.14", "1e5", "0xFF_u8",
      'r#"raw "quoted" text"#', 'b"bytes"', "7usize",
  ])
  def test_literals(self, lexer, text):
    stream = lexer.tokenize(text)
    assert len(stream) == 1
    assert isinstance(stream[0], Literal)
    assert stream[0].text == text

  def test_raw_identifier(self, lexer):
    stream = lexer.tokenize("r#type")
    assert stream[0] == Ident("r#type")

  def test_lifetime_is_punct_and_ident(self, lexer):
    stream = lexer.tokenize("'a")
    assert stream[0] == Punct("'", Spacing.ALONE)
    assert stream[1] == Ident("a")

  def test_groups(self, lexer):
    stream = lexer.tokenize("f(x, [y]) { z }")
    assert len(stream) == 3
    paren, brace = stream[1], stream[2]
    assert paren.delimiter is Delimiter.PARENTHESIS
    assert brace.delimiter is Delimiter.BRACE
    assert isinstance(paren.stream[2], Group)
    assert paren.stream[2].delimiter is Delimiter.BRACKET

  def test_joint_spacing(self, lexer):
    stream = lexer.tokenize("a += 1")
    assert stream[1] == Punct("+", Spacing.JOINT)
    assert stream[2] == Punct("=", Spacing.ALONE)

  def test_comments_are_skipped(self, lexer):
    stream = lexer.tokenize("a // line\nb /* block\n comment */ c")
    assert [str(tree) for tree in stream] == ["a", "b", "c"]

  def test_spans(self, lexer):
    stream = lexer.tokenize("first\n\tsecond")
    assert stream[0].span == Span("sample.txt", 1, 1, 1, 6)
    assert stream[1].span == Span("sample.txt", 2, 2, 2, 8)
    assert stream[1].span.text == "second"
    assert str(stream[1].span) == "sample.txt:2:2-8"

  def test_group_span_covers_delimiters(self, lexer):
    stream = lexer.tokenize("(a\n b)")
    assert stream[0].span == Span("sample.txt", 1, 1, 2, 4)

  @pytest.mark.parametrize("text, message", [
      ("a )", "unmatched close delimiter `)`"),
      ("(a", "unclosed delimiter `(`"),
      ("(a]", "unclosed delimiter `(`"),
      ('"abc', "unterminated literal"),
      ("a ` b", "unknown character"),
  ])
  def test_errors(self, lexer, text, message):
    with pytest.raises(TokenizerError, match=re.escape(message)) as excinfo:
      lexer.tokenize(text)
    assert excinfo.value.span.filename == "sample.txt"

  def test_moderate_nesting(self, lexer):
    stream = lexer.tokenize("(" * 20 + "x" + ")" * 20)
    assert str(stream) == "(" * 20 + "x" + ")" * 20

  def test_nesting_too_deep(self, lexer):
    """Runaway nesting is a tokenizer error, not a crash"""
    depth = 5000
    with pytest.raises(TokenizerError, match="nested too deeply") as excinfo:
      lexer.tokenize("(" * depth + ")" * depth)
    assert excinfo.value.span.start_line == 1


class TestRendering:
  """Test TokenStream text rendering"""

  @pytest.mark.parametrize("text, rendered", [
      ("foo+", "foo +"),
      ("a += b", "a += b"),
      ("f(x, y)", "f (x , y)"),
      ("{a}", "{ a }"),
      ("{}", "{ }"),
      ("[ 1 ]", "[1]"),
  ])
  def test_render(self, text, rendered):
    assert str(parse_token_stream(text)) == rendered

  def test_invisible_group_renders_contents(self):
    group = Group(Delimiter.NONE, TokenStream([Ident("a"), Ident("b")]))
    assert str(TokenStream([group, Ident("c")])) == "a b c"

  def test_equality_ignores_spans(self):
    assert parse_token_stream("a (b)", "one") == parse_token_stream("a  (b)", "two")


class TestModel:
  """Test host tree values"""

  def test_delimiter_chars(self):
    assert Delimiter.BRACE.open_char == "{"
    assert Delimiter.BRACKET.close_char == "]"
    assert Delimiter.NONE.open_char is None
    assert Delimiter.from_char(")") is Delimiter.PARENTHESIS

  def test_from_char_rejects_other(self):
    with pytest.raises(ValueError):
      Delimiter.from_char("<")

  def test_punct_must_be_one_char(self):
    with pytest.raises(ValueError):
      Punct("::")

  def test_span_join(self):
    joined = Span("f", 1, 1, 1, 2).join(Span("f", 3, 4, 3, 9))
    assert joined == Span("f", 1, 1, 3, 9)
