"""
Combinator engine tests
Sequencing, alternatives, commitment, repetition and error reporting
"""

import pytest

from token_tree import Ident
from token_matchers import ident, keyword, literal, punct, delim
from combinators import (
    Choice, many, many1, optional, attempt, eof, between, sep_by, rule,
)
from error_handling import TokenParseError, TrailingInputError


def parse_err(parser, text):
  with pytest.raises(TokenParseError) as excinfo:
    parser.parse(text)
  return excinfo.value


class TestSequence:
  """Test `+` and its helpers"""

  def test_values_are_a_tuple(self):
    value, _ = (ident() + punct('=') + literal()).parse("x = 1")
    assert [str(part) for part in value] == ["x", "=", "1"]

  def test_then_and_skip(self):
    assert str((punct('-').then(ident())).parse("- a")[0]) == "a"
    assert str((ident().skip(punct(';'))).parse("a ;")[0]) == "a"

  def test_map(self):
    value, _ = ident().map(lambda node: node.text.upper()).parse("abc")
    assert value == "ABC"

  def test_failure_after_consuming_is_committed(self):
    err = parse_err(ident() + punct('='), "x y")
    assert err.committed
    assert err.expected == ["="]
    assert err.position.ordinal == 1

  def test_failure_on_first_parser_is_not_committed(self):
    err = parse_err(ident() + punct('='), "+")
    assert not err.committed


class TestChoice:
  """Test `|` alternatives"""

  def test_first_success_wins(self):
    value, _ = (keyword("fn") | ident()).parse("fn")
    assert str(value) == "fn"

  def test_expected_labels_are_merged(self):
    err = parse_err(keyword("fn") | keyword("struct"), "enum")
    assert err.expected == ["fn", "struct"]
    assert "Expected `fn` or `struct`" in str(err)
    assert str(err.unexpected) == "enum"

  def test_three_way_merge(self):
    err = parse_err(keyword("a") | keyword("b") | keyword("c"), "d")
    assert "Expected `a`, `b` or `c`" in str(err)

  def test_needs_an_alternative(self):
    with pytest.raises(ValueError):
      Choice([])

  def test_committed_alternative_is_not_retried(self):
    grammar = (ident() + punct('+')) | (ident() + punct('-'))
    err = parse_err(grammar, "a -")
    assert err.committed
    assert err.expected == ["+"]

  def test_attempt_allows_backtracking(self):
    grammar = attempt(ident() + punct('+')) | (ident() + punct('-'))
    value, rest = grammar.parse("a -")
    assert [str(part) for part in value] == ["a", "-"]
    assert rest.is_empty()

  def test_attempt_restores_position(self, make_input):
    stream = make_input("a b")
    with pytest.raises(TokenParseError) as excinfo:
      attempt(ident() + punct('+')).parse(stream)
    assert not excinfo.value.committed
    assert stream.position().ordinal == 0


class TestRepetition:
  """Test many, many1 and optional"""

  def test_many(self):
    value, rest = many(ident()).parse("a b c +")
    assert [node.text for node in value] == ["a", "b", "c"]
    assert str(rest.into_tree()) == "+"

  def test_many_of_nothing(self):
    value, _ = many(ident()).parse("+")
    assert value == []

  def test_many1_needs_one(self):
    err = parse_err(many1(ident()), "+")
    assert err.expected == ["IDENT"]
    assert not err.committed

  def test_stopping_point_is_reported(self):
    """The labels of the repetition show up if the next parser fails there"""
    err = parse_err(many(ident()) + punct(';'), "a b +")
    assert err.expected == [";", "IDENT"]
    assert str(err.unexpected) == "+"

  def test_committed_repetition_fails(self):
    err = parse_err(many(ident() + punct(',')), "a , b")
    assert err.committed
    assert err.at_end

  def test_optional_present(self):
    value, _ = (optional(keyword("pub")) + keyword("fn")).parse("pub fn")
    assert [str(part) for part in value] == ["pub", "fn"]

  def test_optional_absent(self):
    value, _ = (optional(keyword("pub")) + keyword("fn")).parse("fn")
    assert value[0] is None
    assert str(value[1]) == "fn"

  def test_optional_default(self):
    value, _ = optional(literal(), default="none").parse("x")
    assert value == "none"

  def test_optional_labels_are_reported(self):
    err = parse_err(optional(keyword("pub")) + keyword("fn"), "struct")
    assert err.expected == ["fn", "pub"]


class TestLabels:
  """Test naming and end of input"""

  def test_set_name(self):
    err = parse_err(ident().set_name("field name"), "+")
    assert err.expected == ["field name"]

  def test_set_name_keeps_inner_errors(self):
    """Once input is consumed the real failure is reported"""
    grammar = (ident() + punct(':')).set_name("field")
    err = parse_err(grammar, "x +")
    assert err.expected == [":"]

  def test_eof(self):
    value, _ = (ident() + eof()).parse("a")
    assert value[1] is None

  def test_eof_with_leftovers(self):
    err = parse_err(ident() + eof(), "a b")
    assert err.expected == ["end of input"]


class TestHelpers:
  """Test between, sep_by and recursive rules"""

  def test_between(self):
    value, _ = between(delim('('), delim(')'), ident()).parse("(x)")
    assert value == Ident("x")

  def test_sep_by(self):
    value, _ = sep_by(ident(), punct(',')).parse("a, b, c")
    assert [node.text for node in value] == ["a", "b", "c"]

  def test_sep_by_empty(self):
    value, _ = sep_by(ident(), punct(',')).parse("")
    assert value == []

  def test_sep_by_trailing_separator(self):
    err = parse_err(sep_by(ident(), punct(',')), "a, b,")
    assert err.at_end
    assert err.expected == ["IDENT"]

  def test_recursive_rule(self):
    @rule
    def nested():
      return ident() | between(delim('['), delim(']'), nested())

    value, rest = nested().parse("[[[x]]]")
    assert value == Ident("x")
    assert rest.is_empty()

  def test_rule_is_built_once(self):
    calls = []

    @rule
    def word():
      calls.append(1)
      return ident()

    assert word() is word()
    word().parse("a")
    word().parse("b")
    assert len(calls) == 1


class TestParseString:
  """Test the text entry point"""

  def test_partial_parse(self):
    assert ident().parse_string("a b") == Ident("a")

  def test_parse_all(self):
    assert ident().parse_string("a", parse_all=True) == Ident("a")

  def test_trailing_tokens(self):
    with pytest.raises(TrailingInputError) as excinfo:
      ident().parse_string("a b (c)", parse_all=True)
    assert str(excinfo.value.diagnostic) == "b (c)"
    assert "unexpected tokens at end of input" in str(excinfo.value)

  def test_leftover_close_delimiter(self):
    """A close whose open the grammar consumed still counts as leftover"""
    with pytest.raises(TrailingInputError) as excinfo:
      (delim('{') + ident()).parse_string("{ foo }", parse_all=True)
    assert str(excinfo.value.diagnostic) == "}"

  def test_whole_group_consumed(self):
    grammar = between(delim('{'), delim('}'), ident())
    assert grammar.parse_string("{ foo }", parse_all=True) == Ident("foo")

  def test_position_in_message(self):
    with pytest.raises(TokenParseError) as excinfo:
      (ident() + punct('=')).parse_string("x\n;", filename="defs.txt")
    assert str(excinfo.value).startswith("Parse error at token 1 (defs.txt:1:1-2)")
