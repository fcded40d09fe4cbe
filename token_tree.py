"""
Host token tree model and lexer
Nested token trees (leaves plus delimiter groups) as handed over by the host,
and a pyparsing lexer that builds them from source text
"""

from typing import Iterable, Iterator, Optional, Union
from dataclasses import dataclass, field
from enum import Enum
import logging
import re

import pyparsing as pp

from error_handling import TokenizerError


logger = logging.getLogger(__name__)

# Characters a Punct leaf may carry
PUNCT_CHARS = "=<>!~+-*/%^&|@.,;:#$?'"


@dataclass(frozen=True)
class Span:
    """Opaque source location attached to every leaf and group"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = field(default="", compare=False)

    @classmethod
    def call_site(cls) -> 'Span':
        """Placeholder span for tokens that do not come from source text"""
        return cls("<call_site>", 0, 0, 0, 0)

    def join(self, other: 'Span') -> 'Span':
        return Span(self.filename, self.start_line, self.start_col, other.end_line, other.end_col)

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


class Delimiter(Enum):
    """Group kinds; NONE is an invisible grouping with no surface characters"""
    PARENTHESIS = ("(", ")")
    BRACE = ("{", "}")
    BRACKET = ("[", "]")
    NONE = (None, None)

    @property
    def open_char(self) -> Optional[str]:
        return self.value[0]

    @property
    def close_char(self) -> Optional[str]:
        return self.value[1]

    @classmethod
    def from_char(cls, ch: str) -> 'Delimiter':
        for delimiter in cls:
            if ch in delimiter.value:
                return delimiter
        raise ValueError(f"not a delimiter character: {ch!r}")


class Spacing(Enum):
    ALONE = "alone"
    JOINT = "joint"


@dataclass(frozen=True)
class Ident:
    text: str
    span: Span = field(default_factory=Span.call_site, compare=False)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Literal:
    """A string, char or numeric literal kept as its raw source text"""
    text: str
    span: Span = field(default_factory=Span.call_site, compare=False)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Punct:
    char: str
    spacing: Spacing = Spacing.ALONE
    span: Span = field(default_factory=Span.call_site, compare=False)

    def __post_init__(self):
        if len(self.char) != 1:
            raise ValueError(f"punct must be a single character, got {self.char!r}")

    def __str__(self) -> str:
        return self.char


@dataclass(frozen=True)
class Group:
    delimiter: Delimiter
    stream: 'TokenStream'
    span: Span = field(default_factory=Span.call_site, compare=False)

    def __str__(self) -> str:
        inner = str(self.stream)
        if self.delimiter is Delimiter.NONE:
            return inner
        if self.delimiter is Delimiter.BRACE:
            return "{ " + inner + " }" if inner else "{ }"
        return f"{self.delimiter.open_char}{inner}{self.delimiter.close_char}"


TokenTree = Union[Ident, Literal, Punct, Group]


class TokenStream:
    """An immutable sequence of token trees"""

    def __init__(self, trees: Iterable[TokenTree] = ()):
        self._trees = tuple(trees)

    def __iter__(self) -> Iterator[TokenTree]:
        return iter(self._trees)

    def __len__(self) -> int:
        return len(self._trees)

    def __getitem__(self, index):
        return self._trees[index]

    def __bool__(self) -> bool:
        return bool(self._trees)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TokenStream):
            return NotImplemented
        return self._trees == other._trees

    def __hash__(self) -> int:
        return hash(self._trees)

    def __repr__(self) -> str:
        return f"TokenStream({str(self)!r})"

    def __str__(self) -> str:
        parts = []
        last = len(self._trees) - 1
        for i, tree in enumerate(self._trees):
            parts.append(str(tree))
            # Joint puncts glue to whatever follows them
            if i < last and not (isinstance(tree, Punct) and tree.spacing is Spacing.JOINT):
                parts.append(" ")
        return "".join(parts)


@dataclass(frozen=True)
class _Mark:
    """Position of an open/close character while a group is being lexed"""
    char: str
    loc: int


class TokenTreeLexer:
    """Source text to TokenStream lexer using pyparsing"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the lexical grammar: literals, idents, puncts and nested groups"""

        tree = pp.Forward()

        # Literals (tried before idents, `b"..."` and `r"..."` start with a letter)
        raw_string = pp.Regex(r'b?r(#*)".*?"\1', flags=re.DOTALL)
        string = pp.Regex(r'b?"(?:[^"\\]|\\.)*"', flags=re.DOTALL)
        char = pp.Regex(r"b?'(?:[^'\\\n]|\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F]{1,6}\}|.))'")
        number = pp.Regex(
            r'(?:0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+'
            r'|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d[\d_]*)?)'
            r'(?:[^\W\d]\w*)?'
        )
        literal = (raw_string | string | char | number).set_name("literal")
        literal.set_parse_action(self._make_literal)

        ident = pp.Regex(r'(?:r#)?[^\W\d]\w*').set_name("identifier")
        ident.set_parse_action(self._make_ident)

        punct = pp.Char(PUNCT_CHARS).set_name("punctuation")
        punct.set_parse_action(self._make_punct)

        groups = []
        for delimiter in (Delimiter.PARENTHESIS, Delimiter.BRACE, Delimiter.BRACKET):
            opener = pp.Literal(delimiter.open_char).set_parse_action(self._make_mark)
            closer = pp.Literal(delimiter.close_char).set_parse_action(self._make_mark)
            groups.append(opener + pp.ZeroOrMore(tree) + closer)
        group = pp.MatchFirst(groups).set_name("group")
        group.set_parse_action(self._make_group)

        tree <<= literal | ident | group | punct

        self.grammar = pp.ZeroOrMore(tree) + pp.StringEnd()
        self.grammar.ignore(pp.c_style_comment)
        self.grammar.ignore(pp.dbl_slash_comment)
        self.grammar.parse_with_tabs()

    def _span(self, text: str, start: int, end: int) -> Span:
        return Span(
            self.filename,
            pp.lineno(start, text), pp.col(start, text),
            pp.lineno(end, text), pp.col(end, text),
            text[start:end],
        )

    def _make_literal(self, s: str, loc: int, toks: pp.ParseResults) -> Literal:
        text = toks[0]
        return Literal(text, self._span(s, loc, loc + len(text)))

    def _make_ident(self, s: str, loc: int, toks: pp.ParseResults) -> Ident:
        text = toks[0]
        return Ident(text, self._span(s, loc, loc + len(text)))

    def _make_punct(self, s: str, loc: int, toks: pp.ParseResults) -> Punct:
        following = s[loc + 1] if loc + 1 < len(s) else ""
        spacing = Spacing.JOINT if following and following in PUNCT_CHARS else Spacing.ALONE
        return Punct(toks[0], spacing, self._span(s, loc, loc + 1))

    def _make_mark(self, s: str, loc: int, toks: pp.ParseResults) -> _Mark:
        return _Mark(toks[0], loc)

    def _make_group(self, s: str, loc: int, toks: pp.ParseResults) -> Group:
        opener, *children, closer = toks
        span = self._span(s, opener.loc, closer.loc + 1)
        return Group(Delimiter.from_char(opener.char), TokenStream(children), span)

    def tokenize(self, text: str) -> TokenStream:
        """Tokenize source text into a nested TokenStream"""
        try:
            result = self.grammar.parse_string(text, parse_all=True)
        except pp.ParseException as e:
            raise self._tokenizer_error(text, e) from e
        except RecursionError as e:
            # Each group level costs several pyparsing frames
            loc = len(text) - len(text.lstrip())
            span = self._span(text, loc, min(loc + 1, len(text)))
            raise TokenizerError("delimiters nested too deeply", span) from e

        stream = TokenStream(result.as_list())
        logger.debug("tokenized %s into %d top-level trees", self.filename, len(stream))
        return stream

    def _tokenizer_error(self, text: str, exc: pp.ParseException) -> TokenizerError:
        """Explain why lexing stopped at the failure location"""
        loc = exc.loc
        while loc < len(text) and text[loc].isspace():
            loc += 1
        span = self._span(text, loc, min(loc + 1, len(text)))
        ch = text[loc] if loc < len(text) else ""

        if ch in ")]}":
            message = f"unmatched close delimiter `{ch}`"
        elif ch in "([{":
            message = f"unclosed delimiter `{ch}`"
        elif ch in "\"'":
            message = f"unterminated literal starting with `{ch}`"
        else:
            message = f"unknown character `{ch}`"
        return TokenizerError(message, span)


def parse_token_stream(text: str, filename: str = "<input>") -> TokenStream:
    """Lex source text into a TokenStream"""
    return TokenTreeLexer(filename).tokenize(text)

