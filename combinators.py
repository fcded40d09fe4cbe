"""
Parser combinators over flattened token streams
A small combinator engine in the style of pyparsing's ParserElement: `+` for
sequences, `|` for alternatives, plus repetition, labels and lazy rules.

Every parser implements `_parse(stream) -> (value, hint)`. Failures raise
TokenParseError; a failure is committed once input was consumed, and
committed failures are never retried by alternatives. The hint is the
uncommitted failure an optional or repeated parser stopped at, so its
expected labels can be reported if the next parser fails at the same place.
"""

from typing import Any, Callable, List, Optional, Tuple, Union
import functools
import logging

from token_tree import TokenStream
from token_input import Input, LookaheadInput
from diagnostic import Incomplete
from error_handling import TokenParseError, TrailingInputError


logger = logging.getLogger(__name__)

Hint = Optional[TokenParseError]


def _merge_hints(left: Hint, right: Hint) -> Hint:
    if left is None:
        return right
    if right is None:
        return left
    return left.merged(right)


def as_stream(source: Union[str, TokenStream, Input, LookaheadInput]):
    """Accept text, a TokenStream or an existing stream"""
    if isinstance(source, str):
        return Input.from_text(source)
    if isinstance(source, TokenStream):
        return Input(source)
    return source


class Parser:
    """Base class of all token parsers"""

    name: Optional[str] = None

    def _parse(self, stream) -> Tuple[Any, Hint]:
        raise NotImplementedError

    def expected(self) -> List[str]:
        """Labels this parser reports when it fails without consuming"""
        return [self.name] if self.name else []

    # ---- entry points ----

    def parse(self, source) -> Tuple[Any, Any]:
        """Run the parser, returning (value, remaining stream)"""
        stream = as_stream(source)
        value, _ = self._parse(stream)
        return value, stream

    def parse_string(self, text: str, parse_all: bool = False, filename: str = "<input>") -> Any:
        """Lex and parse text; with parse_all, leftover tokens are an error"""
        stream = Input.from_text(text, filename)
        value, _ = self._parse(stream)
        if parse_all and not stream.is_empty():
            remainder = stream.into_tree()
            diagnostic = Incomplete.from_stream(stream)
            if diagnostic is None:
                # Only closes of groups the grammar entered are left
                logger.debug("parse of %s left unmatched closing delimiters", filename)
                raise TrailingInputError(remainder)
            logger.debug("parse of %s left %d trailing tokens", filename, diagnostic.total)
            raise TrailingInputError(diagnostic)
        return value

    # ---- composition ----

    def __add__(self, other: 'Parser') -> 'Sequence':
        return Sequence([self, other])

    def __or__(self, other: 'Parser') -> 'Choice':
        return Choice([self, other])

    def map(self, func: Callable[[Any], Any]) -> 'Map':
        return Map(self, func)

    def then(self, other: 'Parser') -> 'Parser':
        """Parse self then other, keeping other's value"""
        return Sequence([self, other]).map(lambda values: values[1])

    def skip(self, other: 'Parser') -> 'Parser':
        """Parse self then other, keeping self's value"""
        return Sequence([self, other]).map(lambda values: values[0])

    def set_name(self, name: str) -> 'Named':
        return Named(self, name)


class Sequence(Parser):
    """Parsers in order; the value is the tuple of their values"""

    def __init__(self, parsers: List[Parser]):
        self.parsers = list(parsers)

    def __add__(self, other: Parser) -> 'Sequence':
        return Sequence(self.parsers + [other])

    def expected(self) -> List[str]:
        return self.parsers[0].expected() if self.parsers else []

    def _parse(self, stream) -> Tuple[Any, Hint]:
        start = stream.position()
        values = []
        hint: Hint = None
        for parser in self.parsers:
            before = stream.position()
            try:
                value, new_hint = parser._parse(stream)
            except TokenParseError as err:
                if hint is not None and not err.committed and hint.position == err.position:
                    err = err.merged(hint)
                if stream.position() > start:
                    err = err.with_committed(True)
                raise err
            values.append(value)
            if stream.position() > before:
                hint = new_hint
            else:
                hint = _merge_hints(hint, new_hint)
        return tuple(values), hint


class Choice(Parser):
    """First alternative that succeeds; uncommitted failures are merged"""

    def __init__(self, parsers: List[Parser]):
        if not parsers:
            raise ValueError("Choice needs at least one alternative")
        self.parsers = list(parsers)

    def __or__(self, other: Parser) -> 'Choice':
        return Choice(self.parsers + [other])

    def expected(self) -> List[str]:
        labels: List[str] = []
        for parser in self.parsers:
            labels.extend(label for label in parser.expected() if label not in labels)
        return labels

    def _parse(self, stream) -> Tuple[Any, Hint]:
        start = stream.position()
        error: Hint = None
        for parser in self.parsers:
            try:
                value, hint = parser._parse(stream)
            except TokenParseError as err:
                if err.committed:
                    raise
                error = _merge_hints(error, err)
                continue
            if stream.position() == start:
                hint = _merge_hints(error, hint)
            return value, hint
        raise error


class Map(Parser):

    def __init__(self, parser: Parser, func: Callable[[Any], Any]):
        self.parser = parser
        self.func = func

    def expected(self) -> List[str]:
        return self.parser.expected()

    def _parse(self, stream) -> Tuple[Any, Hint]:
        value, hint = self.parser._parse(stream)
        return self.func(value), hint


class Named(Parser):
    """Replace the expected labels of a parser that fails without consuming"""

    def __init__(self, parser: Parser, name: str):
        self.parser = parser
        self.name = name

    def _parse(self, stream) -> Tuple[Any, Hint]:
        start = stream.position()
        try:
            value, hint = self.parser._parse(stream)
        except TokenParseError as err:
            if err.committed or err.position != start:
                raise
            raise err.with_expected([self.name])
        if hint is not None and hint.position == start:
            hint = hint.with_expected([self.name])
        return value, hint


class Many(Parser):
    """Zero or more repetitions (at least `minimum`)"""

    def __init__(self, parser: Parser, minimum: int = 0):
        self.parser = parser
        self.minimum = minimum

    def expected(self) -> List[str]:
        return self.parser.expected()

    def _parse(self, stream) -> Tuple[Any, Hint]:
        start = stream.position()
        values = []
        hint: Hint = None
        while True:
            before = stream.position()
            try:
                value, new_hint = self.parser._parse(stream)
            except TokenParseError as err:
                if err.committed or len(values) < self.minimum:
                    if stream.position() > start:
                        err = err.with_committed(True)
                    raise err
                if hint is not None and hint.position == err.position:
                    err = hint.merged(err)
                hint = err
                break
            values.append(value)
            if stream.position() == before:
                # A repetition that consumes nothing would never end
                break
            hint = new_hint
        return values, hint


class Opt(Parser):
    """The parser's value, or `default` if it fails without consuming"""

    def __init__(self, parser: Parser, default: Any = None):
        self.parser = parser
        self.default = default

    def expected(self) -> List[str]:
        return self.parser.expected()

    def _parse(self, stream) -> Tuple[Any, Hint]:
        try:
            return self.parser._parse(stream)
        except TokenParseError as err:
            if err.committed:
                raise
            return self.default, err


class Attempt(Parser):
    """Rewind on failure so alternatives can be tried after partial input"""

    def __init__(self, parser: Parser):
        self.parser = parser

    def expected(self) -> List[str]:
        return self.parser.expected()

    def _parse(self, stream) -> Tuple[Any, Hint]:
        checkpoint = stream.checkpoint()
        try:
            return self.parser._parse(stream)
        except TokenParseError as err:
            stream.restore(checkpoint)
            raise err.with_committed(False)


class Eof(Parser):
    name = "end of input"

    def _parse(self, stream) -> Tuple[Any, Hint]:
        if stream.is_empty():
            return None, None
        raise TokenParseError(stream.position(), stream.peek(), self.expected())


class Lazy(Parser):
    """A parser built on first use, so rules may refer to themselves"""

    def __init__(self, build: Callable[[], Parser], name: Optional[str] = None):
        self.build = build
        self.label = name
        self._parser: Optional[Parser] = None

    @property
    def parser(self) -> Parser:
        if self._parser is None:
            self._parser = self.build()
        return self._parser

    def expected(self) -> List[str]:
        return self.parser.expected()

    def _parse(self, stream) -> Tuple[Any, Hint]:
        return self.parser._parse(stream)

    def __repr__(self) -> str:
        return f"Lazy({self.label or self.build.__name__})"


# ==================== FACTORIES ====================

def many(parser: Parser) -> Many:
    return Many(parser)


def many1(parser: Parser) -> Many:
    return Many(parser, minimum=1)


def optional(parser: Parser, default: Any = None) -> Opt:
    return Opt(parser, default)


def attempt(parser: Parser) -> Attempt:
    return Attempt(parser)


def eof() -> Eof:
    return Eof()


def between(open_: Parser, close: Parser, parser: Parser) -> Parser:
    """open_, parser, close; keeps the middle value"""
    return (open_ + parser + close).map(lambda values: values[1])


def sep_by(parser: Parser, separator: Parser) -> Parser:
    """Zero or more `parser` separated by `separator`, values as a list"""
    rest = many(separator.then(parser))
    return optional(
        (parser + rest).map(lambda values: [values[0]] + values[1]),
    ).map(lambda values: values or [])


def rule(func: Callable[[], Parser]) -> Callable[[], Parser]:
    """Turn a grammar-building function into a parser factory

    The function body runs once, on first use, and every call of the factory
    returns the same parser, which lets rules refer to each other
    (or to themselves) freely:

        @rule
        def value():
            return literal() | between(delim('['), delim(']'), sep_by(value(), punct(',')))
    """
    lazy = Lazy(func, func.__name__)

    @functools.wraps(func)
    def factory() -> Parser:
        return lazy

    return factory
