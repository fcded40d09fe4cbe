"""
Error types and formatting for token stream parsing
Pure formatting functions plus the exception classes raised by the lexer,
the combinator engine and the token matchers
"""

from typing import Any, List, Optional, Sequence


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def format_expected(expected: Sequence[str]) -> str:
    """Render expected labels as "`a`, `b` or `c`" """
    quoted = [f"`{label}`" for label in expected]
    if not quoted:
        return ""
    if len(quoted) == 1:
        return quoted[0]
    return ", ".join(quoted[:-1]) + " or " + quoted[-1]


def merge_expected(left: Sequence[str], right: Sequence[str]) -> List[str]:
    """Union of two label lists, first-seen order preserved"""
    merged = list(left)
    for label in right:
        if label not in merged:
            merged.append(label)
    return merged


def format_parse_error(position: Any, unexpected: Any, expected: Sequence[str]) -> str:
    """Format a token parse error as a multi-line message"""
    lines = [f"Parse error at {position}"]
    if unexpected is None:
        lines.append("Unexpected end of input")
    else:
        lines.append(f"Unexpected `{unexpected}`")
    if expected:
        lines.append(f"Expected {format_expected(expected)}")
    return "\n".join(lines)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TokenizerError(Exception):
    """Source text could not be split into a token tree"""
    def __init__(self, message: str, span: Optional[Any] = None):
        self.message = message
        self.span = span
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.span:
            return f"Tokenize error at {self.span}: {self.message}"
        return f"Tokenize error: {self.message}"


class TokenParseError(Exception):
    """A grammar failed to match the token stream

    `unexpected` is the offending token, or None at end of input. `committed`
    is set once the failing parser had already consumed input, in which case
    alternatives are not tried.
    """
    def __init__(self, position: Any, unexpected: Any = None,
                 expected: Optional[Sequence[str]] = None, committed: bool = False):
        self.position = position
        self.unexpected = unexpected
        self.expected = list(expected or [])
        self.committed = committed
        super().__init__(position, unexpected, self.expected)

    @property
    def at_end(self) -> bool:
        return self.unexpected is None

    def merged(self, other: 'TokenParseError') -> 'TokenParseError':
        """Combine two failures: the furthest wins, equal positions share labels"""
        if other.position > self.position:
            return other
        if self.position > other.position:
            return self
        return TokenParseError(
            self.position,
            self.unexpected,
            merge_expected(self.expected, other.expected),
            self.committed or other.committed,
        )

    def with_expected(self, expected: Sequence[str]) -> 'TokenParseError':
        return TokenParseError(self.position, self.unexpected, expected, self.committed)

    def with_committed(self, committed: bool) -> 'TokenParseError':
        return TokenParseError(self.position, self.unexpected, self.expected, committed)

    def __str__(self) -> str:
        return format_parse_error(self.position, self.unexpected, self.expected)


class TrailingInputError(Exception):
    """A grammar matched but left tokens unconsumed"""
    def __init__(self, diagnostic: Any):
        self.diagnostic = diagnostic
        super().__init__(f"unexpected tokens at end of input:\n\n{diagnostic}")


class InvalidMatcherError(ValueError):
    """A token matcher was constructed with an unusable argument"""
    pass


class InvalidDelimiterError(InvalidMatcherError):
    """`delim` was given a character other than ( ) { } [ ]"""
    def __init__(self, char: str):
        self.char = char
        super().__init__(f"Invalid delimiter char: `{char}`")


class BacktrackError(Exception):
    """A lookahead stream was rewound further than its horizon keeps"""
    def __init__(self, offset: int, oldest: int, horizon: int):
        self.offset = offset
        self.oldest = oldest
        self.horizon = horizon
        super().__init__(
            f"cannot backtrack to token {offset}: lookahead horizon of {horizon} "
            f"only keeps tokens from {oldest} onwards"
        )
