"""
Token matchers
The leaves of every grammar: identifiers, keywords, literals, punctuation and
explicit delimiters. Each one looks at exactly one token, consumes it on
success and leaves the stream untouched on failure.
"""

from typing import Any, List, Optional, Tuple

from token_tree import Delimiter
from token_input import Token, DelimToken, PunctToken, IdentToken, LiteralToken
from combinators import Parser, between
from error_handling import TokenParseError, InvalidMatcherError, InvalidDelimiterError


DELIMITER_CHARS = "()[]{}"


class TokenMatcher(Parser):
    """Match a single token

    Subclasses supply `accept`, returning the output for a matching token or
    None, and `describe`, the label reported when the match fails.
    """

    def accept(self, token: Token) -> Any:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def expected(self) -> List[str]:
        return [self.describe()]

    def _parse(self, stream) -> Tuple[Any, Optional[TokenParseError]]:
        start = stream.position()
        checkpoint = stream.checkpoint()
        token = stream.next_token()
        if token is not None:
            output = self.accept(token)
            if output is not None:
                return output, None
        stream.restore(checkpoint)
        raise TokenParseError(start, token, self.expected())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()!r})"


class IdentMatcher(TokenMatcher):

    def accept(self, token: Token) -> Any:
        if isinstance(token, IdentToken):
            return token.node
        return None

    def describe(self) -> str:
        return "IDENT"


class KeywordMatcher(TokenMatcher):

    def __init__(self, word: str):
        self.word = word

    def accept(self, token: Token) -> Any:
        if isinstance(token, IdentToken) and token.text == self.word:
            return token
        return None

    def describe(self) -> str:
        return self.word


class LiteralMatcher(TokenMatcher):

    def accept(self, token: Token) -> Any:
        if isinstance(token, LiteralToken):
            return token.node
        return None

    def describe(self) -> str:
        return "LITERAL"


class PunctMatcher(TokenMatcher):

    def __init__(self, char: str):
        self.char = char

    def accept(self, token: Token) -> Any:
        if isinstance(token, PunctToken) and token.to_char() == self.char:
            return token
        return None

    def describe(self) -> str:
        return self.char


class DelimMatcher(TokenMatcher):

    def __init__(self, char: str):
        if not isinstance(char, str) or len(char) != 1 or char not in DELIMITER_CHARS:
            raise InvalidDelimiterError(char)
        self.char = char

    def accept(self, token: Token) -> Any:
        if isinstance(token, DelimToken) and token.char == self.char:
            return token
        return None

    def describe(self) -> str:
        return self.char


def _single_char(char: str, kind: str) -> str:
    if not isinstance(char, str) or len(char) != 1:
        raise InvalidMatcherError(f"{kind} expects a single character, got {char!r}")
    return char


def ident() -> IdentMatcher:
    """Any identifier; the value is the Ident node"""
    return IdentMatcher()


def keyword(word: str) -> KeywordMatcher:
    """An identifier spelled exactly `word`; the value is the token"""
    if not isinstance(word, str) or not word:
        raise InvalidMatcherError(f"keyword expects a non-empty string, got {word!r}")
    return KeywordMatcher(word)


def literal() -> LiteralMatcher:
    """Any string, char or numeric literal; the value is the Literal node"""
    return LiteralMatcher()


def punct(char: str) -> PunctMatcher:
    """A punctuation token for `char`

    Delimiters are never punctuation; use `delim` for ( ) { } [ ].
    """
    return PunctMatcher(_single_char(char, "punct"))


def delim(char: str) -> DelimMatcher:
    """An open or close delimiter token; `char` must be one of ( ) { } [ ]"""
    return DelimMatcher(char)


def group(delimiter: Delimiter, parser: Parser) -> Parser:
    """`parser` enclosed in the delimiters of a visible group kind"""
    if delimiter is Delimiter.NONE:
        raise InvalidMatcherError("invisible groups produce no delimiter tokens to match")
    return between(delim(delimiter.open_char), delim(delimiter.close_char), parser)
