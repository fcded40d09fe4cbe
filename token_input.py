"""
Flattened token input for parser combinators
Turns a nested token tree into a linear stream of tokens with positions,
checkpoint/restore and an optional bounded lookahead buffer
"""

from typing import Deque, Iterable, List, Optional, Tuple, Union
from dataclasses import dataclass, field, replace
from collections import deque
import functools
import logging

from token_tree import (
    Span, Delimiter, Spacing, Ident, Literal, Punct, Group, TokenTree, TokenStream,
    parse_token_stream,
)
from error_handling import BacktrackError


logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD = 1


# ==================== TOKEN ALPHABET ====================

class Token:
    """A single flattened token

    Tokens of the same kind are equal when their surface text is equal, so
    spans never take part in comparisons.
    """

    span: Span

    def to_char(self) -> Optional[str]:
        return None

    def to_tree(self) -> TokenTree:
        raise NotImplementedError

    def __eq__(self, other) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return type(self) is type(other) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash((type(self).__name__, str(self)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


@dataclass(frozen=True, eq=False, repr=False)
class DelimToken(Token):
    """Synthetic open/close marker produced when a group is flattened"""
    char: str
    span: Span = field(default_factory=Span.call_site)

    @property
    def is_open(self) -> bool:
        return self.char in "([{"

    def to_char(self) -> Optional[str]:
        return self.char

    def to_tree(self) -> TokenTree:
        raise ValueError(f"delimiter `{self.char}` has no token tree form outside its group")

    def __str__(self) -> str:
        return self.char


@dataclass(frozen=True, eq=False, repr=False)
class PunctToken(Token):
    node: Punct

    @property
    def span(self) -> Span:
        return self.node.span

    def to_char(self) -> Optional[str]:
        return self.node.char

    def to_tree(self) -> TokenTree:
        return self.node

    def __str__(self) -> str:
        return self.node.char


@dataclass(frozen=True, eq=False, repr=False)
class IdentToken(Token):
    node: Ident

    @property
    def span(self) -> Span:
        return self.node.span

    @property
    def text(self) -> str:
        return self.node.text

    def to_tree(self) -> TokenTree:
        return self.node

    def __str__(self) -> str:
        return self.node.text


@dataclass(frozen=True, eq=False, repr=False)
class LiteralToken(Token):
    node: Literal

    @property
    def span(self) -> Span:
        return self.node.span

    def to_tree(self) -> TokenTree:
        return self.node

    def __str__(self) -> str:
        return self.node.text


# ==================== POSITIONS ====================

@functools.total_ordering
@dataclass(frozen=True, eq=False)
class SpanPosition:
    """How far into the stream we are, plus the span of the last token consumed

    Ordered by the token count only; the span is carried for display.
    """
    ordinal: int = 0
    span: Span = field(default_factory=Span.call_site)

    def into_span(self) -> Span:
        return self.span

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpanPosition):
            return NotImplemented
        return self.ordinal == other.ordinal

    def __lt__(self, other) -> bool:
        if not isinstance(other, SpanPosition):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __hash__(self) -> int:
        return hash(self.ordinal)

    def __str__(self) -> str:
        if self.span == Span.call_site():
            return f"token {self.ordinal}"
        return f"token {self.ordinal} ({self.span})"


# ==================== STREAM ADAPTER ====================

@dataclass
class _Frame:
    """Remaining children of one nesting level and the close token owed after them"""
    trees: Tuple[TokenTree, ...]
    index: int = 0
    close: Optional[DelimToken] = None
    # None for the implicit top level
    delimiter: Optional[Delimiter] = None
    span: Span = field(default_factory=Span.call_site)

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.trees)

    def peek(self) -> TokenTree:
        return self.trees[self.index]

    def advance(self) -> TokenTree:
        tree = self.trees[self.index]
        self.index += 1
        return tree

    def remaining(self) -> Tuple[TokenTree, ...]:
        return self.trees[self.index:]


@dataclass(frozen=True)
class InputCheckpoint:
    frames: Tuple[_Frame, ...]
    ordinal: int
    span: Span


class Input:
    """A nested TokenStream viewed as a flat stream of tokens

    Groups are flattened lazily: entering a group pushes a frame and yields
    its open delimiter, leaving it pops the frame and yields the close
    delimiter. Invisible groups yield no delimiter tokens at all.
    """

    def __init__(self, stream: Union[TokenStream, Iterable[TokenTree]] = ()):
        self._frames: List[_Frame] = [_Frame(tuple(stream))]
        self._ordinal = 0
        self._span = Span.call_site()
        self._settle()

    @classmethod
    def from_tree(cls, tree: Union[TokenStream, TokenTree, Iterable[TokenTree]]) -> 'Input':
        if isinstance(tree, (Ident, Literal, Punct, Group)):
            tree = (tree,)
        return cls(tree)

    @classmethod
    def from_text(cls, text: str, filename: str = "<input>") -> 'Input':
        return cls(parse_token_stream(text, filename))

    def __repr__(self) -> str:
        return f"Input(position={self.position()}, depth={self.depth})"

    @property
    def depth(self) -> int:
        """Number of open frames, the implicit top level included"""
        return len(self._frames)

    def is_empty(self) -> bool:
        """True if no tokens of any kind remain"""
        return not self._frames

    def position(self) -> SpanPosition:
        return SpanPosition(self._ordinal, self._span)

    def next_token(self) -> Optional[Token]:
        """Produce the next token, or None at end of input"""
        while self._frames:
            frame = self._frames[-1]
            if frame.exhausted:
                self._frames.pop()
                if frame.close is not None:
                    return self._produced(frame.close)
                continue
            token = self._ungroup(frame.advance())
            if token is not None:
                return self._produced(token)
        return None

    def peek(self) -> Optional[Token]:
        checkpoint = self.checkpoint()
        token = self.next_token()
        self.restore(checkpoint)
        return token

    def __iter__(self) -> 'Input':
        return self

    def __next__(self) -> Token:
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    def _ungroup(self, tree: TokenTree) -> Optional[Token]:
        if isinstance(tree, Ident):
            return IdentToken(tree)
        if isinstance(tree, Literal):
            return LiteralToken(tree)
        if isinstance(tree, Punct):
            return PunctToken(tree)

        if tree.delimiter is Delimiter.NONE:
            self._frames.append(_Frame(tuple(tree.stream), delimiter=tree.delimiter, span=tree.span))
            return None

        close = DelimToken(tree.delimiter.close_char, tree.span)
        self._frames.append(_Frame(tuple(tree.stream), close=close, delimiter=tree.delimiter, span=tree.span))
        return DelimToken(tree.delimiter.open_char, tree.span)

    def _produced(self, token: Token) -> Token:
        self._ordinal += 1
        self._span = token.span
        self._settle()
        return token

    def _settle(self):
        """Drop frames with nothing left to yield and enter invisible groups

        Keeps the frame stack empty exactly when no token remains.
        """
        while self._frames:
            frame = self._frames[-1]
            if frame.exhausted:
                if frame.close is not None:
                    return
                self._frames.pop()
                continue
            tree = frame.peek()
            if isinstance(tree, Group) and tree.delimiter is Delimiter.NONE:
                frame.advance()
                self._frames.append(_Frame(tuple(tree.stream), delimiter=tree.delimiter, span=tree.span))
                continue
            return

    def checkpoint(self) -> InputCheckpoint:
        return InputCheckpoint(tuple(replace(frame) for frame in self._frames), self._ordinal, self._span)

    def restore(self, checkpoint: InputCheckpoint):
        self._frames = [replace(frame) for frame in checkpoint.frames]
        self._ordinal = checkpoint.ordinal
        self._span = checkpoint.span

    def into_tree(self) -> TokenStream:
        """Rebuild the unconsumed remainder as a TokenStream

        Close delimiters whose open was already consumed come back as plain
        puncts so the host sees the same text it handed over.
        """
        trees: List[TokenTree] = []
        for frame in reversed(self._frames):
            content = trees + list(frame.remaining())
            if frame.delimiter is Delimiter.NONE:
                trees = [Group(Delimiter.NONE, TokenStream(content), frame.span)]
            elif frame.close is not None:
                trees = content + [Punct(frame.close.char, Spacing.ALONE, frame.close.span)]
            else:
                trees = content
        return TokenStream(trees)

    def with_lookahead(self, horizon: int = DEFAULT_LOOKAHEAD) -> 'LookaheadInput':
        return LookaheadInput(self, horizon)


# ==================== LOOKAHEAD BUFFER ====================

@dataclass(frozen=True)
class LookaheadCheckpoint:
    offset: int


class LookaheadInput:
    """Keeps the last `horizon` tokens of a source so they can be replayed

    Every token is pulled from the source once. Rewinding to a token that
    has already fallen out of the buffer raises BacktrackError.
    """

    def __init__(self, source, horizon: int = DEFAULT_LOOKAHEAD):
        if horizon < 1:
            raise ValueError(f"lookahead horizon must be at least 1, got {horizon}")
        self._source = source
        self.horizon = horizon
        # (position before the token, token)
        self._buffer: Deque[Tuple[SpanPosition, Token]] = deque(maxlen=horizon)
        self._offset = 0
        self._produced = 0

    def __repr__(self) -> str:
        return f"LookaheadInput(position={self.position()}, horizon={self.horizon})"

    def _entry(self, offset: int) -> Tuple[SpanPosition, Token]:
        return self._buffer[len(self._buffer) - (self._produced - offset)]

    def _pull(self) -> Optional[Token]:
        before = self._source.position()
        token = self._source.next_token()
        if token is not None:
            self._buffer.append((before, token))
            self._produced += 1
        return token

    def is_empty(self) -> bool:
        return self._offset >= self._produced and self._source.is_empty()

    def position(self) -> SpanPosition:
        if self._offset < self._produced:
            return self._entry(self._offset)[0]
        return self._source.position()

    def next_token(self) -> Optional[Token]:
        if self._offset < self._produced:
            token = self._entry(self._offset)[1]
        else:
            token = self._pull()
            if token is None:
                return None
        self._offset += 1
        return token

    def peek(self, distance: int = 0) -> Optional[Token]:
        """Token `distance` places ahead, without consuming anything"""
        if not 0 <= distance < self.horizon:
            raise ValueError(f"can only peek 0..{self.horizon - 1} tokens ahead, got {distance}")
        target = self._offset + distance
        while self._produced <= target:
            if self._pull() is None:
                return None
        return self._entry(target)[1]

    def __iter__(self) -> 'LookaheadInput':
        return self

    def __next__(self) -> Token:
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    def checkpoint(self) -> LookaheadCheckpoint:
        return LookaheadCheckpoint(self._offset)

    def restore(self, checkpoint: LookaheadCheckpoint):
        oldest = self._produced - len(self._buffer)
        if not oldest <= checkpoint.offset <= self._produced:
            logger.debug("backtrack to %d refused, buffer holds %d..%d",
                         checkpoint.offset, oldest, self._produced)
            raise BacktrackError(checkpoint.offset, oldest, self.horizon)
        self._offset = checkpoint.offset
