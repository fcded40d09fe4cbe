"""
Diagnostics for input a grammar did not consume
"""

from typing import List, Optional, Tuple
import logging

from token_tree import Delimiter, Group, TokenTree, TokenStream
from token_input import DelimToken


logger = logging.getLogger(__name__)

DEFAULT_MAX_TRAILING = 50

_OPENER_OF = {")": "(", "]": "[", "}": "{"}


class Incomplete:
    """Printable report of the tokens left over after a parse

    Only the first `max_trailing` leaves are kept for display; the rest are
    counted so the report can say how many were left out.

        value, trailing = grammar.parse(stream)
        diagnostic = Incomplete.from_stream(trailing)
        if diagnostic is not None:
            raise SyntaxError(f"unexpected tokens at end of input:\\n\\n{diagnostic}")
    """

    def __init__(self, trailing: TokenStream, total: int, max_trailing: int = DEFAULT_MAX_TRAILING):
        self.trailing = trailing
        self.total = total
        self.max_trailing = max_trailing

    @classmethod
    def from_stream(cls, stream, max_trailing: int = DEFAULT_MAX_TRAILING) -> Optional['Incomplete']:
        """Drain `stream`; None if nothing was left in it"""
        top: List[TokenTree] = []
        open_groups: List[Tuple[DelimToken, List[TokenTree]]] = []
        total = 0

        for token in iter(stream.next_token, None):
            if isinstance(token, DelimToken):
                if total >= max_trailing:
                    continue
                if token.is_open:
                    open_groups.append((token, []))
                elif open_groups and open_groups[-1][0].char == _OPENER_OF[token.char]:
                    opener, children = open_groups.pop()
                    parent = open_groups[-1][1] if open_groups else top
                    parent.append(_rebuild(opener, children))
                # Closes of groups opened before the parse stopped are dropped
                continue

            total += 1
            if total <= max_trailing:
                parent = open_groups[-1][1] if open_groups else top
                parent.append(token.to_tree())

        # Groups cut short by the cap
        while open_groups:
            opener, children = open_groups.pop()
            parent = open_groups[-1][1] if open_groups else top
            parent.append(_rebuild(opener, children))

        if not top and total == 0:
            return None
        if total > max_trailing:
            logger.debug("trailing input truncated to %d of %d tokens", max_trailing, total)
        return cls(TokenStream(top), total, max_trailing)

    def __repr__(self) -> str:
        return f"Incomplete(total={self.total}, max_trailing={self.max_trailing})"

    def __str__(self) -> str:
        rendered = str(self.trailing)
        if self.total > self.max_trailing:
            more = f"[and {self.total - self.max_trailing} more ...]"
            return f"{rendered} {more}" if rendered else more
        return rendered


def _rebuild(opener: DelimToken, children: List[TokenTree]) -> Group:
    return Group(Delimiter.from_char(opener.char), TokenStream(children), opener.span)
