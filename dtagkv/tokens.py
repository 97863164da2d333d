"""Whitespace tokenising of command lines and a cursor over the tokens."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TextIO

_SEPARATORS = re.compile(r"[ \n]+")


def line_to_tokens(line: str, capacity: int) -> List[str]:
    """Split ``line`` on spaces and newlines, keeping at most ``capacity - 1`` tokens."""
    if capacity < 2:
        raise ValueError("capacity must be at least 2")
    tokens = [token for token in _SEPARATORS.split(line) if token]
    return tokens[:capacity - 1]


@dataclass
class TokenIter:
    """A cursor over a list of tokens."""

    tokens: List[str] = field(default_factory=list)
    position: int = 0

    def __post_init__(self) -> None:
        self.tokens = list(self.tokens)

    def top(self) -> Optional[str]:
        """Return the current token without consuming it, or None when exhausted."""
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def pop(self) -> Optional[str]:
        """Return the current token and move past it, or None when exhausted."""
        token = self.top()
        if token is not None:
            self.position += 1
        return token

    def remain(self) -> List[str]:
        """Return the tokens not yet consumed."""
        return self.tokens[self.position:]


def read_tokens(stream: TextIO, capacity: int) -> Optional[TokenIter]:
    """Read one line from ``stream`` and return a cursor over its tokens; None at end of input."""
    if capacity < 2:
        raise ValueError("capacity must be at least 2")
    line = stream.readline()
    if not line:
        return None
    return TokenIter(line_to_tokens(line, capacity))