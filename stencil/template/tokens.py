"""
Lexical types.

Tokens are immutable: produced once by the lexer, consumed once by the parser.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple


class TokenType(enum.Enum):
    """Token kinds emitted by the lexer."""
    TEXT = "TEXT"            # literal text between markers
    VARIABLE = "VARIABLE"    # {{ ... }}
    BLOCK = "BLOCK"          # {% ... %}


@dataclass(frozen=True)
class Token:
    """
    Token with positional information for precise error diagnostics.

    For TEXT tokens ``value`` is the verbatim source slice; for VARIABLE and
    BLOCK tokens it is the whitespace-normalized expression between markers.
    """
    type: TokenType
    value: str
    start: int          # offset of the first character (marker included)
    end: int            # offset just past the closing marker
    line: int = 1       # line number (1-based)
    column: int = 1     # column number (1-based)

    @property
    def command(self) -> str:
        """First whitespace-delimited word of a BLOCK token."""
        return self.value.split(" ", 1)[0] if self.value else ""

    @property
    def args(self) -> str:
        """Everything after the command word of a BLOCK token."""
        parts = self.value.split(" ", 1)
        return parts[1] if len(parts) > 1 else ""

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


def line_col(text: str, position: int) -> Tuple[int, int]:
    """Convert a source offset into a 1-based (line, column) pair."""
    position = max(0, min(position, len(text)))
    line = text.count("\n", 0, position) + 1
    last_nl = text.rfind("\n", 0, position)
    return line, position - last_nl


__all__ = ["TokenType", "Token", "line_col"]
