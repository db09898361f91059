"""
Lexical analyzer for the Stencil template engine.

Splits template source into a flat sequence of TEXT / VARIABLE / BLOCK tokens
delimited by ``{{ ... }}`` and ``{% ... %}``. Comments ``{# ... #}`` are
consumed and dropped.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .errors import TemplateSyntaxError
from .tokens import Token, TokenType, line_col

_WHITESPACE_RE = re.compile(r"\s+")

VARIABLE_START = "{{"
VARIABLE_END = "}}"
BLOCK_START = "{%"
BLOCK_END = "%}"
COMMENT_START = "{#"
COMMENT_END = "#}"


class TemplateLexer:
    """
    Template lexer.

    Scans left to right keeping a cursor; at each step finds the nearest
    opening marker, emits the text before it verbatim, then locates the
    matching closer with a plain substring search.
    """

    # opener -> (closer, token type or None for comments, label for diagnostics)
    _MARKERS: Dict[str, Tuple[str, Optional[TokenType], str]] = {
        VARIABLE_START: (VARIABLE_END, TokenType.VARIABLE, "variable"),
        BLOCK_START: (BLOCK_END, TokenType.BLOCK, "block"),
        COMMENT_START: (COMMENT_END, None, "comment"),
    }

    def __init__(self, text: str, template_name: str = ""):
        self.text = text
        self.template_name = template_name
        self.position = 0
        self.length = len(text)

    def tokenize(self) -> List[Token]:
        """
        Tokenize the whole source text.

        Raises:
            TemplateSyntaxError: On an opening marker without its closer
        """
        tokens: List[Token] = []

        while self.position < self.length:
            opener, marker_pos = self._find_next_marker()

            if opener is None:
                tokens.append(self._text_token(self.position, self.length))
                break

            if marker_pos > self.position:
                tokens.append(self._text_token(self.position, marker_pos))

            token = self._marker_token(opener, marker_pos)
            if token is not None:
                tokens.append(token)

        return tokens

    def _find_next_marker(self) -> Tuple[Optional[str], int]:
        """Return the nearest opening marker at or after the cursor."""
        nearest: Optional[str] = None
        nearest_pos = self.length
        for opener in self._MARKERS:
            pos = self.text.find(opener, self.position)
            if pos != -1 and pos < nearest_pos:
                nearest, nearest_pos = opener, pos
        return nearest, nearest_pos

    def _text_token(self, start: int, end: int) -> Token:
        line, column = line_col(self.text, start)
        return Token(TokenType.TEXT, self.text[start:end], start, end, line, column)

    def _marker_token(self, opener: str, start: int) -> Optional[Token]:
        closer, token_type, label = self._MARKERS[opener]
        inner_start = start + len(opener)
        close_pos = self.text.find(closer, inner_start)

        if close_pos == -1:
            line, column = line_col(self.text, start)
            raise TemplateSyntaxError(
                f"Unterminated {label} at position {start}",
                start,
                tag=opener,
                template_name=self.template_name,
                line=line,
                column=column,
            )

        end = close_pos + len(closer)
        self.position = end

        if token_type is None:
            return None

        line, column = line_col(self.text, start)
        expression = normalize_expression(self.text[inner_start:close_pos])
        return Token(token_type, expression, start, end, line, column)


def normalize_expression(expression: str) -> str:
    """Collapse internal whitespace (including newlines) to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", expression).strip()


def tokenize_template(text: str, template_name: str = "") -> List[Token]:
    """
    Convenience function for tokenizing a template.

    Args:
        text: Template source text
        template_name: Optional name for diagnostics

    Returns:
        List of tokens

    Raises:
        TemplateSyntaxError: On an unterminated marker
    """
    return TemplateLexer(text, template_name).tokenize()


__all__ = ["TemplateLexer", "tokenize_template", "normalize_expression"]
