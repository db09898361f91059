"""
Errors a template author or operator can fix.

Anything deriving from StencilUserError is reported by the CLI as a single
``error: ...`` line with exit status 2. Other exceptions are bugs and keep
their traceback.
"""

from __future__ import annotations

USER_ERROR_EXIT = 2


class StencilUserError(Exception):
    """Bad template source, unknown template or filter, invalid config or data."""


def format_user_error(error: StencilUserError) -> str:
    """One stderr line for ``error``; multi-line messages are kept, trailing space dropped."""
    return f"error: {str(error).rstrip()}\n"


__all__ = ["StencilUserError", "USER_ERROR_EXIT", "format_user_error"]
