"""
Template error taxonomy.

Compile-time failures (TemplateSyntaxError) always abort compilation.
Render-time failures are either fatal to the render call (unknown filter,
missing parent template, inheritance cycle) or recovered locally by the
renderer (include failures).
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from ..errors import StencilUserError


class TemplateError(StencilUserError):
    """Base class for errors raised while compiling or rendering templates."""
    pass


class TemplateSyntaxError(TemplateError):
    """
    Syntax error in template source.

    Carries the offending source offset, the derived line/column
    and the tag (block command or marker) that failed.
    """

    def __init__(
        self,
        message: str,
        position: int = 0,
        *,
        tag: str = "",
        template_name: str = "",
        line: int = 0,
        column: int = 0,
    ):
        self.message = message
        self.position = position
        self.tag = tag
        self.template_name = template_name
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"line {self.line}, column {self.column}" if self.line else f"position {self.position}"
        name = f" in '{self.template_name}'" if self.template_name else ""
        tag = f" (tag: {self.tag})" if self.tag else ""
        return f"{self.message}{name} at {where}{tag}"


class TemplateNotFoundError(TemplateError):
    """Raised when a template name cannot be resolved to a file."""

    def __init__(self, name: str, searched: Iterable[str] = ()):
        self.name = name
        self.searched: List[str] = list(searched)
        where = f" Searched: {', '.join(self.searched)}" if self.searched else ""
        super().__init__(f"Template '{name}' not found.{where}")


class UnknownFilterError(TemplateError):
    """Raised when a filter chain references a name absent from the registry."""

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available: List[str] = sorted(available)
        super().__init__(
            f"Unknown filter '{name}'. Available: {', '.join(self.available) or '(none)'}"
        )


class TemplateInheritanceError(TemplateError):
    """Extends cycle, or include/extends nesting deeper than allowed."""
    pass


class TemplateRenderError(TemplateError):
    """Unexpected failure while rendering (filter or data accessor raised)."""

    def __init__(self, message: str, template_name: str = "", cause: Optional[BaseException] = None):
        self.template_name = template_name
        self.cause = cause
        name = f" in '{template_name}'" if template_name else ""
        super().__init__(f"Render error{name}: {message}")


__all__ = [
    "TemplateError",
    "TemplateSyntaxError",
    "TemplateNotFoundError",
    "UnknownFilterError",
    "TemplateInheritanceError",
    "TemplateRenderError",
]
