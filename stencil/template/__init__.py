"""
Template language: lexer, parser, AST, resolver, renderer and compiler.
"""

from __future__ import annotations

from .compiler import CompiledTemplate, TemplateCompiler
from .errors import (
    TemplateError,
    TemplateInheritanceError,
    TemplateNotFoundError,
    TemplateRenderError,
    TemplateSyntaxError,
    UnknownFilterError,
)
from .lexer import tokenize_template
from .loader import TemplatePathResolver
from .nodes import ParsedTemplate
from .parser import parse_template
from .renderer import TemplateRenderer
from .resolver import VariableResolver

__all__ = [
    "CompiledTemplate",
    "TemplateCompiler",
    "TemplateError",
    "TemplateInheritanceError",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "TemplateSyntaxError",
    "UnknownFilterError",
    "tokenize_template",
    "TemplatePathResolver",
    "ParsedTemplate",
    "parse_template",
    "TemplateRenderer",
    "VariableResolver",
]
