"""
Stencil: a small template engine with inheritance, includes,
filters and a dependency-aware compilation cache.
"""

from __future__ import annotations

from .config import ConfigError, EngineConfig, load_config
from .engine import TemplateEngine, WarmUpReport
from .errors import StencilUserError
from .filters import FilterRegistry, YamlTranslator
from .template import (
    ParsedTemplate,
    TemplateError,
    TemplateInheritanceError,
    TemplateNotFoundError,
    TemplateRenderError,
    TemplateSyntaxError,
    UnknownFilterError,
    parse_template,
)

__all__ = [
    "TemplateEngine",
    "WarmUpReport",
    "EngineConfig",
    "load_config",
    "ConfigError",
    "StencilUserError",
    "FilterRegistry",
    "YamlTranslator",
    "ParsedTemplate",
    "parse_template",
    "TemplateError",
    "TemplateInheritanceError",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "TemplateSyntaxError",
    "UnknownFilterError",
]
