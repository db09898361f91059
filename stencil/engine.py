"""
Main rendering entry point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pathspec

from .cache.fs_cache import CacheSnapshot, CompilationCache
from .config import EngineConfig, load_config
from .errors import StencilUserError
from .filters import FilterRegistry, Translator, YamlTranslator, default_registry
from .template.compiler import TemplateCompiler
from .template.loader import TemplatePathResolver
from .template.nodes import ParsedTemplate
from .template.parser import parse_template
from .template.renderer import TemplateRenderer
from .version import tool_version

logger = logging.getLogger(__name__)


@dataclass
class WarmUpReport:
    compiled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"compiled": self.compiled, "skipped": self.skipped, "errors": self.errors}


class TemplateEngine:
    """
    Engine coordinating class.

    Manages interaction between components:
    - TemplatePathResolver for name -> file resolution
    - TemplateCompiler and CompilationCache for compiled ASTs
    - TemplateRenderer with the filter registry for output
    """

    def __init__(
        self,
        config: EngineConfig,
        *,
        filters: Optional[FilterRegistry] = None,
        translator: Optional[Translator] = None,
        cache: Optional[CompilationCache] = None,
    ):
        """
        Initialize engine with the given configuration.

        Args:
            config: Engine settings
            filters: Custom registry; defaults to the built-in filters
            translator: Translation service; defaults to YAML files when configured
            cache: Custom cache; defaults to the configured cache directory
        """
        self.config = config
        self.resolver = TemplatePathResolver(config.search_paths(), config.extension)
        self.compiler = TemplateCompiler(self.resolver)

        self.cache = cache or CompilationCache(
            config.cache_dir(),
            enabled=config.cache.enabled,
            tool_version=tool_version(),
        )

        if translator is None and config.translations_dir() is not None:
            translator = YamlTranslator(
                config.translations_dir(),
                config.translations.locale,
                config.translations.fallback_locale,
            )
        self.translator = translator
        self.filters = filters if filters is not None else default_registry(translator)

        self.renderer = TemplateRenderer(
            self.filters,
            self.get_template,
            auto_escape=config.auto_escape,
            max_depth=config.max_include_depth,
        )

    @classmethod
    def from_root(cls, root: Optional[Path] = None, config_path: Optional[Path] = None, **kwargs: Any) -> "TemplateEngine":
        """Build an engine from <root>/templating.yaml (or an explicit file)."""
        return cls(load_config(root, config_path), **kwargs)

    # ----------------------------- templates ----------------------------- #

    def get_template(self, name: str) -> ParsedTemplate:
        """
        Compiled template for ``name``, from the cache when still valid.

        Raises:
            TemplateNotFoundError: Unknown template
            TemplateSyntaxError: Template does not parse
        """
        template_id = self.resolver.normalize(name)
        cached = self.cache.load(template_id)
        if cached is not None:
            return cached

        compiled = self.compiler.compile(name)
        self.cache.store(template_id, compiled.source_path, compiled.parsed, compiled.dependencies)
        return compiled.parsed

    def render(self, name: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """Render a template by name."""
        return self.renderer.render(self.get_template(name), data)

    def render_string(self, source: str, data: Optional[Mapping[str, Any]] = None, name: str = "<string>") -> str:
        """Render template source directly (never cached)."""
        return self.renderer.render(parse_template(source, name), data)

    # ----------------------------- warm-up ----------------------------- #

    def list_templates(self) -> List[str]:
        """Template names selected by the warm-up include/exclude patterns."""
        warmup = self.config.cache.warmup
        include = pathspec.PathSpec.from_lines("gitwildmatch", warmup.include)
        exclude = pathspec.PathSpec.from_lines("gitwildmatch", warmup.exclude) if warmup.exclude else None

        names: List[str] = []
        for name, _path in self.resolver.iter_templates():
            if not include.match_file(name):
                continue
            if exclude is not None and exclude.match_file(name):
                continue
            names.append(name)
        return names

    def warm_up(self, force: bool = False) -> WarmUpReport:
        """
        Compile every selected template into the cache.

        Per-template failures are collected in the report, not raised.
        """
        report = WarmUpReport()
        for name in self.list_templates():
            template_id = self.resolver.normalize(name)
            if not force and self.cache.is_valid(template_id):
                report.skipped.append(name)
                continue
            try:
                compiled = self.compiler.compile(name)
            except (StencilUserError, OSError, UnicodeDecodeError) as e:
                logger.warning("Warm-up failed for %s: %s", name, e)
                report.errors[name] = str(e)
                continue
            self.cache.store(template_id, compiled.source_path, compiled.parsed, compiled.dependencies)
            report.compiled.append(name)
        return report

    # ----------------------------- cache ----------------------------- #

    def cache_status(self) -> CacheSnapshot:
        return self.cache.snapshot()

    def clear_cache(self) -> CacheSnapshot:
        self.cache.clear()
        return self.cache.snapshot()


__all__ = ["TemplateEngine", "WarmUpReport"]
