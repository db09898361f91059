from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..cache.fs_cache import DEFAULT_CACHE_DIR
from ..errors import StencilUserError


class ConfigError(StencilUserError):
    """Invalid templating.yaml contents."""
    pass


def _check_keys(section: str, data: Dict[str, Any], allowed: set) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        where = f" in '{section}'" if section else ""
        raise ConfigError(f"Unknown config key(s){where}: {', '.join(unknown)}")


def _mapping(section: str, value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{section}' must be a mapping")
    return value


def _str_list(section: str, value: Any, default: List[str]) -> List[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{section}' must be a list of strings")
    return list(value)


@dataclass
class WarmupConfig:
    include: List[str] = field(default_factory=lambda: ["**/*.html"])
    exclude: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WarmupConfig":
        _check_keys("cache.warmup", data, {"include", "exclude"})
        return cls(
            include=_str_list("cache.warmup.include", data.get("include"), ["**/*.html"]),
            exclude=_str_list("cache.warmup.exclude", data.get("exclude"), []),
        )


@dataclass
class CacheConfig:
    enabled: bool = True
    dir: str = DEFAULT_CACHE_DIR
    warmup: WarmupConfig = field(default_factory=WarmupConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        _check_keys("cache", data, {"enabled", "dir", "warmup"})
        return cls(
            enabled=bool(data.get("enabled", True)),
            dir=str(data.get("dir", DEFAULT_CACHE_DIR)),
            warmup=WarmupConfig.from_dict(_mapping("cache.warmup", data.get("warmup"))),
        )


@dataclass
class TranslationConfig:
    dir: Optional[str] = None
    locale: str = "en"
    fallback_locale: str = "en"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranslationConfig":
        _check_keys("translations", data, {"dir", "locale", "fallback_locale"})
        raw_dir = data.get("dir")
        return cls(
            dir=None if raw_dir is None else str(raw_dir),
            locale=str(data.get("locale", "en")),
            fallback_locale=str(data.get("fallback_locale", "en")),
        )


@dataclass
class EngineConfig:
    """
    Engine settings. Relative paths are resolved against ``root``.
    """
    root: Path = field(default_factory=Path.cwd)
    paths: List[str] = field(default_factory=lambda: ["templates"])
    extension: str = ".html"
    auto_escape: bool = True
    max_include_depth: int = 32
    cache: CacheConfig = field(default_factory=CacheConfig)
    translations: TranslationConfig = field(default_factory=TranslationConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root: Path) -> "EngineConfig":
        _check_keys("", data, {
            "paths", "extension", "auto_escape", "max_include_depth", "cache", "translations",
        })
        depth = data.get("max_include_depth", 32)
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 1:
            raise ConfigError("'max_include_depth' must be a positive integer")
        return cls(
            root=root,
            paths=_str_list("paths", data.get("paths"), ["templates"]),
            extension=str(data.get("extension", ".html")),
            auto_escape=bool(data.get("auto_escape", True)),
            max_include_depth=depth,
            cache=CacheConfig.from_dict(_mapping("cache", data.get("cache"))),
            translations=TranslationConfig.from_dict(_mapping("translations", data.get("translations"))),
        )

    def search_paths(self) -> List[Path]:
        return [(self.root / p).resolve() for p in self.paths]

    def cache_dir(self) -> Path:
        return (self.root / self.cache.dir).resolve()

    def translations_dir(self) -> Optional[Path]:
        if self.translations.dir is None:
            return None
        return (self.root / self.translations.dir).resolve()


__all__ = ["EngineConfig", "CacheConfig", "WarmupConfig", "TranslationConfig", "ConfigError"]
