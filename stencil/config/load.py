from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .model import ConfigError, EngineConfig
from .paths import config_path

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")


def _read_yaml_map(path: Path) -> Dict[str, Any]:
    """Read a YAML file that must hold a mapping; a missing file yields {}."""
    if not path.is_file():
        return {}
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def load_config(root: Optional[Path] = None, path: Optional[Path] = None) -> EngineConfig:
    """
    Load engine configuration.

    Args:
        root: Project root; defaults to the config file's directory or the cwd
        path: Explicit config file; defaults to <root>/templating.yaml

    Returns:
        EngineConfig with defaults for every missing key

    Raises:
        ConfigError: Invalid YAML, non-mapping document or unknown keys
    """
    if path is not None:
        path = Path(path).resolve()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        base = Path(root).resolve() if root is not None else path.parent
    else:
        base = Path(root).resolve() if root is not None else Path.cwd().resolve()
        path = config_path(base)

    raw = _read_yaml_map(path)
    if raw:
        logger.debug("Loaded config %s", path)
    return EngineConfig.from_dict(raw, base)


__all__ = ["load_config"]
