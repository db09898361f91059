from __future__ import annotations

from pathlib import Path

CONFIG_FILE = "templating.yaml"


def config_path(root: Path) -> Path:
    """Path to the project config file <root>/templating.yaml."""
    return (root / CONFIG_FILE).resolve()
