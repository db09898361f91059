from __future__ import annotations

from functools import lru_cache
from importlib import metadata

# distribution name first, then the bare package name for editable checkouts
_DISTRIBUTIONS = ("stencil-templates", "stencil")


@lru_cache(maxsize=1)
def tool_version() -> str:
    """Installed version; recorded in every cache entry, so an upgrade invalidates them."""
    for dist in _DISTRIBUTIONS:
        try:
            return metadata.version(dist)
        except metadata.PackageNotFoundError:
            continue
    return "0.0.0"


__all__ = ["tool_version"]
