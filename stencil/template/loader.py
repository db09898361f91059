"""
Template name -> file path resolution.

Names are POSIX-style paths relative to one of the search directories.
A name without a ``.`` gets the default extension appended.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import TemplateNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".html"


class TemplatePathResolver:
    """Searches the configured directories in order; first existing file wins."""

    def __init__(self, search_paths: Iterable[Path], extension: str = DEFAULT_EXTENSION):
        self.search_paths: List[Path] = [Path(p).resolve() for p in search_paths]
        self.extension = extension if not extension or extension.startswith(".") else f".{extension}"

    def normalize(self, name: str) -> str:
        """Strip surrounding whitespace/slashes and append the extension when missing."""
        name = name.strip().replace("\\", "/").lstrip("/")
        if "." not in Path(name).name and self.extension:
            name += self.extension
        return name

    def find(self, name: str) -> Optional[Path]:
        """Like resolve() but returns None instead of raising."""
        normalized = self.normalize(name)
        if not normalized:
            return None
        for base in self.search_paths:
            candidate = (base / normalized).resolve()
            if not _is_within(candidate, base):
                logger.debug("Template name %r escapes search path %s", name, base)
                continue
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, name: str) -> Path:
        """
        Resolve a template name to an absolute file path.

        Raises:
            TemplateNotFoundError: If no search directory contains the template
        """
        found = self.find(name)
        if found is None:
            raise TemplateNotFoundError(name, [str(p) for p in self.search_paths])
        return found

    def iter_templates(self) -> Iterator[Tuple[str, Path]]:
        """
        Yield ``(name, path)`` for every file under the search directories.

        Names shadowed by an earlier search directory are skipped.
        """
        seen = set()
        for base in self.search_paths:
            if not base.is_dir():
                continue
            for path in sorted(base.rglob("*")):
                if not path.is_file():
                    continue
                name = path.relative_to(base).as_posix()
                if name in seen:
                    continue
                seen.add(name)
                yield name, path


def _is_within(path: Path, base: Path) -> bool:
    try:
        path.relative_to(base)
        return True
    except ValueError:
        return False


__all__ = ["TemplatePathResolver", "DEFAULT_EXTENSION"]
