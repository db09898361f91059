from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..template.nodes import ParsedTemplate
from ..template.serialize import SerializationError, dump_template, load_template

logger = logging.getLogger(__name__)

CACHE_VERSION = 2
DEFAULT_CACHE_DIR = ".stencil-cache"
CACHE_ENV = "STENCIL_CACHE"

_BUCKET = "compiled"


def _sha1_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _mtime_ns(path: Path) -> Optional[int]:
    try:
        st = path.stat()
    except OSError:
        return None
    return int(getattr(st, "st_mtime_ns", int(st.st_mtime * 1e9)))


def cache_enabled_from_env(default: bool = True) -> bool:
    """Honor ``STENCIL_CACHE=0|false|no|off``; otherwise return ``default``."""
    env = os.environ.get(CACHE_ENV, None)
    if env is None:
        return default
    return env.strip().lower() not in {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class CacheSnapshot:
    enabled: bool
    path: Path
    exists: bool
    size_bytes: int
    entries: int


class CompilationCache:
    """
    File cache of compiled templates.

    One JSON entry per template id, laid out in sha1-prefixed buckets:
      <dir>/compiled/ab/cd/abcd....json
    An entry holds the format version, the source path, the compile time,
    the mtimes of the source and of every dependency, and the serialized AST.

    Reads never fail: a corrupt entry is deleted and reported as a miss.
    Writes go to a temporary file in the target directory and are renamed
    into place, so readers see either the old or the new complete entry.
    """

    def __init__(self, directory: Path, *, enabled: Optional[bool] = None, tool_version: str = "0.0.0"):
        self.enabled = cache_enabled_from_env(True if enabled is None else bool(enabled))
        self.tool_version = tool_version
        self.dir = Path(directory)
        if self.enabled:
            try:
                _ensure_dir(self.dir)
            except OSError as e:
                logger.warning("Cache disabled, cannot create %s: %s", self.dir, e)
                self.enabled = False

    # --------------------------- validity --------------------------- #

    def is_valid(self, template_id: str, dependencies: Optional[Iterable[Path]] = None) -> bool:
        """
        True when the stored entry is still usable.

        Invalid when the version differs, the source is gone or modified
        after compilation, or any recorded dependency is missing or changed.
        ``dependencies`` lists paths the caller expects to be tracked; an
        untracked one also invalidates the entry.
        """
        entry = self._read_entry(template_id)
        return entry is not None and self._entry_valid(template_id, entry, dependencies)

    def _entry_valid(
        self,
        template_id: str,
        entry: Dict[str, Any],
        dependencies: Optional[Iterable[Path]] = None,
    ) -> bool:
        try:
            return self._check_entry(template_id, entry, dependencies)
        except (TypeError, ValueError, AttributeError) as e:
            self._discard(template_id, f"malformed metadata: {e}")
            return False

    def _check_entry(
        self,
        template_id: str,
        entry: Dict[str, Any],
        dependencies: Optional[Iterable[Path]],
    ) -> bool:
        if entry.get("v") != CACHE_VERSION or entry.get("tool") != self.tool_version:
            logger.debug("Cache stale (version) for %s", template_id)
            return False

        source = Path(entry.get("source_path", ""))
        current = _mtime_ns(source)
        if current is None:
            logger.debug("Cache stale (source missing) for %s", template_id)
            return False
        compiled_at = float(entry.get("compiled_at", 0))
        if current / 1e9 > compiled_at or current != entry.get("source_mtime_ns"):
            logger.debug("Cache stale (source modified) for %s", template_id)
            return False

        recorded: Dict[str, int] = entry.get("dependencies") or {}
        for dep_path, dep_mtime in recorded.items():
            if _mtime_ns(Path(dep_path)) != dep_mtime:
                logger.debug("Cache stale (dependency %s changed) for %s", dep_path, template_id)
                return False

        for dep in dependencies or ():
            if str(Path(dep)) not in recorded:
                logger.debug("Cache stale (untracked dependency %s) for %s", dep, template_id)
                return False

        return True

    # --------------------------- load / store --------------------------- #

    def load(self, template_id: str) -> Optional[ParsedTemplate]:
        """Return the cached AST if present and valid, else None."""
        entry = self._read_entry(template_id)
        if entry is None:
            logger.debug("Cache miss for %s", template_id)
            return None
        if not self._entry_valid(template_id, entry):
            return None
        try:
            parsed = load_template(entry.get("ast"))
        except SerializationError as e:
            self._discard(template_id, f"malformed AST: {e}")
            return None
        logger.debug("Cache hit for %s", template_id)
        return parsed

    def store(
        self,
        template_id: str,
        source_path: Path,
        compiled: ParsedTemplate,
        dependencies: Iterable[Path] = (),
    ) -> bool:
        """Persist a compiled template; returns False when nothing was written."""
        if not self.enabled:
            return False

        source_mtime = _mtime_ns(source_path)
        if source_mtime is None:
            return False

        deps: Dict[str, int] = {}
        for dep in dependencies:
            mtime = _mtime_ns(dep)
            if mtime is not None:
                deps[str(dep)] = mtime

        entry = {
            "v": CACHE_VERSION,
            "tool": self.tool_version,
            "template": template_id,
            "source_path": str(source_path),
            "source_mtime_ns": source_mtime,
            "compiled_at": time.time(),
            "dependencies": deps,
            "ast": dump_template(compiled),
        }
        return self._atom_write(self._entry_path(template_id), entry)

    def forget(self, template_id: str) -> None:
        """Remove the entry for one template (no-op if absent)."""
        try:
            self._entry_path(template_id).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove cache entry for %s: %s", template_id, e)

    # --------------------------- IO helpers --------------------------- #

    def _entry_path(self, template_id: str) -> Path:
        key = _sha1_text(template_id)
        return self.dir / _BUCKET / key[:2] / key[2:4] / f"{key}.json"

    def _read_entry(self, template_id: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        path = self._entry_path(template_id)
        if not path.is_file():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self._discard(template_id, str(e))
            return None
        if not isinstance(data, dict):
            self._discard(template_id, "entry is not an object")
            return None
        return data

    def _discard(self, template_id: str, reason: str) -> None:
        logger.warning("Discarding corrupt cache entry for %s: %s", template_id, reason)
        self.forget(template_id)

    def _atom_write(self, path: Path, data: dict) -> bool:
        tmp_name = None
        try:
            _ensure_dir(path.parent)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=path.stem[:8], suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to write cache entry %s: %s", path, e)
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return False

    # --------------------------- MAINTENANCE --------------------------- #

    def clear(self) -> bool:
        """Remove every cache entry."""
        try:
            if self.dir.exists():
                shutil.rmtree(self.dir, ignore_errors=True)
            if self.enabled:
                self.dir.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.warning("Failed to clear cache %s: %s", self.dir, e)
            return False

    def snapshot(self) -> CacheSnapshot:
        """Best-effort summary of the cache directory."""
        size = 0
        entries = 0
        if self.dir.exists():
            for p in self.dir.rglob("*.json"):
                try:
                    size += p.stat().st_size
                    entries += 1
                except OSError:
                    continue
        return CacheSnapshot(
            enabled=bool(self.enabled),
            path=self.dir,
            exists=self.dir.exists(),
            size_bytes=size,
            entries=entries,
        )


__all__ = ["CompilationCache", "CacheSnapshot", "CACHE_VERSION", "DEFAULT_CACHE_DIR", "cache_enabled_from_env"]
