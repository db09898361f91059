"""JSON output of the CLI subcommands."""

from __future__ import annotations

import dataclasses
import json
from typing import Any


def _encode(obj: Any) -> Any:
    # dataclass snapshots become objects, paths and anything else become strings
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    return str(obj)


def dumps(obj: Any) -> str:
    """Compact, non-ASCII-safe; the caller adds the trailing newline if it wants one."""
    return json.dumps(obj, ensure_ascii=False, default=_encode)


__all__ = ["dumps"]
