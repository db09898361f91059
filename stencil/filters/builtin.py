"""
Built-in filters.

Every filter takes the running value first, then its template arguments
as strings. ``None`` input degrades to an empty result instead of raising.
"""

from __future__ import annotations

import html
import json
import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

from ..template.resolver import stringify
from .registry import FilterRegistry

_TAG_RE = re.compile(r"<[^>]*>")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss", "Ä": "Ae", "Ö": "Oe", "Ü": "Ue"})


def _to_int(arg: Optional[str], default: int) -> int:
    if arg is None or str(arg).strip() == "":
        return default
    try:
        return int(float(arg))
    except (TypeError, ValueError, OverflowError):
        return default


def _to_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _is_collection(value: Any) -> bool:
    return isinstance(value, (Mapping, Sequence, set, frozenset)) and not isinstance(value, (str, bytes))


# ----------------------------- escaping ----------------------------- #

def raw(value: Any) -> Any:
    return value


def escape(value: Any, strategy: str = "html") -> Any:
    """Escape for ``html`` (default), ``attr``, ``js`` or ``url`` contexts."""
    if value is None:
        return ""
    text = stringify(value)
    if strategy == "js":
        return (
            json.dumps(text, ensure_ascii=False)
            .replace("<", "\\u003C").replace(">", "\\u003E")
            .replace("&", "\\u0026").replace("'", "\\u0027")
        )
    if strategy == "url":
        return quote(text, safe="")
    return html.escape(text, quote=True)


def nl2br(value: Any) -> str:
    """Escape, then insert ``<br />`` before every newline."""
    if value is None:
        return ""
    return re.sub(r"(\r\n|\r|\n)", r"<br />\1", html.escape(stringify(value), quote=True))


def striptags(value: Any) -> str:
    return "" if value is None else _TAG_RE.sub("", stringify(value))


# ----------------------------- text ----------------------------- #

def upper(value: Any) -> str:
    return "" if value is None else stringify(value).upper()


def lower(value: Any) -> str:
    return "" if value is None else stringify(value).lower()


def capitalize(value: Any) -> str:
    return "" if value is None else stringify(value).lower().capitalize()


def title(value: Any) -> str:
    return "" if value is None else stringify(value).title()


def trim(value: Any, characters: Optional[str] = None) -> str:
    return "" if value is None else stringify(value).strip(characters or None)


def truncate(value: Any, length: str = "100", suffix: str = "...") -> str:
    if value is None:
        return ""
    text = stringify(value)
    limit = _to_int(length, 100)
    return text if len(text) <= limit else text[:limit] + suffix


def slug(value: Any) -> str:
    if value is None:
        return ""
    text = stringify(value).translate(_UMLAUTS).lower()
    return _SLUG_RE.sub("-", text).strip("-")


def replace(value: Any, search: str = "", replacement: str = "") -> str:
    if value is None:
        return ""
    text = stringify(value)
    return text.replace(search, replacement) if search else text


def repeat(value: Any, times: str = "1") -> str:
    count = _to_int(times, 0)
    if value is None or count <= 0:
        return ""
    return stringify(value) * count


def reverse(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (str, bytes)) or not _is_collection(value):
        return stringify(value)[::-1]
    if isinstance(value, Mapping):
        return list(value.values())[::-1]
    return list(value)[::-1]


# ----------------------------- collections ----------------------------- #

def default(value: Any, fallback: str = "") -> Any:
    """Fallback for None and empty strings."""
    return fallback if value is None or value == "" else value


def length(value: Any) -> int:
    if value is None:
        return 0
    if _is_collection(value) or isinstance(value, (str, bytes)):
        return len(value)
    return len(stringify(value))


def first(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value[:1]
    if isinstance(value, Mapping):
        value = list(value.values())
    if _is_collection(value):
        items = list(value)
        return items[0] if items else None
    return value


def last(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value[-1:]
    if isinstance(value, Mapping):
        value = list(value.values())
    if _is_collection(value):
        items = list(value)
        return items[-1] if items else None
    return value


def join(value: Any, separator: str = "") -> str:
    if value is None:
        return ""
    if isinstance(value, Mapping):
        items = list(value.values())
    elif _is_collection(value):
        items = list(value)
    else:
        return stringify(value)
    return separator.join(stringify(item) for item in items)


def to_json(value: Any, pretty: str = "") -> str:
    indent = 2 if pretty.strip().lower() in {"1", "true", "yes", "pretty"} else None
    return json.dumps(value, ensure_ascii=False, indent=indent, default=str)


# ----------------------------- numbers ----------------------------- #

def _round_half_up(number: float, places: int) -> Decimal:
    """Round like PHP: halves away from zero."""
    return Decimal(repr(number)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def number_format(value: Any, decimals: str = "0", dec_point: str = ",", thousands_sep: str = ".") -> str:
    """PHP-style number formatting (defaults: ``1.234,5``)."""
    places = max(0, _to_int(decimals, 0))
    rounded = _round_half_up(_to_float(value), places)
    formatted = f"{abs(rounded):,.{places}f}"
    integer, _, fraction = formatted.partition(".")
    integer = integer.replace(",", thousands_sep)
    result = f"{integer}{dec_point}{fraction}" if places else integer
    return ("-" if rounded < 0 else "") + result


def round_(value: Any, precision: str = "0") -> float:
    return float(_round_half_up(_to_float(value), _to_int(precision, 0)))


def abs_(value: Any) -> float:
    return abs(_to_float(value))


# ----------------------------- dates ----------------------------- #

def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(text))
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def date_(value: Any, fmt: str = "%Y-%m-%d") -> str:
    """Format a datetime, date, timestamp or ISO string; unparseable input gives ''."""
    if value is None:
        return ""
    try:
        moment = _to_datetime(value)
    except (OverflowError, OSError, ValueError):
        return ""
    return "" if moment is None else moment.strftime(fmt)


def register_builtin_filters(registry: FilterRegistry) -> FilterRegistry:
    """Install every built-in filter into ``registry`` and return it."""
    registry.register("raw", raw, safe=True)
    registry.register("escape", escape, safe=True, aliases=("e",))
    registry.register("nl2br", nl2br, safe=True)
    registry.register("striptags", striptags)

    registry.register("upper", upper)
    registry.register("lower", lower)
    registry.register("capitalize", capitalize)
    registry.register("title", title)
    registry.register("trim", trim)
    registry.register("truncate", truncate)
    registry.register("slug", slug)
    registry.register("replace", replace)
    registry.register("repeat", repeat)
    registry.register("reverse", reverse)

    registry.register("default", default)
    registry.register("length", length, aliases=("count",))
    registry.register("first", first)
    registry.register("last", last)
    registry.register("join", join)
    registry.register("json", to_json)

    registry.register("number_format", number_format)
    registry.register("round", round_)
    registry.register("abs", abs_)
    registry.register("date", date_)
    return registry


__all__ = ["register_builtin_filters"]
