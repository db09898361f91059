from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .engine import TemplateEngine
from .errors import USER_ERROR_EXIT, StencilUserError, format_user_error
from .jsonic import dumps as jdumps
from .version import tool_version

_yaml = YAML(typ="safe")


class DataLoadError(StencilUserError):
    """The --data document could not be read."""
    pass


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or os.environ.get("STENCIL_DEBUG") else logging.WARNING
    log = logging.getLogger("stencil")
    log.setLevel(level)
    if not log.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        log.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stencil",
        description="Stencil template engine",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--config",
            metavar="PATH",
            help="config file (default: ./templating.yaml)",
        )
        sp.add_argument(
            "--verbose",
            action="store_true",
            help="debug logging to stderr",
        )

    sp_render = sub.add_parser("render", help="Render a template to stdout")
    sp_render.add_argument("name", help="template name, e.g. pages/home or pages/home.html")
    sp_render.add_argument(
        "--data",
        metavar="FILE.json|FILE.yaml|-",
        help="render context: JSON or YAML file, or - for JSON on stdin",
    )
    add_common(sp_render)

    sp_compile = sub.add_parser("compile", help="Warm the compilation cache (JSON report)")
    sp_compile.add_argument("--force", action="store_true", help="recompile even valid entries")
    add_common(sp_compile)

    sp_cache = sub.add_parser("cache", help="Cache maintenance (JSON)")
    sp_cache.add_argument("action", choices=["status", "clear"], help="what to do")
    add_common(sp_cache)

    sp_list = sub.add_parser("list", help="Lists of entities (JSON)")
    sp_list.add_argument("what", choices=["templates"], help="what to list")
    add_common(sp_list)

    return p


def _load_data(arg: Optional[str]) -> Dict[str, Any]:
    """
    Parse the --data argument.

    Supports:
    - ``-``: JSON from stdin
    - ``*.yaml`` / ``*.yml``: YAML file
    - anything else: JSON file
    """
    if not arg:
        return {}

    try:
        if arg == "-":
            data = json.loads(sys.stdin.read() or "{}")
        else:
            path = Path(arg)
            if not path.is_file():
                raise DataLoadError(f"Data file not found: {path}")
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() in {".yaml", ".yml"}:
                data = _yaml.load(text) or {}
            else:
                data = json.loads(text or "{}")
    except (ValueError, YAMLError, OSError) as e:
        raise DataLoadError(f"Failed to read data {arg}: {e}") from e

    if not isinstance(data, dict):
        raise DataLoadError(f"Data must be a mapping, got {type(data).__name__}")
    return data


def _engine(ns: argparse.Namespace) -> TemplateEngine:
    config = Path(ns.config) if getattr(ns, "config", None) else None
    return TemplateEngine.from_root(None, config)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(getattr(ns, "verbose", False)))

    try:
        if ns.cmd == "render":
            data = _load_data(ns.data)
            sys.stdout.write(_engine(ns).render(ns.name, data))
            return 0

        if ns.cmd == "compile":
            report = _engine(ns).warm_up(force=bool(ns.force))
            sys.stdout.write(jdumps(report.to_dict()))
            return 1 if report.errors else 0

        if ns.cmd == "cache":
            engine = _engine(ns)
            snapshot = engine.clear_cache() if ns.action == "clear" else engine.cache_status()
            sys.stdout.write(jdumps(snapshot))
            return 0

        if ns.cmd == "list":
            sys.stdout.write(jdumps({"templates": _engine(ns).list_templates()}))
            return 0

    except StencilUserError as e:
        sys.stderr.write(format_user_error(e))
        return USER_ERROR_EXIT

    return USER_ERROR_EXIT


if __name__ == "__main__":
    raise SystemExit(main())
