"""Tests for templating.yaml loading and validation."""

from pathlib import Path

import pytest

from stencil.config import ConfigError, load_config

from tests.infrastructure.file_utils import write, write_config


def test_defaults_without_file(tmp_path: Path):
    cfg = load_config(tmp_path)

    assert cfg.root == tmp_path.resolve()
    assert cfg.search_paths() == [(tmp_path / "templates").resolve()]
    assert cfg.extension == ".html"
    assert cfg.auto_escape is True
    assert cfg.max_include_depth == 32
    assert cfg.cache.enabled is True
    assert cfg.cache_dir() == (tmp_path / ".stencil-cache").resolve()
    assert cfg.cache.warmup.include == ["**/*.html"]
    assert cfg.translations_dir() is None


def test_overrides(tmp_path: Path):
    write_config(tmp_path, """
        paths: [views, shared/views]
        extension: .tpl
        auto_escape: false
        max_include_depth: 4
        cache:
          enabled: false
          dir: build/cache
          warmup:
            include: "**/*.tpl"
            exclude: ["drafts/"]
        translations:
          dir: lang
          locale: de
          fallback_locale: en
    """)

    cfg = load_config(tmp_path)

    assert cfg.search_paths() == [(tmp_path / "views").resolve(), (tmp_path / "shared/views").resolve()]
    assert cfg.extension == ".tpl"
    assert cfg.auto_escape is False
    assert cfg.max_include_depth == 4
    assert cfg.cache.enabled is False
    assert cfg.cache_dir() == (tmp_path / "build/cache").resolve()
    assert cfg.cache.warmup.include == ["**/*.tpl"]
    assert cfg.cache.warmup.exclude == ["drafts/"]
    assert cfg.translations_dir() == (tmp_path / "lang").resolve()
    assert cfg.translations.locale == "de"


def test_explicit_path_sets_root(tmp_path: Path):
    cfg_file = write(tmp_path / "conf/site.yaml", "paths: [tpl]\n")

    cfg = load_config(path=cfg_file)

    assert cfg.root == (tmp_path / "conf").resolve()
    assert cfg.search_paths() == [(tmp_path / "conf/tpl").resolve()]


def test_explicit_path_missing(tmp_path: Path):
    with pytest.raises(ConfigError, match="Config file not found"):
        load_config(path=tmp_path / "nope.yaml")


def test_empty_file_gives_defaults(tmp_path: Path):
    write_config(tmp_path, "")

    assert load_config(tmp_path).paths == ["templates"]


@pytest.mark.parametrize("text,message", [
    ("colour: red\n", "Unknown config key"),
    ("cache:\n  ttl: 5\n", "in 'cache'"),
    ("- a\n- b\n", "must be a mapping"),
    ("paths: [unclosed\n", "Invalid YAML"),
    ("cache: 3\n", "'cache' must be a mapping"),
    ("paths: [1, 2]\n", "'paths' must be a list of strings"),
    ("max_include_depth: 0\n", "positive integer"),
    ("max_include_depth: true\n", "positive integer"),
    ("max_include_depth: '3'\n", "positive integer"),
])
def test_invalid_config(tmp_path: Path, text: str, message: str):
    write_config(tmp_path, text)

    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)
