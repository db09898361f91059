"""Tests for YamlTranslator and the t/trans filters."""

import logging
from pathlib import Path

import pytest

from stencil.filters import default_registry
from stencil.filters.translation import YamlTranslator, apply_replacements, build_replacements
from stencil.template.parser import parse_template
from stencil.template.renderer import TemplateRenderer

from tests.infrastructure.file_utils import write_tree


@pytest.fixture
def lang_dir(tmp_path: Path) -> Path:
    write_tree(tmp_path / "lang", {
        "de/nav.yaml": "home: Startseite\nwelcome: 'Hallo {name}, du hast %count% Nachrichten'\n",
        "en/nav.yaml": "home: Home\nabout: About us\nmenu:\n  settings: Settings\n",
        "en/auth.yaml": "greeting: 'Hi {0} and {1}'\n",
        "de/broken.yaml": "key: [unclosed\n",
        "de/list.yaml": "- a\n- b\n",
    })
    return tmp_path / "lang"


class TestYamlTranslator:
    """Lookup order and placeholders."""

    def test_locale_then_fallback_then_key(self, lang_dir: Path):
        t = YamlTranslator(lang_dir, "de", "en")

        assert t.translate("nav.home") == "Startseite"
        assert t.translate("nav.about") == "About us"
        assert t.translate("nav.nothing") == "nav.nothing"
        assert t.translate("nokey") == "nokey"

    def test_nested_key(self, lang_dir: Path):
        assert YamlTranslator(lang_dir, "en").translate("nav.menu.settings") == "Settings"

    def test_non_leaf_key_returns_key(self, lang_dir: Path):
        assert YamlTranslator(lang_dir, "en").translate("nav.menu") == "nav.menu"

    def test_placeholders(self, lang_dir: Path):
        t = YamlTranslator(lang_dir, "de")

        out = t.translate("nav.welcome", {"name": "Ana", "count": 3})
        assert out == "Hallo Ana, du hast 3 Nachrichten"

    def test_files_memoized(self, lang_dir: Path):
        t = YamlTranslator(lang_dir, "en")
        assert t.translate("nav.home") == "Home"

        (lang_dir / "en/nav.yaml").write_text("home: Changed\n", encoding="utf-8")

        assert t.translate("nav.home") == "Home"

    def test_broken_files_logged_and_ignored(self, lang_dir: Path, caplog):
        t = YamlTranslator(lang_dir, "de", "de")

        with caplog.at_level(logging.WARNING, logger="stencil.filters.translation"):
            assert t.translate("broken.key") == "broken.key"
            assert t.translate("list.x") == "list.x"
        assert len(caplog.records) == 2


def test_build_replacements():
    assert build_replacements(["a", "name=Ana", "b"]) == {"0": "a", "name": "Ana", "2": "b"}


def test_apply_replacements_handles_none():
    assert apply_replacements("x={x}", {"x": None}) == "x="
    assert apply_replacements("plain", None) == "plain"


class TestTranslationFilters:
    """t/trans inside templates."""

    def render(self, lang_dir, source, data=None, locale="en"):
        registry = default_registry(YamlTranslator(lang_dir, locale, "en"))
        return TemplateRenderer(registry).render(parse_template(source), data or {})

    def test_literal_key(self, lang_dir: Path):
        assert self.render(lang_dir, '{{ "nav.home" | t }}', locale="de") == "Startseite"

    def test_key_from_data_and_positional_args(self, lang_dir: Path):
        out = self.render(lang_dir, "{{ key | trans:'<x>':Bo }}", {"key": "auth.greeting"})

        assert out == "Hi &lt;x&gt; and Bo"

    def test_named_args(self, lang_dir: Path):
        out = self.render(lang_dir, '{{ "nav.welcome" | t:name=Ana:count=2 }}', locale="de")

        assert out == "Hallo Ana, du hast 2 Nachrichten"

    def test_not_registered_without_translator(self):
        assert not default_registry().has("t")
