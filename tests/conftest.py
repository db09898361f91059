from pathlib import Path

import pytest

from stencil.config import EngineConfig
from stencil.engine import TemplateEngine
from stencil.filters import default_registry
from stencil.template.parser import parse_template
from stencil.template.renderer import TemplateRenderer

from tests.infrastructure.file_utils import write_tree


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # the host environment must not toggle the cache or logging
    monkeypatch.delenv("STENCIL_CACHE", raising=False)
    monkeypatch.delenv("STENCIL_DEBUG", raising=False)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Minimal project: templates/ with a layout, a child page, partials and an extends chain."""
    write_tree(tmp_path / "templates", {
        "layouts/base.html": (
            "<title>{% block title %}Site{% endblock %}</title>\n"
            "<main>{% block content %}{% endblock %}</main>\n"
        ),
        "pages/home.html": (
            '{% extends "layouts/base" %}\n'
            "{% block title %}Home{% endblock %}\n"
            "{% block content %}Hello {{ user.name }}{% endblock %}\n"
        ),
        "pages/team.html": (
            '{% extends "layouts/base" %}\n'
            "{% block content %}"
            '{% for p in players %}{% include "partials/player" with p as player %}{% endfor %}'
            "{% endblock %}\n"
        ),
        "partials/player.html": "<li>{{ player.name }}</li>",
        "partials/greeting.html": "Hi {{ user.name }}!",
        "plain.txt": "static",
    })
    return tmp_path


@pytest.fixture
def engine(project: Path) -> TemplateEngine:
    return TemplateEngine(EngineConfig(root=project))


@pytest.fixture
def render():
    """Render template source with the built-in filters and no template loader."""
    renderer = TemplateRenderer(default_registry())

    def _render(source: str, data=None) -> str:
        return renderer.render(parse_template(source, "test"), data or {})

    return _render
