"""Tests for TemplateRenderer: node kinds, escaping, includes and inheritance."""

import pytest

from stencil.filters import default_registry
from stencil.template.errors import (
    TemplateInheritanceError,
    TemplateNotFoundError,
    TemplateRenderError,
    UnknownFilterError,
)
from stencil.template.parser import parse_template
from stencil.template.renderer import TemplateRenderer, iter_collection


def make_renderer(sources, **kwargs):
    """Renderer whose template source is an in-memory dict."""

    def source(name):
        if name not in sources:
            raise TemplateNotFoundError(name)
        return parse_template(sources[name], name)

    return TemplateRenderer(default_registry(), source, **kwargs)


def render_with(sources, name, data=None, **kwargs):
    renderer = make_renderer(sources, **kwargs)
    return renderer.render(parse_template(sources[name], name), data or {})


class TestBasicNodes:
    """Text, variables, conditionals and loops."""

    @pytest.mark.parametrize("text", ["", "plain text", "a\n  b\t{ } % #", "<b>&amp;</b>"])
    def test_literal_text_is_verbatim(self, render, text):
        assert render(text, {"anything": 1}) == text

    def test_scenario_a_variable(self, render):
        assert render("{{ user.name }}", {"user": {"name": "Ana"}}) == "Ana"

    def test_variable_is_escaped(self, render):
        out = render("{{ user.name }}", {"user": {"name": "<b>\"Ana\" & 'co'</b>"}})

        assert out == "&lt;b&gt;&quot;Ana&quot; &amp; &#x27;co&#x27;&lt;/b&gt;"

    def test_raw_disables_escaping(self, render):
        assert render("{{ html | raw }}", {"html": "<b>x</b>"}) == "<b>x</b>"

    def test_escape_filter_not_double_escaped(self, render):
        assert render("{{ s | escape }}", {"s": "<i>"}) == "&lt;i&gt;"

    def test_auto_escape_off(self):
        out = render_with({"t": "{{ s }}"}, "t", {"s": "<i>"}, auto_escape=False)

        assert out == "<i>"

    def test_missing_variable_renders_empty(self, render):
        assert render("[{{ nope.deeper }}]") == "[]"

    def test_filter_chain_order(self, render):
        assert render("{{ name | trim | upper | truncate:3:'!' }}", {"name": "  anabel "}) == "ANA!"

    def test_string_literal(self, render):
        assert render("{{ 'a<b' | upper }}") == "A&lt;B"

    def test_scenario_b_else(self, render):
        assert render("{% if active %}Yes{% else %}No{% endif %}", {"active": False}) == "No"

    def test_if_without_else_renders_nothing(self, render):
        assert render("[{% if active %}Yes{% endif %}]", {}) == "[]"

    def test_comparison_with_filters(self, render):
        src = '{% if role | lower == "admin" %}A{% else %}U{% endif %}'

        assert render(src, {"role": "ADMIN"}) == "A"
        assert render(src, {"role": "user"}) == "U"

    def test_not_equal(self, render):
        assert render("{% if r != 'x' %}ne{% endif %}", {"r": "y"}) == "ne"

    def test_scenario_c_loop(self, render):
        src = "{% for p in players %}{{ p.name }},{% endfor %}"

        assert render(src, {"players": [{"name": "A"}, {"name": "B"}]}) == "A,B,"

    def test_as_loop_syntax_and_outer_scope(self, render):
        src = "{% for team.players as p %}{{ team.name }}:{{ p }} {% endfor %}"

        assert render(src, {"team": {"name": "R", "players": ["a", "b"]}}) == "R:a R:b "

    def test_nested_loops_shadow(self, render):
        src = "{% for x in outer %}{% for x in x %}{{ x }}{% endfor %}|{% endfor %}"

        assert render(src, {"outer": [[1, 2], [3]]}) == "12|3|"

    def test_loop_over_mapping_values(self, render):
        assert render("{% for v in m %}{{ v }}{% endfor %}", {"m": {"a": 1, "b": 2}}) == "12"

    @pytest.mark.parametrize("value", [[], None, 5, "abc", {}])
    def test_empty_or_non_iterable_loop(self, render, value):
        assert render("[{% for i in items %}x{% endfor %}]", {"items": value}) == "[]"

    @pytest.mark.parametrize("value", [[], None, {}, "abc"])
    def test_for_else_on_empty_collection(self, render, value):
        src = "{% for p in ps %}{{ p }},{% else %}none{% endfor %}"

        assert render(src, {"ps": value}) == "none"

    def test_for_else_skipped_when_items_exist(self, render):
        src = "{% for p in ps %}{{ p }},{% else %}none{% endfor %}"

        assert render(src, {"ps": ["a", "b"]}) == "a,b,"

    def test_comparison_against_quoted_literal(self, render):
        src = """{% if x == "'a'" %}quoted{% else %}plain{% endif %}"""

        assert render(src, {"x": "'a'"}) == "quoted"
        assert render(src, {"x": "a"}) == "plain"

    def test_block_renders_body(self, render):
        assert render("{% block a %}A{% endblock %}") == "A"

    def test_unknown_filter_is_fatal(self, render):
        with pytest.raises(UnknownFilterError) as exc:
            render("{{ x | nope }}", {"x": 1})
        assert "upper" in exc.value.available

    def test_failing_accessor_wrapped(self, render):
        class Bad:
            def boom(self):
                raise RuntimeError("kaput")

        with pytest.raises(TemplateRenderError) as exc:
            render("{{ b.boom }}", {"b": Bad()})
        assert isinstance(exc.value.cause, RuntimeError)

    def test_render_does_not_mutate_data(self, render):
        data = {"items": [1, 2]}
        render("{% for i in items %}{{ i }}{% endfor %}", data)

        assert data == {"items": [1, 2]}


class TestIncludes:
    """Include rendering and failure recovery."""

    def test_include_sees_full_context(self):
        sources = {"page": 'A{% include "part" %}C', "part": "[{{ user }}]"}

        assert render_with(sources, "page", {"user": "u"}) == "A[u]C"

    def test_include_with_alias(self):
        sources = {
            "page": '{% include "card" with team.captain as player %}',
            "card": "{{ player.name }}/{{ site }}",
        }

        assert render_with(sources, "page", {"team": {"captain": {"name": "Cap"}}, "site": "S"}) == "Cap/S"

    def test_include_inside_loop_sees_item(self):
        sources = {
            "page": '{% for p in ps %}{% include "row" %}{% endfor %}',
            "row": "<{{ p }}>",
        }

        assert render_with(sources, "page", {"ps": [1, 2]}) == "<1><2>"

    def test_missing_include_becomes_comment(self, caplog):
        sources = {"page": 'a{% include "ghost" %}b'}

        out = render_with(sources, "page")

        assert out.startswith("a<!-- Include error: ghost - ")
        assert "Template 'ghost' not found" in out
        assert out.endswith(" -->b")
        assert any("ghost" in r.getMessage() for r in caplog.records)

    def test_include_syntax_error_becomes_comment(self):
        sources = {"page": '{% include "bad" %}', "bad": "{% if x %}"}

        assert render_with(sources, "page").startswith("<!-- Include error: bad - Unclosed 'if'")

    def test_include_unknown_filter_becomes_comment(self):
        sources = {"page": 'ok{% include "bad" %}', "bad": "{{ x | nope }}"}

        out = render_with(sources, "page")

        assert out.startswith("ok<!-- Include error: bad - Unknown filter 'nope'")

    def test_recursive_include_is_bounded(self):
        sources = {"loop": '@{% include "loop" %}'}

        out = render_with(sources, "loop", max_depth=3)

        assert out.count("@") == 4
        assert "Include error: loop" in out

    def test_render_without_source(self, render):
        assert "Include error: any" in render('{% include "any" %}')


class TestInheritance:
    """extends/block merging."""

    def test_scenario_d_child_block_wins(self):
        sources = {
            "base": "<t>{% block title %}Parent{% endblock %}</t>",
            "child": '{% extends "base" %}{% block title %}Child{% endblock %}',
        }

        out = render_with(sources, "child")

        assert out == "<t>Child</t>"
        assert "Parent" not in out

    def test_parent_block_kept_when_not_overridden(self):
        sources = {
            "base": "{% block a %}A{% endblock %}-{% block b %}B{% endblock %}",
            "child": '{% extends "base" %}{% block b %}b2{% endblock %}ignored text',
        }

        assert render_with(sources, "child") == "A-b2"

    def test_child_data_visible_in_parent(self):
        sources = {
            "base": "{{ site }}:{% block body %}{% endblock %}",
            "child": '{% extends "base" %}{% block body %}{{ user }}{% endblock %}',
        }

        assert render_with(sources, "child", {"site": "S", "user": "U"}) == "S:U"

    def test_block_inside_container_is_substituted(self):
        sources = {
            "base": "{% if show %}{% block a %}base{% endblock %}{% endif %}",
            "child": '{% extends "base" %}{% block a %}child{% endblock %}',
        }

        assert render_with(sources, "child", {"show": True}) == "child"

    def test_block_inside_for_else_is_substituted(self):
        sources = {
            "base": "{% for i in items %}{{ i }}{% else %}{% block empty %}base{% endblock %}{% endfor %}",
            "child": '{% extends "base" %}{% block empty %}nothing here{% endblock %}',
        }

        assert render_with(sources, "child", {"items": []}) == "nothing here"

    def test_nested_block_override(self):
        sources = {
            "base": "{% block outer %}[{% block inner %}i{% endblock %}]{% endblock %}",
            "child": '{% extends "base" %}{% block inner %}I{% endblock %}',
        }

        assert render_with(sources, "child") == "[I]"

    def test_multi_level_chain(self):
        sources = {
            "root": "{% block a %}r{% endblock %}{% block b %}r{% endblock %}{% block c %}r{% endblock %}",
            "mid": '{% extends "root" %}{% block b %}m{% endblock %}{% block c %}m{% endblock %}',
            "leaf": '{% extends "mid" %}{% block c %}l{% endblock %}',
        }

        assert render_with(sources, "leaf") == "rml"

    def test_extends_cycle(self):
        sources = {
            "a": '{% extends "b" %}',
            "b": '{% extends "a" %}',
        }

        with pytest.raises(TemplateInheritanceError) as exc:
            render_with(sources, "a")
        assert "cycle" in str(exc.value)

    def test_missing_parent_is_fatal(self):
        sources = {"child": '{% extends "nowhere" %}'}

        with pytest.raises(TemplateNotFoundError):
            render_with(sources, "child")

    def test_ast_not_mutated_by_inheritance(self):
        sources = {
            "base": "{% block a %}A{% endblock %}",
            "child": '{% extends "base" %}{% block a %}C{% endblock %}',
        }
        renderer = make_renderer(sources)
        child = parse_template(sources["child"], "child")
        before = list(child.nodes)

        assert renderer.render(child) == renderer.render(child) == "C"
        assert child.nodes == before


def test_iter_collection():
    assert iter_collection((1, 2)) == [1, 2]
    assert iter_collection(x for x in "ab") == ["a", "b"]
    assert iter_collection("ab") == []
