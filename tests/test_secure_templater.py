"""Tests for the sandboxed renderer and the default filters."""

import pytest

from scaffolder.exceptions import TemplateRenderError
from scaffolder.templating.filters import create_default_filters, dump, parse_entity_ref, pick, project_slug
from scaffolder.templating.secure import SecureTemplater


class TestRenderer:

    def test_uses_dollar_brace_delimiters(self):
        render = SecureTemplater.load_renderer()
        assert render("hi ${{ name }}", {"name": "web"}) == "hi web"

    def test_plain_jinja_delimiters_are_literal(self):
        render = SecureTemplater.load_renderer()
        assert render("{{ name }}", {"name": "web"}) == "{{ name }}"

    def test_undefined_chains_to_empty(self):
        render = SecureTemplater.load_renderer()
        assert render("[${{ a.b.c }}]", {}) == "[]"

    def test_none_renders_empty(self):
        render = SecureTemplater.load_renderer()
        assert render("[${{ a }}]", {"a": None}) == "[]"

    def test_syntax_error_raises_render_error(self):
        render = SecureTemplater.load_renderer()
        with pytest.raises(TemplateRenderError) as exc_info:
            render("${{ a. }}", {})
        assert exc_info.value.template == "${{ a. }}"

    def test_parse_syntax_error_raises_render_error(self):
        render = SecureTemplater.load_renderer()
        with pytest.raises(TemplateRenderError):
            render.parse("${{ a. }}")

    def test_sandbox_hides_private_attributes(self):
        render = SecureTemplater.load_renderer()
        assert render("${{ x.__class__ }}", {"x": "s"}) == ""

    def test_runtime_errors_raise_render_error(self):
        render = SecureTemplater.load_renderer()
        with pytest.raises(TemplateRenderError) as exc_info:
            render("${{ 1 / 0 }}", {})
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)

    def test_mapping_key_wins_over_method(self):
        render = SecureTemplater.load_renderer()
        assert render("${{ p.items }}", {"p": {"items": "mine"}}) == "mine"

    def test_mutating_container_methods_are_unsafe(self):
        render = SecureTemplater.load_renderer()
        values = {"p": {"a": 1}, "tags": ["x"]}
        for template in ("${{ p.clear() }}", "${{ p.pop('a') }}", "${{ tags.append('y') }}"):
            with pytest.raises(TemplateRenderError):
                render(template, values)
        assert values == {"p": {"a": 1}, "tags": ["x"]}

    def test_additional_filter_overrides_default(self):
        render = SecureTemplater.load_renderer(filters={"dump": lambda v: "custom"})
        assert render("${{ a | dump }}", {"a": 1}) == "custom"

    def test_additional_globals(self):
        render = SecureTemplater.load_renderer(globals_={"shout": lambda s: s.upper()})
        assert render("${{ shout('hey') }}", {}) == "HEY"

    def test_default_filter_names(self):
        assert set(create_default_filters()) == {"dump", "pick", "parseEntityRef", "projectSlug"}


class TestFilters:

    def test_dump_serializes_json(self):
        assert dump({"a": [1, True, None]}) == '{"a": [1, true, null]}'

    def test_pick_dotted_path(self):
        assert pick({"metadata": {"tags": ["a", "b"]}}, "metadata.tags.1") == "b"

    def test_pick_missing_is_none(self):
        assert pick({"a": 1}, "b.c") is None

    def test_parse_entity_ref_full(self):
        assert parse_entity_ref("component:team-a/web") == {
            "kind": "component", "namespace": "team-a", "name": "web",
        }

    def test_parse_entity_ref_defaults(self):
        ref = parse_entity_ref("web", {"defaultKind": "group"})
        assert ref == {"kind": "group", "namespace": "default", "name": "web"}

    def test_parse_entity_ref_default_namespace(self):
        ref = parse_entity_ref("user:jdoe", {"defaultNamespace": "corp"})
        assert ref["namespace"] == "corp"

    def test_parse_entity_ref_without_kind_raises(self):
        with pytest.raises(ValueError, match="kind"):
            parse_entity_ref("web")

    def test_project_slug(self):
        assert project_slug("github.com?owner=acme&repo=web") == "acme/web"

    def test_project_slug_invalid(self):
        with pytest.raises(ValueError):
            project_slug("github.com?repo=web")

    def test_filters_in_templates(self):
        render = SecureTemplater.load_renderer()
        out = render("${{ (ref | parseEntityRef({'defaultKind': 'group'})).name }}", {"ref": "team-a"})
        assert out == "team-a"
