"""Tests for {{dotted.path}} interpolation."""

import json
import logging

from stepchain.interpolation import find_placeholders, interpolate, resolve_path


class TestInterpolate:
    """Tests for interpolate."""

    def test_nested_path(self):
        assert interpolate("Hello {{user.name}}", {"user": {"name": "Ana"}}) == "Hello Ana"

    def test_missing_path_left_verbatim(self):
        assert interpolate("{{missing.path}}", {}) == "{{missing.path}}"

    def test_object_renders_as_indented_json(self):
        obj = {"a": 1, "b": 2}
        assert interpolate("{{obj}}", {"obj": obj}) == json.dumps(obj, indent=2)

    def test_list_renders_as_json(self):
        assert interpolate("{{items}}", {"items": ["x", "y"]}) == '[\n  "x",\n  "y"\n]'

    def test_none_left_verbatim(self):
        assert interpolate("v={{x}}", {"x": None}) == "v={{x}}"

    def test_scalars_use_str(self):
        state = {"n": 3, "f": 1.5, "s": "text"}
        assert interpolate("{{n}} {{f}} {{s}}", state) == "3 1.5 text"

    def test_booleans_render_as_json_literals(self):
        state = {"yes": True, "no": False, "nested": {"ok": True}}
        assert interpolate("{{yes}} {{no}} {{nested.ok}}", state) == "true false true"

    def test_unresolved_paths_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="stepchain.interpolation")
        interpolate("{{known}} {{missing.path}}", {"known": 1})
        assert "['missing.path']" in caplog.text

    def test_falsy_values_substituted(self):
        assert interpolate("[{{zero}}][{{empty}}]", {"zero": 0, "empty": ""}) == "[0][]"

    def test_multiple_placeholders(self):
        state = {"a": "1", "b": {"c": "2"}}
        assert interpolate("{{a}}-{{b.c}}-{{a}}", state) == "1-2-1"

    def test_walk_into_scalar_left_verbatim(self):
        assert interpolate("{{name.first}}", {"name": "Ana"}) == "{{name.first}}"

    def test_list_index_segment(self):
        state = {"evaluated": {"items": ["first", "second"]}}
        assert interpolate("{{evaluated.items.1}}", state) == "second"

    def test_non_placeholder_braces_untouched(self):
        assert interpolate("{{ spaced }} {single}", {"spaced": "x"}) == "{{ spaced }} {single}"

    def test_unicode_kept(self):
        assert interpolate("{{d}}", {"d": {"café": "é"}}) == '{\n  "café": "é"\n}'


class TestResolvePath:
    """Tests for resolve_path."""

    def test_top_level(self):
        assert resolve_path("a", {"a": 1}) == 1

    def test_missing_segment(self):
        assert resolve_path("a.b", {"a": {}}) is None

    def test_index_out_of_range(self):
        assert resolve_path("a.5", {"a": [1]}) is None


class TestFindPlaceholders:
    """Tests for find_placeholders."""

    def test_in_order(self):
        assert find_placeholders("{{b}} then {{a.x}}") == ["b", "a.x"]
