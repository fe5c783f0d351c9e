"""Tests for the JSON recovery chain and path helpers."""
import pytest

from codemod_bot.utils.json_recovery import (
    ERROR_CONTENT_PREVIEW,
    JSONRecoveryError,
    parse_json_object,
    strip_code_fence,
)
from codemod_bot.utils.paths import resolve_inside


class TestStripCodeFence:
    def test_language_tagged_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```\n') == '{"a": 1}'

    def test_no_fence_unchanged(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


class TestParseJsonObject:
    """Direct parse first, then fence-stripped parse."""

    def test_plain_object(self):
        assert parse_json_object('{"changes": []}') == {"changes": []}

    def test_fenced_object_equals_plain(self):
        plain = '{"changes": [{"file_path": "a.py"}]}'
        assert parse_json_object(f"```json\n{plain}\n```") == parse_json_object(plain)

    def test_garbage_raises_with_preview(self):
        text = "not json " * 200
        with pytest.raises(JSONRecoveryError) as exc_info:
            parse_json_object(text)
        assert exc_info.value.content_preview == text[:ERROR_CONTENT_PREVIEW]
        assert len(exc_info.value.content_preview) == 500
        assert str(exc_info.value).startswith("Failed to parse JSON")

    def test_non_object_rejected(self):
        with pytest.raises(JSONRecoveryError, match="expected a JSON object"):
            parse_json_object("[1, 2, 3]")

    def test_recovery_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_json_object("")


class TestResolveInside:
    """Repo-relative paths must stay inside the root."""

    def test_relative_path_inside(self, tmp_path):
        root = tmp_path.resolve()
        assert resolve_inside(root, "src/a.py") == root / "src" / "a.py"

    def test_parent_traversal_rejected(self, tmp_path):
        root = (tmp_path / "repo").resolve()
        assert resolve_inside(root, "../escape.py") is None

    def test_inner_dotdot_allowed_when_inside(self, tmp_path):
        root = tmp_path.resolve()
        assert resolve_inside(root, "src/../lib/a.py") == root / "lib" / "a.py"

    def test_absolute_rejected(self, tmp_path):
        root = tmp_path.resolve()
        assert resolve_inside(root, str(root / "a.py")) is None

    def test_root_itself_rejected(self, tmp_path):
        root = tmp_path.resolve()
        assert resolve_inside(root, ".") is None
