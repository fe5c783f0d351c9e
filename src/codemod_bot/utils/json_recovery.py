"""Ordered fallback chain for decoding JSON out of generated text."""

import json
import re
from typing import Any

ERROR_CONTENT_PREVIEW = 500

_OPENING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```\s*$")


class JSONRecoveryError(ValueError):
    """Raised when no strategy in the chain produced a JSON object."""

    def __init__(self, message: str, content: str) -> None:
        self.content_preview = content[:ERROR_CONTENT_PREVIEW]
        super().__init__(f"{message}. Content: {self.content_preview}")


def strip_code_fence(text: str) -> str:
    """Remove one leading and one trailing markdown fence marker."""
    stripped = _OPENING_FENCE.sub("", text, count=1)
    return _CLOSING_FENCE.sub("", stripped, count=1).strip()


def _direct(text: str) -> Any:
    return json.loads(text)


def _fenced(text: str) -> Any:
    return json.loads(strip_code_fence(text))


_STRATEGIES = (_direct, _fenced)


def parse_json_object(text: str) -> dict[str, Any]:
    """Decode a JSON object: direct parse, then fence-stripped parse.

    Raises:
        JSONRecoveryError: If every strategy fails or the value is not an object.
    """
    last_error: Exception | None = None
    for strategy in _STRATEGIES:
        try:
            value = strategy(text)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if isinstance(value, dict):
            return value
        last_error = ValueError(f"expected a JSON object, got {type(value).__name__}")
    raise JSONRecoveryError(f"Failed to parse JSON: {last_error}", text)
