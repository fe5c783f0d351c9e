"""Utilities for rendering diffs and detecting code style."""

import difflib
import re

_SNAKE_CASE_RE = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)+$")
_CAMEL_CASE_RE = re.compile(r"^[a-z]+(?:[A-Z][a-z0-9]*)+$")
_DEFINITION_RE = re.compile(
    r"\b(?:def|fun|function|func|fn|val|var|let|const)\s+([A-Za-z_][A-Za-z0-9_]*)"
)


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
) -> str:
    """Render a unified diff with a/ b/ prefixes, or "" when nothing changed."""
    if original_content == modified_content:
        return ""

    lines = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        modified_content.splitlines(keepends=True),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )
    return "\n".join(line.rstrip("\n") for line in lines)


def detect_code_style(source_code: str) -> dict[str, str]:
    """Detect indentation and quote conventions from source code.

    Returns:
        {"indent": "tabs" | "<n> spaces", "quotes": "single" | "double"}.
        Unindented or empty input keeps the "4 spaces" default.
    """
    widths: set[int] = set()
    indent = "4 spaces"
    for line in source_code.splitlines():
        leading = line[: len(line) - len(line.lstrip(" \t"))]
        if not leading or leading == line:
            continue
        if "\t" in leading:
            indent = "tabs"
            break
        widths.add(len(leading))

    if indent != "tabs" and widths:
        indent = f"{min(widths)} spaces"

    quotes = "single" if source_code.count("'") > source_code.count('"') else "double"
    return {"indent": indent, "quotes": quotes}


def detect_naming_convention(source_code: str) -> str | None:
    """Guess "snake_case" or "camelCase" from defined names, None if unclear."""
    snake = 0
    camel = 0
    for name in _DEFINITION_RE.findall(source_code):
        if _SNAKE_CASE_RE.match(name):
            snake += 1
        elif _CAMEL_CASE_RE.match(name):
            camel += 1
    if snake == camel:
        return None
    return "snake_case" if snake > camel else "camelCase"
