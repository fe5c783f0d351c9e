"""Utilities for the code modification bot."""

from codemod_bot.utils.diff_generator import (
    detect_code_style,
    detect_naming_convention,
    generate_unified_diff,
)
from codemod_bot.utils.json_recovery import JSONRecoveryError, parse_json_object
from codemod_bot.utils.paths import resolve_inside

__all__ = [
    "JSONRecoveryError",
    "detect_code_style",
    "detect_naming_convention",
    "generate_unified_diff",
    "parse_json_object",
    "resolve_inside",
]
