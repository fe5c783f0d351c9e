"""Exceptions for the text-generation client."""


class LLMError(Exception):
    """Base exception for text-generation calls."""


class StructuredOutputError(LLMError):
    """Raised when a structured payload is still invalid after the repair pass."""
