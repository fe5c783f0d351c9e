"""Text-generation client over the Anthropic and OpenAI SDKs."""

from codemod_bot.llm.client import LLMClient
from codemod_bot.llm.exceptions import LLMError, StructuredOutputError

__all__ = ["LLMClient", "LLMError", "StructuredOutputError"]
