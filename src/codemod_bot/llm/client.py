"""Provider-chained text-generation client."""

import json
import logging
import os
from typing import Any, Literal, TypeVar

import openai
from anthropic import Anthropic
from pydantic import BaseModel, ValidationError

from codemod_bot.llm.exceptions import LLMError, StructuredOutputError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 8192
PROVIDERS = ("auto", "anthropic", "openai")

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMClient:
    """Submit a prompt, get free text or a validated structured payload back."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        """Initialize the client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model ID to use
            llm_provider: "auto", "anthropic" or "openai"
            llm_fallback_provider: Provider tried when the primary call fails
            allow_fallback: Whether the fallback provider may be used at all
            max_tokens: Completion token limit

        Raises:
            LLMError: If no API key is found or the provider config is unusable
        """
        self.model = model
        self.max_tokens = max_tokens
        self.api_key: str | None = (
            api_key
            or os.getenv("ANTHROPIC_API_KEY")
            or os.getenv("CLAUDE_CODE_OAUTH_TOKEN")
        )
        self.openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None
        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(api_key=self.openai_api_key)
        if not (self._anthropic_client or self._openai_client):
            raise LLMError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameters, ANTHROPIC_API_KEY, CLAUDE_CODE_OAUTH_TOKEN, "
                "or OPENAI_API_KEY env vars."
            )

        self.llm_provider = self._normalize_provider(llm_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        self.allow_fallback = bool(allow_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise LLMError("No Anthropic API key found for --llm-provider=anthropic.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise LLMError("No OpenAI API key found for --llm-provider=openai.")
        if self.allow_fallback and self.llm_fallback_provider:
            if self.llm_fallback_provider == "anthropic" and self._anthropic_client is None:
                raise LLMError(
                    "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
                )
            if self.llm_fallback_provider == "openai" and self._openai_client is None:
                raise LLMError(
                    "Fallback provider requested as openai but OPENAI_API_KEY is not set."
                )

    @staticmethod
    def _normalize_provider(value: str) -> Literal["anthropic", "openai", "auto"]:
        if value not in PROVIDERS:
            raise LLMError(f"Unsupported provider: {value}")
        return value  # type: ignore[return-value]

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_DEFAULT_MODEL
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            fallback = self.llm_fallback_provider
            if fallback not in (chain[0], "auto"):
                chain.append(fallback)
        return chain

    # ------------------------------------------------------------------
    # Free text
    # ------------------------------------------------------------------

    def complete(self, prompt: str) -> str:
        """Return the model's free-text answer to prompt.

        Raises:
            LLMError: If every provider in the chain fails
        """
        provider, response = self._call_chain(prompt, tool_schema=None)
        if provider == "openai":
            return response.choices[0].message.content or ""
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    # ------------------------------------------------------------------
    # Structured (tool use)
    # ------------------------------------------------------------------

    def structured(
        self,
        prompt: str,
        schema_model: type[ModelT],
        tool_name: str,
        description: str = "",
    ) -> ModelT:
        """Force a tool call whose input validates against schema_model.

        One repair pass is made when the first payload fails validation.

        Raises:
            LLMError: If every provider in the chain fails
            StructuredOutputError: If the payload is still invalid after repair
        """
        tool_schema = {
            "name": tool_name,
            "description": description or f"Return a {schema_model.__name__}",
            "input_schema": schema_model.model_json_schema(),
        }

        payload = self._structured_payload(prompt, tool_schema)
        try:
            return schema_model.model_validate(payload)
        except ValidationError as first_error:
            logger.warning("Structured payload failed validation, attempting repair")
            repair_prompt = (
                f"{prompt}\n\n"
                f"Your previous {tool_name} call was invalid:\n{first_error}\n\n"
                f"Previous input:\n{json.dumps(payload, default=str)[:2000]}\n\n"
                f"Call {tool_name} again with corrected input."
            )
            repaired = self._structured_payload(repair_prompt, tool_schema)
            try:
                return schema_model.model_validate(repaired)
            except ValidationError as exc:
                raise StructuredOutputError(
                    f"Structured output invalid after repair: {exc}"
                ) from exc

    def _structured_payload(self, prompt: str, tool_schema: dict[str, Any]) -> dict[str, Any]:
        provider, response = self._call_chain(prompt, tool_schema=tool_schema)
        if provider == "openai":
            return self._parse_openai_tool_payload(response)
        return self._parse_anthropic_tool_payload(response, tool_schema["name"])

    @staticmethod
    def _get_openai_tool_schema(schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema.get("description", ""),
                "parameters": schema.get("input_schema", {}),
            },
        }

    @staticmethod
    def _parse_openai_tool_payload(response: Any) -> dict[str, Any]:
        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None)
        if not tool_calls:
            raise StructuredOutputError("No tool call found in OpenAI response")
        call = tool_calls[0]
        if getattr(call, "type", "function") != "function":
            raise StructuredOutputError("OpenAI tool call type is not function")
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as exc:
            raise StructuredOutputError(f"OpenAI tool arguments are not JSON: {exc}") from exc
        if not isinstance(arguments, dict):
            raise StructuredOutputError("OpenAI tool arguments are not an object")
        return arguments

    @staticmethod
    def _parse_anthropic_tool_payload(response: Any, tool_name: str) -> dict[str, Any]:
        for block in response.content:
            if block.type == "tool_use" and block.name == tool_name:
                return dict(block.input)
        raise StructuredOutputError("No tool_use block found in Claude response")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _call_chain(
        self, prompt: str, tool_schema: dict[str, Any] | None
    ) -> tuple[str, Any]:
        providers = self._provider_chain()
        last_error: Exception | None = None
        for provider in providers:
            try:
                logger.debug("Calling %s (%d prompt chars)", provider, len(prompt))
                return provider, self._call(provider, prompt, tool_schema)
            except Exception as error:
                last_error = error
                logger.warning("LLM call via %s failed: %s", provider, error)
        raise LLMError(f"Failed to call LLM: {last_error}") from last_error

    def _call(self, provider: str, prompt: str, tool_schema: dict[str, Any] | None) -> Any:
        messages = [{"role": "user", "content": prompt}]
        if provider == "anthropic":
            if not self._anthropic_client:
                raise LLMError("Anthropic client unavailable")
            kwargs: dict[str, Any] = {}
            if tool_schema is not None:
                kwargs["tools"] = [tool_schema]
                kwargs["tool_choice"] = {"type": "tool", "name": tool_schema["name"]}
            return self._anthropic_client.messages.create(
                model=self._resolve_model("anthropic"),
                max_tokens=self.max_tokens,
                messages=messages,
                **kwargs,
            )

        if not self._openai_client:
            raise LLMError("OpenAI client unavailable")
        kwargs = {}
        if tool_schema is not None:
            kwargs["tools"] = [self._get_openai_tool_schema(tool_schema)]
            kwargs["tool_choice"] = {
                "type": "function",
                "function": {"name": tool_schema["name"]},
            }
        return self._openai_client.chat.completions.create(
            model=self._resolve_model("openai"),
            max_tokens=self.max_tokens,
            messages=messages,
            **kwargs,
        )
