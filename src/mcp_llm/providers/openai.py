"""OpenAI and OpenAI-compatible provider implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp_llm.errors import InferenceError
from mcp_llm.providers._errors import wrap_provider_error
from mcp_llm.providers.models import ChatResponse, ContentPart

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcp_llm.providers.models import ChatMessage

#: Placeholder key; authentication fails on first use, not at construction.
PLACEHOLDER_API_KEY = "dummy-key"


class OpenAIClient:
    """Chat Completions client for OpenAI and compatible HTTP servers."""

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        system_prompt: str | None = None,
        params: dict[str, Any] | None = None,
        extra_body: dict[str, Any] | None = None,
        timeout_s: float | None = None,
        provider: str = "openai",
    ) -> None:
        """Record client settings; the SDK client is created on first use."""
        self.provider = provider
        self.model = model
        self.api_key = api_key or PLACEHOLDER_API_KEY
        self.base_url = base_url
        self.system_prompt = system_prompt
        self.params = dict(params or {})
        self.extra_body = dict(extra_body or {})
        self.timeout_s = timeout_s
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise InferenceError(
                    "openai package not installed",
                    hint="pip install openai",
                    provider=self.provider,
                    phase="init",
                ) from e
            kwargs: dict[str, Any] = {"api_key": self.api_key, "max_retries": 0}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self.timeout_s is not None:
                kwargs["timeout"] = float(self.timeout_s)
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    def _create_kwargs(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        wire_messages: list[dict[str, str]] = []
        if self.system_prompt:
            wire_messages.append({"role": "system", "content": self.system_prompt})
        wire_messages.extend({"role": m.role, "content": m.content} for m in messages)

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": wire_messages,
            **self.params,
        }
        if self.extra_body:
            create_kwargs["extra_body"] = self.extra_body
        return create_kwargs

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Create one chat completion and return the first choice."""
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(
                **self._create_kwargs(messages)
            )
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.provider,
                phase="chat",
                message=f"OpenAI chat with model {self.model!r} failed",
            ) from e

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise InferenceError(
                "OpenAI chat returned no choices",
                provider=self.provider,
                phase="parse",
            )
        message = choices[0].message
        content: Any = getattr(message, "content", None)
        if isinstance(content, list):
            parts = tuple(
                ContentPart(
                    type=str(_field(item, "type") or ""),
                    text=str(_field(item, "text") or ""),
                )
                for item in content
            )
            return ChatResponse(content=parts, model=self.model, raw=completion)
        return ChatResponse(content=content or "", model=self.model, raw=completion)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)
