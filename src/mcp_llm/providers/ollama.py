"""Ollama provider implementation (local inference daemon)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from mcp_llm.config import DEFAULT_OLLAMA_HOST
from mcp_llm.errors import InferenceError
from mcp_llm.providers._errors import wrap_provider_error
from mcp_llm.providers.models import ChatResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcp_llm.providers.models import ChatMessage

log = logging.getLogger(__name__)


class OllamaClient:
    """Chat client for the Ollama ``/api/chat`` endpoint.

    A fresh ``httpx.AsyncClient`` is opened per call; nothing is pooled
    between tool invocations.
    """

    provider = "ollama"

    def __init__(
        self,
        model: str,
        *,
        host: str | None = None,
        system_prompt: str | None = None,
        options: dict[str, Any] | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Bind the client to a model and host without contacting the daemon."""
        self.model = model
        self.host = (host or DEFAULT_OLLAMA_HOST).rstrip("/")
        self.system_prompt = system_prompt
        self.options = dict(options or {})
        self.timeout_s = timeout_s
        self._transport = transport

    def _payload(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        wire_messages: list[dict[str, str]] = []
        if self.system_prompt:
            wire_messages.append({"role": "system", "content": self.system_prompt})
        wire_messages.extend({"role": m.role, "content": m.content} for m in messages)

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": wire_messages,
            "stream": False,
        }
        if self.options:
            payload["options"] = self.options
        return payload

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """POST one non-streaming chat request and return the assistant text."""
        # None disables the timeout entirely.
        timeout = httpx.Timeout(self.timeout_s)
        try:
            async with httpx.AsyncClient(
                base_url=self.host,
                timeout=timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/api/chat", json=self._payload(messages))
                response.raise_for_status()
                body = response.json()
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.provider,
                phase="chat",
                message=f"Ollama chat with model {self.model!r} failed",
            ) from e

        message = body.get("message") if isinstance(body, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise InferenceError(
                "Ollama chat returned no message content",
                provider=self.provider,
                phase="parse",
            )
        log.debug("Ollama chat returned %d characters", len(content))
        return ChatResponse(content=content, model=str(body.get("model", self.model)), raw=body)
