"""AWS Bedrock provider implementation (Converse API)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from mcp_llm.errors import InferenceError
from mcp_llm.providers._errors import wrap_provider_error
from mcp_llm.providers.models import ChatResponse, ContentPart

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcp_llm.providers.models import ChatMessage


class BedrockClient:
    """Bedrock runtime client using the model-agnostic Converse API.

    Region and credentials come from the standard AWS resolution chain.
    """

    provider = "bedrock"

    def __init__(
        self,
        model: str,
        *,
        system_prompt: str | None = None,
        inference_config: dict[str, Any] | None = None,
        endpoint_url: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        """Record client settings; the boto3 client is created on first use."""
        self.model = model
        self.system_prompt = system_prompt
        self.inference_config = dict(inference_config or {})
        self.endpoint_url = endpoint_url
        self.timeout_s = timeout_s
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the bedrock-runtime client."""
        if self._client is None:
            try:
                import boto3
                from botocore.config import Config as BotoConfig
            except ImportError as e:
                raise InferenceError(
                    "boto3 package not installed",
                    hint="pip install boto3",
                    provider=self.provider,
                    phase="init",
                ) from e
            boto_kwargs: dict[str, Any] = {"retries": {"max_attempts": 1}}
            if self.timeout_s is not None:
                boto_kwargs["read_timeout"] = self.timeout_s
            client_kwargs: dict[str, Any] = {"config": BotoConfig(**boto_kwargs)}
            if self.endpoint_url:
                client_kwargs["endpoint_url"] = self.endpoint_url
            self._client = boto3.client("bedrock-runtime", **client_kwargs)
        return self._client

    def _converse_kwargs(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "modelId": self.model,
            "messages": [
                {"role": m.role, "content": [{"text": m.content}]}
                for m in messages
                if m.role != "system"
            ],
        }
        system_texts = [m.content for m in messages if m.role == "system"]
        if self.system_prompt:
            system_texts.insert(0, self.system_prompt)
        if system_texts:
            kwargs["system"] = [{"text": text} for text in system_texts]
        if self.inference_config:
            kwargs["inferenceConfig"] = self.inference_config
        return kwargs

    def _converse(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        return self._get_client().converse(**kwargs)

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Run one Converse call off the event loop and return its content blocks.

        Client construction happens on the worker thread too, since botocore
        loads its service models from disk on first use.
        """
        kwargs = self._converse_kwargs(messages)
        try:
            response = await asyncio.to_thread(self._converse, kwargs)
        except InferenceError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.provider,
                phase="chat",
                message=f"Bedrock converse with model {self.model!r} failed",
            ) from e

        blocks = response.get("output", {}).get("message", {}).get("content")
        if not isinstance(blocks, list):
            raise InferenceError(
                "Bedrock converse returned no message content",
                provider=self.provider,
                phase="parse",
            )
        parts = tuple(_to_part(block) for block in blocks if isinstance(block, dict))
        return ChatResponse(content=parts, model=self.model, raw=response)


def _to_part(block: dict[str, Any]) -> ContentPart:
    if "text" in block:
        return ContentPart(type="text", text=str(block["text"]))
    if "reasoningContent" in block:
        reasoning = block["reasoningContent"].get("reasoningText", {})
        return ContentPart(type="reasoning", text=str(reasoning.get("text", "")))
    kind = next(iter(block), "unknown")
    return ContentPart(type=str(kind))
