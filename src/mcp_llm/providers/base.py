"""Client protocol: minimal interface for chat-capable inference backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcp_llm.providers.models import ChatMessage, ChatResponse


@runtime_checkable
class ChatClient(Protocol):
    """A client bound to one model on one provider.

    Construction never performs network I/O; failures surface on ``chat``.
    """

    provider: str
    model: str

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Send one chat exchange and return the model's reply."""
        ...
