"""Domain models for the provider transport layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A single role-tagged chat message."""

    role: Role
    content: str


@dataclass(frozen=True)
class ContentPart:
    """A typed part of a multi-part response body.

    Only ``type == "text"`` parts carry answer text; other part types
    (reasoning traces, tool use, images) are kept for diagnostics only.
    """

    type: str
    text: str = ""


@dataclass(frozen=True)
class ChatResponse:
    """A standardized response from a single chat call."""

    content: str | tuple[ContentPart, ...]
    model: str = ""
    raw: object | None = None


def user_message(content: str) -> list[ChatMessage]:
    """Build the single-turn message list sent for every tool invocation."""
    return [ChatMessage(role="user", content=content)]
