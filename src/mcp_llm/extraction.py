"""Response text extraction.

Two stages: flatten a response body into one string, then optionally narrow
it to the interior of the first fenced code block.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcp_llm.providers.models import ChatResponse, ContentPart

# Opening fence may carry a language tag; the block needs at least one line.
_FENCED_BLOCK = re.compile(r"```(?:\w+)?\n(.+?)\n```", re.DOTALL)


def response_text(content: str | Iterable[ContentPart] | ChatResponse) -> str:
    """Join the ``text`` parts of a response body with newlines.

    Plain string bodies are returned as-is; non-text parts are dropped.
    """
    body = getattr(content, "content", content)
    if isinstance(body, str):
        return body
    return "\n".join(part.text for part in body if part.type == "text")


def extract_code_block(text: str) -> str:
    """Return the interior of the first fenced block, or *text* unchanged."""
    match = _FENCED_BLOCK.search(text)
    if match and match.group(1):
        return match.group(1)
    return text
