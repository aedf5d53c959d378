"""Handler results: a success or a user-facing diagnostic failure.

Every tool handler returns one of these. Only the dispatcher turns them into
an MCP ``CallToolResult``; a Failure is still a well-formed response body,
flagged with ``isError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from mcp import types


@dataclass(frozen=True)
class Success:
    """Tool completed; *text* is the body shown to the caller."""

    text: str

    is_error = False


@dataclass(frozen=True)
class Failure:
    """Backend or file failure rendered as a diagnostic message."""

    text: str
    cause: BaseException | None = None

    is_error = True


ToolResult: TypeAlias = Success | Failure


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    """Wrap a handler result in a single-text-segment MCP envelope."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )
