"""Exception hierarchy for mcp-llm."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class McpLlmError(Exception):
    """Base exception for all mcp-llm errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(McpLlmError):
    """Configuration validation or resolution failed."""


class UnsupportedParameterError(ConfigurationError):
    """A configured inference parameter is not accepted by the provider."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        provider: str | None = None,
        parameters: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message, hint=hint)
        self.provider = provider
        self.parameters = parameters


class InferenceError(McpLlmError):
    """An inference call failed.

    Providers attach the provider name, the failing phase and any HTTP status
    so diagnostics can be built without brittle substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class FileAccessError(McpLlmError):
    """Reading, creating or writing a patch target failed."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.path = path
        self.operation = operation


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
