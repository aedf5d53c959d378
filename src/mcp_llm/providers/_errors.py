"""Shared provider-side error helpers.

Providers map SDK and transport exceptions into InferenceError so handlers
can build diagnostics without brittle substring matching.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from mcp_llm.errors import InferenceError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response: Any = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
        # botocore ClientError keeps the parsed response as a plain dict.
        if isinstance(response, dict):
            metadata = response.get("ResponseMetadata")
            if isinstance(metadata, dict):
                value = metadata.get("HTTPStatusCode")
                if isinstance(value, int) and 100 <= value <= 599:
                    return value
    return None


def _is_connection_failure(exc: BaseException) -> bool:
    for e in _walk_exception_chain(exc):
        if isinstance(e, (httpx.ConnectError, httpx.TimeoutException)):
            return True
        name = type(e).__name__
        if name in {"APIConnectionError", "APITimeoutError", "EndpointConnectionError"}:
            return True
    return False


def _default_hint(
    provider: str, status_code: int | None, exc: BaseException
) -> str | None:
    """Generate a remediation hint where the failure mode is recognizable."""
    cause_lower = str(exc).lower()
    if status_code in {401, 403} or "api key" in cause_lower:
        if provider.startswith("openai"):
            return "Check credentials (set OPENAI_API_KEY)."
        if provider == "bedrock":
            return "Check AWS credentials and that the model is enabled for your account."
        return "Check credentials/permissions for the provider endpoint."
    if provider == "ollama" and (status_code == 404 or "not found" in cause_lower):
        return "The model may not be pulled yet; run `ollama pull <model>`."
    if _is_connection_failure(exc):
        return "Check that the provider endpoint is reachable and LLM_TIMEOUT_S is large enough."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> InferenceError:
    """Map provider SDK exceptions into InferenceError with stable metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped; fill in missing context only.
    if isinstance(exc, InferenceError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc

    status_code = extract_status_code(exc)
    derived_hint = hint if hint is not None else _default_hint(provider, status_code, exc)

    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc) or type(exc).__name__
    return InferenceError(
        f"{msg}{status_note}: {cause}",
        hint=derived_hint,
        status_code=status_code,
        provider=provider,
        phase=phase,
    )
