"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, a chat client test
double and automatic API test skipping. Fixtures marked autouse apply to
every test unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import TYPE_CHECKING, Any

import pytest

from mcp_llm.config import Config, SamplingParams
from mcp_llm.providers.models import ChatResponse, ContentPart

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from mcp_llm.providers.models import ChatMessage

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeChatClient:
    """Chat client test double.

    Returns a configured reply (or raises a configured error) and records every
    call so tests can assert on the exact messages sent.
    """

    reply: str | tuple[ContentPart, ...] = "ok"
    error: BaseException | None = None
    provider: str = "fake"
    model: str = "fake-model"
    system_prompt: str | None = None
    calls: list[list[ChatMessage]] = field(default_factory=list)

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return ChatResponse(content=self.reply, model=self.model)


@dataclass
class RecordingFactory:
    """Client factory double that hands out FakeChatClients.

    ``errors_by_model`` lets a test fail calls for specific model names only.
    """

    reply: str | tuple[ContentPart, ...] = "ok"
    error: BaseException | None = None
    errors_by_model: dict[str, BaseException] = field(default_factory=dict)
    built: list[tuple[Config, str | None]] = field(default_factory=list)
    clients: list[FakeChatClient] = field(default_factory=list)

    def __call__(self, config: Config, system_prompt: str | None) -> FakeChatClient:
        self.built.append((config, system_prompt))
        client = FakeChatClient(
            reply=self.reply,
            error=self.errors_by_model.get(config.model_name, self.error),
            model=config.model_name,
            system_prompt=system_prompt,
        )
        self.clients.append(client)
        return client


@pytest.fixture
def fake_factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def make_config() -> Callable[..., Config]:
    """Build a Config with test defaults; keyword arguments override fields."""

    def _make(**overrides: Any) -> Config:
        values: dict[str, Any] = {
            "model_name": "llama3.2",
            "model_provider": "ollama",
            "sampling": SamplingParams(),
        }
        values.update(overrides)
        return Config(**values)

    return _make


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "mcp_llm.config.load_dotenv", lambda *_args, **_kwargs: False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears LLM_* and OPENAI_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("LLM_", "OPENAI_")):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)
