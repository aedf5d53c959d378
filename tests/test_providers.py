"""Provider characterization tests.

These tests verify the request/response transformations for each provider
implementation. They use fake transports and SDK clients to characterize the
exact shapes sent to provider APIs without making real network calls.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from mcp_llm.errors import InferenceError
from mcp_llm.providers._errors import extract_status_code, wrap_provider_error
from mcp_llm.providers.bedrock import BedrockClient
from mcp_llm.providers.models import ContentPart, user_message
from mcp_llm.providers.ollama import OllamaClient
from mcp_llm.providers.openai import OpenAIClient

pytestmark = pytest.mark.contract


# =============================================================================
# Provider Error Mapping (Contract)
# =============================================================================


def test_wrap_provider_error_extracts_status_from_response() -> None:
    class _Resp:
        status_code = 401

    class _SdkError(Exception):
        def __init__(self) -> None:
            super().__init__("unauthorized")
            self.response = _Resp()

    err = wrap_provider_error(
        _SdkError(),
        provider="openai",
        phase="chat",
        message="OpenAI chat failed",
    )

    assert isinstance(err, InferenceError)
    assert err.status_code == 401
    assert err.provider == "openai"
    assert err.phase == "chat"
    assert "401" in str(err)
    assert err.hint is not None
    assert "OPENAI_API_KEY" in err.hint


def test_wrap_provider_error_enriches_existing_error_without_clobbering() -> None:
    base = InferenceError("bad request", status_code=400)
    wrapped = wrap_provider_error(base, provider="ollama", phase="chat")

    assert wrapped is base
    assert wrapped.status_code == 400
    assert wrapped.provider == "ollama"
    assert wrapped.phase == "chat"


def test_extract_status_code_reads_botocore_style_dict_response() -> None:
    class _ClientError(Exception):
        def __init__(self) -> None:
            super().__init__("AccessDeniedException")
            self.response = {"ResponseMetadata": {"HTTPStatusCode": 403}}

    assert extract_status_code(_ClientError()) == 403


def test_wrap_provider_error_hints_pull_for_missing_ollama_model() -> None:
    request = httpx.Request("POST", "http://localhost:11434/api/chat")
    response = httpx.Response(404, request=request)
    exc = httpx.HTTPStatusError("model not found", request=request, response=response)

    err = wrap_provider_error(exc, provider="ollama", phase="chat")

    assert err.status_code == 404
    assert err.hint is not None
    assert "ollama pull" in err.hint


def test_wrap_provider_error_reraises_cancellation() -> None:
    import asyncio

    with pytest.raises(asyncio.CancelledError):
        wrap_provider_error(asyncio.CancelledError(), provider="ollama", phase="chat")


# =============================================================================
# Ollama (Characterization via httpx.MockTransport)
# =============================================================================


@pytest.mark.asyncio
async def test_ollama_chat_posts_expected_payload() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"model": "llama3.2", "message": {"role": "assistant", "content": "hi"}},
        )

    client = OllamaClient(
        "llama3.2",
        host="http://gpu-box:11434",
        system_prompt="Be concise.",
        options={"temperature": 0.0, "num_ctx": 4096},
        transport=httpx.MockTransport(handler),
    )

    response = await client.chat(user_message("Say hi"))

    assert response.content == "hi"
    assert captured["url"] == "http://gpu-box:11434/api/chat"
    assert captured["body"] == {
        "model": "llama3.2",
        "messages": [
            {"role": "system", "content": "Be concise."},
            {"role": "user", "content": "Say hi"},
        ],
        "stream": False,
        "options": {"temperature": 0.0, "num_ctx": 4096},
    }


@pytest.mark.asyncio
async def test_ollama_chat_omits_options_and_system_when_unset() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"content": "ok"}})

    client = OllamaClient("llama3.2", transport=httpx.MockTransport(handler))
    await client.chat(user_message("q"))

    assert "options" not in captured["body"]
    assert captured["body"]["messages"] == [{"role": "user", "content": "q"}]


@pytest.mark.asyncio
async def test_ollama_http_error_becomes_inference_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "model 'nope' not found"})

    client = OllamaClient("nope", transport=httpx.MockTransport(handler))

    with pytest.raises(InferenceError) as exc:
        await client.chat(user_message("q"))

    assert exc.value.status_code == 404
    assert exc.value.provider == "ollama"
    assert "nope" in str(exc.value)


@pytest.mark.asyncio
async def test_ollama_connection_failure_becomes_inference_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = OllamaClient("llama3.2", transport=httpx.MockTransport(handler))

    with pytest.raises(InferenceError) as exc:
        await client.chat(user_message("q"))

    assert exc.value.status_code is None
    assert exc.value.hint is not None
    assert "reachable" in exc.value.hint


@pytest.mark.asyncio
async def test_ollama_missing_content_is_a_parse_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"done": True})

    client = OllamaClient("llama3.2", transport=httpx.MockTransport(handler))

    with pytest.raises(InferenceError) as exc:
        await client.chat(user_message("q"))
    assert exc.value.phase == "parse"


# =============================================================================
# OpenAI (Characterization via fake SDK client)
# =============================================================================


def _openai_completion(content: Any) -> MagicMock:
    completion = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    completion.choices = [choice]
    return completion


@pytest.mark.asyncio
async def test_openai_chat_sends_params_and_extra_body() -> None:
    client = OpenAIClient(
        "qwen2.5-coder",
        base_url="http://localhost:8000/v1",
        system_prompt="You write code.",
        params={"temperature": 0.1},
        extra_body={"top_k": 20},
        provider="openai-compatible",
    )
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(return_value=_openai_completion("print(1)"))
    client._client = fake

    response = await client.chat(user_message("print one"))

    assert response.content == "print(1)"
    fake.chat.completions.create.assert_awaited_once_with(
        model="qwen2.5-coder",
        messages=[
            {"role": "system", "content": "You write code."},
            {"role": "user", "content": "print one"},
        ],
        temperature=0.1,
        extra_body={"top_k": 20},
    )


@pytest.mark.asyncio
async def test_openai_chat_omits_extra_body_when_empty() -> None:
    client = OpenAIClient("gpt-4o-mini")
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(return_value=_openai_completion(None))
    client._client = fake

    response = await client.chat(user_message("q"))

    assert response.content == ""
    kwargs = fake.chat.completions.create.await_args.kwargs
    assert "extra_body" not in kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "q"}]


@pytest.mark.asyncio
async def test_openai_list_content_becomes_parts() -> None:
    client = OpenAIClient("gpt-4o-mini")
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(
        return_value=_openai_completion(
            [{"type": "text", "text": "a"}, {"type": "refusal", "text": ""}]
        )
    )
    client._client = fake

    response = await client.chat(user_message("q"))

    assert response.content == (
        ContentPart(type="text", text="a"),
        ContentPart(type="refusal", text=""),
    )


@pytest.mark.asyncio
async def test_openai_sdk_error_is_wrapped() -> None:
    class _AuthError(Exception):
        status_code = 401

    client = OpenAIClient("gpt-4o-mini")
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(side_effect=_AuthError("Incorrect API key"))
    client._client = fake

    with pytest.raises(InferenceError) as exc:
        await client.chat(user_message("q"))

    assert exc.value.status_code == 401
    assert exc.value.provider == "openai"


def test_openai_client_is_created_lazily_with_settings() -> None:
    client = OpenAIClient(
        "gpt-4o-mini", api_key="sk-test", base_url="http://proxy/v1", timeout_s=12
    )
    assert client._client is None

    sdk_client = client._get_client()

    assert sdk_client is client._get_client()
    assert sdk_client.api_key == "sk-test"
    assert str(sdk_client.base_url).startswith("http://proxy/v1")
    assert sdk_client.max_retries == 0


# =============================================================================
# Bedrock (Characterization via fake boto3 client)
# =============================================================================


@pytest.mark.asyncio
async def test_bedrock_converse_request_and_content_blocks() -> None:
    fake = MagicMock()
    fake.converse.return_value = {
        "output": {
            "message": {
                "role": "assistant",
                "content": [
                    {"reasoningContent": {"reasoningText": {"text": "thinking"}}},
                    {"text": "answer"},
                ],
            }
        }
    }
    client = BedrockClient(
        "anthropic.claude-3-haiku-20240307-v1:0",
        system_prompt="Be terse.",
        inference_config={"temperature": 0.2, "topP": 0.9},
    )
    client._client = fake

    response = await client.chat(user_message("hello"))

    assert response.content == (
        ContentPart(type="reasoning", text="thinking"),
        ContentPart(type="text", text="answer"),
    )
    fake.converse.assert_called_once_with(
        modelId="anthropic.claude-3-haiku-20240307-v1:0",
        messages=[{"role": "user", "content": [{"text": "hello"}]}],
        system=[{"text": "Be terse."}],
        inferenceConfig={"temperature": 0.2, "topP": 0.9},
    )


@pytest.mark.asyncio
async def test_bedrock_omits_optional_sections() -> None:
    fake = MagicMock()
    fake.converse.return_value = {"output": {"message": {"content": [{"text": "x"}]}}}
    client = BedrockClient("meta.llama3-8b-instruct-v1:0")
    client._client = fake

    await client.chat(user_message("hello"))

    kwargs = fake.converse.call_args.kwargs
    assert "system" not in kwargs
    assert "inferenceConfig" not in kwargs


@pytest.mark.asyncio
async def test_bedrock_client_error_is_wrapped() -> None:
    class _ClientError(Exception):
        def __init__(self) -> None:
            super().__init__("ValidationException: model identifier is invalid")
            self.response = {"ResponseMetadata": {"HTTPStatusCode": 400}}

    fake = MagicMock()
    fake.converse.side_effect = _ClientError()
    client = BedrockClient("bad-model")
    client._client = fake

    with pytest.raises(InferenceError) as exc:
        await client.chat(user_message("hello"))

    assert exc.value.status_code == 400
    assert exc.value.provider == "bedrock"
    assert "bad-model" in str(exc.value)


@pytest.mark.asyncio
async def test_bedrock_client_is_built_off_the_event_loop(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    loop_thread = threading.get_ident()
    built_on: list[int] = []
    fake = MagicMock()
    fake.converse.return_value = {"output": {"message": {"content": [{"text": "x"}]}}}
    client = BedrockClient("meta.llama3-8b-instruct-v1:0")

    def _build() -> MagicMock:
        built_on.append(threading.get_ident())
        return fake

    monkeypatch.setattr(client, "_get_client", _build)

    await client.chat(user_message("hello"))

    assert built_on
    assert built_on[0] != loop_thread


# =============================================================================
# Live API (opt-in)
# =============================================================================


@pytest.mark.api
@pytest.mark.asyncio
async def test_live_ollama_round_trip() -> None:
    model = os.getenv("LLM_MODEL_NAME")
    if not model:
        pytest.skip("LLM_MODEL_NAME not set")
    client = OllamaClient(model, host=os.getenv("LLM_BASE_URL"), timeout_s=120)

    response = await client.chat(user_message("Reply with the single word: pong"))

    assert isinstance(response.content, str)
    assert response.content.strip()
