"""Inference client factory.

Translates the generic Config into one provider's dialect. Each provider has
an explicit allow-list mapping sampling parameters to wire names; anything
configured outside that list fails fast with UnsupportedParameterError rather
than being forwarded and rejected deep inside a third-party client.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from mcp_llm.config import DEFAULT_OLLAMA_HOST, SUPPORTED_PROVIDERS
from mcp_llm.errors import ConfigurationError, UnsupportedParameterError
from mcp_llm.providers.bedrock import BedrockClient
from mcp_llm.providers.ollama import OllamaClient
from mcp_llm.providers.openai import OpenAIClient

if TYPE_CHECKING:
    from mcp_llm.config import Config, ProviderName
    from mcp_llm.providers.base import ChatClient

log = logging.getLogger(__name__)

# SamplingParams field -> provider wire name.
PARAMETER_TABLE: dict[ProviderName, dict[str, str]] = {
    "bedrock": {
        "temperature": "temperature",
        "top_p": "topP",
    },
    "ollama": {
        "temperature": "temperature",
        "num_ctx": "num_ctx",
        "top_p": "top_p",
        "top_k": "top_k",
        "min_p": "min_p",
        "repetition_penalty": "repeat_penalty",
    },
    "openai": {
        "temperature": "temperature",
        "top_p": "top_p",
    },
    "openai-compatible": {
        "temperature": "temperature",
        "top_p": "top_p",
        "top_k": "top_k",
        "min_p": "min_p",
        "repetition_penalty": "repetition_penalty",
    },
}

# Not part of the OpenAI schema; compatible servers (vLLM, llama.cpp) read them
# from the request body.
_EXTRA_BODY_PARAMS = frozenset({"top_k", "min_p", "repetition_penalty"})

_OPENAI_DEFAULT_ENDPOINT = "https://api.openai.com/v1"
_BEDROCK_DEFAULT_ENDPOINT = "the default AWS Bedrock runtime endpoint"


def resolve_provider(config: Config) -> ProviderName:
    """Return the canonical provider identifier or raise ConfigurationError."""
    config.validate()
    provider = config.provider_id
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unsupported model provider: {config.model_provider}",
            hint="Supported providers: " + ", ".join(SUPPORTED_PROVIDERS),
        )
    return cast("ProviderName", provider)


def inference_params(config: Config, provider: ProviderName | None = None) -> dict[str, Any]:
    """Map the explicitly-set sampling parameters to provider wire names.

    Unset parameters are omitted entirely so the provider applies its own
    defaults.
    """
    provider = provider or resolve_provider(config)
    table = PARAMETER_TABLE[provider]
    present = config.sampling.present()

    unsupported = tuple(name for name in present if name not in table)
    if unsupported:
        raise UnsupportedParameterError(
            f"Provider {provider!r} does not support: {', '.join(unsupported)}",
            hint="Supported parameters: " + ", ".join(table),
            provider=provider,
            parameters=unsupported,
        )
    return {table[name]: value for name, value in present.items()}


def describe_endpoint(config: Config) -> str:
    """Human-readable endpoint the configured provider talks to."""
    provider = config.provider_id
    if provider == "ollama":
        return config.base_url or DEFAULT_OLLAMA_HOST
    if provider == "bedrock":
        return config.base_url or _BEDROCK_DEFAULT_ENDPOINT
    return config.base_url or _OPENAI_DEFAULT_ENDPOINT


def check_config(config: Config) -> ProviderName:
    """Validate everything build_client would check, without building a client."""
    provider = resolve_provider(config)
    inference_params(config, provider)
    return provider


def build_client(config: Config, system_prompt: str | None = None) -> ChatClient:
    """Construct a chat client bound to the configured model and provider.

    No network call is made; connection, model and authentication failures
    surface on the first ``chat`` call.
    """
    provider = resolve_provider(config)
    params = inference_params(config, provider)
    system_prompt = system_prompt or None

    if provider == "bedrock":
        return BedrockClient(
            config.model_name,
            system_prompt=system_prompt,
            inference_config=params,
            endpoint_url=config.base_url,
            timeout_s=config.timeout_s,
        )

    if provider == "ollama":
        host = config.base_url or DEFAULT_OLLAMA_HOST
        log.info("Creating Ollama client with model: %r", config.model_name)
        log.info("Using Ollama host: %r", host)
        log.info("System prompt: %s", repr(system_prompt) if system_prompt else "none")
        log.info("Additional parameters: %s", params)
        return OllamaClient(
            config.model_name,
            host=host,
            system_prompt=system_prompt,
            options=params,
            timeout_s=config.timeout_s,
        )

    extra_body: dict[str, Any] = {}
    table = PARAMETER_TABLE[provider]
    for name in _EXTRA_BODY_PARAMS:
        wire = table.get(name)
        if wire is not None and wire in params:
            extra_body[wire] = params.pop(wire)
    return OpenAIClient(
        config.model_name,
        api_key=config.api_key,
        base_url=config.base_url,
        system_prompt=system_prompt,
        params=params,
        extra_body=extra_body,
        timeout_s=config.timeout_s,
        provider=provider,
    )
