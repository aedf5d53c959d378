"""Configuration: frozen Config resolved once from the process environment."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import math
import os
from typing import TYPE_CHECKING, Any, Literal

from dotenv import load_dotenv

from mcp_llm.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

ProviderName = Literal["bedrock", "ollama", "openai", "openai-compatible"]

SUPPORTED_PROVIDERS: tuple[ProviderName, ...] = (
    "bedrock",
    "ollama",
    "openai",
    "openai-compatible",
)

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"


@dataclass(frozen=True)
class SamplingParams:
    """Optional numeric inference parameters.

    ``None`` means "not specified": the value is never forwarded and the
    provider applies its own default.
    """

    temperature: float | None = None
    num_ctx: int | None = None
    top_p: float | None = None
    top_k: int | None = None
    min_p: float | None = None
    repetition_penalty: float | None = None

    def present(self) -> dict[str, float | int]:
        """Return only the parameters that were explicitly set."""
        values: dict[str, float | int] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                values[f.name] = value
        return values


@dataclass(frozen=True)
class Config:
    """Immutable server configuration.

    Model name and provider are required. Everything else is optional and
    stays ``None`` when unset so callers can tell "absent" from "zero".

    Example:
        config = Config(model_name="llama3.2", model_provider="ollama")
    """

    model_name: str
    model_provider: str
    base_url: str | None = None
    sampling: SamplingParams = field(default_factory=SamplingParams)
    system_prompt_generate_code: str | None = None
    system_prompt_generate_documentation: str | None = None
    system_prompt_ask_question: str | None = None
    timeout_s: int | None = None
    allow_file_write: bool = False
    #: Used by the OpenAI providers; resolved from ``OPENAI_API_KEY``.
    api_key: str | None = None

    @property
    def provider_id(self) -> str:
        """Provider identifier normalized for case-insensitive matching."""
        return self.model_provider.strip().lower()

    def validate(self) -> None:
        """Raise ConfigurationError when a required field is missing."""
        if not self.model_name:
            raise ConfigurationError(
                "Model name is required",
                hint="Set the LLM_MODEL_NAME environment variable.",
            )
        if not self.model_provider:
            raise ConfigurationError(
                "Model provider is required",
                hint=(
                    "Set the LLM_MODEL_PROVIDER environment variable to one of: "
                    + ", ".join(SUPPORTED_PROVIDERS)
                ),
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Resolve configuration from environment variables.

        A local ``.env`` file is loaded first when reading the real process
        environment. Malformed numbers raise ConfigurationError naming the
        variable instead of silently becoming absent.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        sampling = SamplingParams(
            temperature=_parse_number(environ, "LLM_TEMPERATURE", float),
            num_ctx=_parse_number(environ, "LLM_NUM_CTX", int),
            top_p=_parse_number(environ, "LLM_TOP_P", float),
            top_k=_parse_number(environ, "LLM_TOP_K", int),
            min_p=_parse_number(environ, "LLM_MIN_P", float),
            repetition_penalty=_parse_number(
                environ, "LLM_REPETITION_PENALTY", float
            ),
        )
        allow_write = _optional(environ, "LLM_ALLOW_FILE_WRITE")

        config = cls(
            model_name=environ.get("LLM_MODEL_NAME", "").strip(),
            model_provider=environ.get("LLM_MODEL_PROVIDER", "").strip(),
            base_url=_optional(environ, "LLM_BASE_URL"),
            sampling=sampling,
            system_prompt_generate_code=_optional(
                environ, "LLM_SYSTEM_PROMPT_GENERATE_CODE"
            ),
            system_prompt_generate_documentation=_optional(
                environ, "LLM_SYSTEM_PROMPT_GENERATE_DOCUMENTATION"
            ),
            system_prompt_ask_question=_optional(
                environ, "LLM_SYSTEM_PROMPT_ASK_QUESTION"
            ),
            timeout_s=_parse_number(environ, "LLM_TIMEOUT_S", int),
            allow_file_write=(
                allow_write is not None and allow_write.strip().lower() == "true"
            ),
            api_key=_optional(environ, OPENAI_API_KEY_ENV),
        )
        config.validate()
        return config

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(model_name={self.model_name!r}, "
            f"model_provider={self.model_provider!r}, base_url={self.base_url!r}, "
            f"sampling={self.sampling.present()!r}, timeout_s={self.timeout_s!r}, "
            f"allow_file_write={self.allow_file_write!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None})"
        )

    __repr__ = __str__


def _optional(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None or value == "":
        return None
    return value


def _parse_number(
    environ: Mapping[str, str],
    name: str,
    kind: Callable[[str], Any],
) -> Any:
    raw = _optional(environ, name)
    if raw is None:
        return None
    expected = "an integer" if kind is int else "a finite number"
    try:
        value = kind(raw.strip())
    except ValueError:
        raise ConfigurationError(
            f"{name} must be {expected}, got {raw!r}",
            hint=f"Fix or unset {name}.",
        ) from None
    if isinstance(value, float) and not math.isfinite(value):
        raise ConfigurationError(
            f"{name} must be {expected}, got {raw!r}",
            hint=f"Fix or unset {name}.",
        )
    return value
