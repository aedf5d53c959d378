"""Tool dispatch and handlers.

``dispatch`` validates arguments (protocol-level errors escape as McpError)
and routes the typed request to its handler. Handlers return
``Success | Failure``: anything that goes wrong after validation becomes a
diagnostic Failure so one bad inference call never takes the server down.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from mcp_llm.errors import FileAccessError, McpLlmError
from mcp_llm.extraction import extract_code_block, response_text
from mcp_llm.factory import build_client, describe_endpoint
from mcp_llm.providers.models import user_message
from mcp_llm.result import Failure, Success, to_call_tool_result
from mcp_llm.splice import FilePatch, PatchWriter, log_path_diagnostics, resolve_path
from mcp_llm.tools import (
    AskQuestionRequest,
    GenerateCodeRequest,
    GenerateCodeToFileRequest,
    GenerateDocumentationRequest,
    parse_arguments,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    import os
    from typing import Any

    from mcp import types

    from mcp_llm.config import Config
    from mcp_llm.providers.base import ChatClient
    from mcp_llm.result import ToolResult
    from mcp_llm.tools import ToolRequest

    ClientFactory = Callable[[Config, str | None], ChatClient]

log = logging.getLogger(__name__)

FILE_WRITE_DISABLED_MESSAGE = (
    "Error: File writing is not allowed. Set LLM_ALLOW_FILE_WRITE=true in your "
    "environment variables to enable this feature."
)

_PROVIDER_LABELS = {
    "ollama": "Ollama server",
    "bedrock": "AWS Bedrock endpoint",
    "openai": "OpenAI endpoint",
    "openai-compatible": "OpenAI-compatible endpoint",
}


class ToolHandlers:
    """Route validated tool requests to inference and file patching.

    Holds only read-only state (the Config) plus the patch writer's per-path
    locks, so concurrent requests need no further coordination.
    """

    def __init__(
        self,
        config: Config,
        *,
        client_factory: ClientFactory = build_client,
        patch_writer: PatchWriter | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._patch_writer = patch_writer or PatchWriter()
        self._cwd = cwd

    async def dispatch(
        self, name: str, arguments: dict[str, Any] | None
    ) -> types.CallToolResult:
        """Validate, run and wrap one tool call."""
        request = parse_arguments(name, arguments)
        log.info("Handling tool call: %s", name)
        result = await self.handle(request)
        if result.is_error:
            log.warning("Tool %s returned a diagnostic failure", name)
        return to_call_tool_result(result)

    async def handle(self, request: ToolRequest) -> ToolResult:
        """Run the handler for an already-validated request."""
        # Subclass first: GenerateCodeToFileRequest extends GenerateCodeRequest.
        if isinstance(request, GenerateCodeToFileRequest):
            return await self.generate_code_to_file(request)
        if isinstance(request, GenerateCodeRequest):
            return await self.generate_code(request)
        if isinstance(request, GenerateDocumentationRequest):
            return await self.generate_documentation(request)
        if isinstance(request, AskQuestionRequest):
            return await self.ask_question(request)
        raise TypeError(f"No handler for {type(request).__name__}")

    async def generate_code(self, request: GenerateCodeRequest) -> ToolResult:
        try:
            text = await self._complete(
                request.prompt(), self.config.system_prompt_generate_code
            )
        except Exception as e:
            return self._inference_failure("generating code", e)
        return Success(text)

    async def generate_documentation(
        self, request: GenerateDocumentationRequest
    ) -> ToolResult:
        """Generate docs, retrying once with the base model name on failure.

        A model name such as ``codellama_custom`` falls back to ``codellama``;
        if the fallback also fails the original error is reported.
        """
        system_prompt = self.config.system_prompt_generate_documentation
        model_name = self.config.model_name
        try:
            log.info("Attempting to use model: %r", model_name)
            return Success(await self._complete(request.prompt(), system_prompt))
        except Exception as original:
            log.error("Error with original model name %r: %s", model_name, original)
            if "_" not in model_name:
                return self._inference_failure("generating documentation", original)

            base_model = model_name.split("_")[0]
            log.info("Trying with base model name: %r", base_model)
            try:
                text = await self._complete(
                    request.prompt(), system_prompt, model_name=base_model
                )
            except Exception as fallback_error:
                log.error("Error with base model name %r: %s", base_model, fallback_error)
                return self._inference_failure("generating documentation", original)
            return Success(text)

    async def ask_question(self, request: AskQuestionRequest) -> ToolResult:
        try:
            text = await self._complete(
                request.prompt(), self.config.system_prompt_ask_question
            )
        except Exception as e:
            return self._inference_failure("answering question", e)
        return Success(text)

    async def generate_code_to_file(
        self, request: GenerateCodeToFileRequest
    ) -> ToolResult:
        """Generate code and splice it into a file at a zero-based line.

        Refused without any file-system access unless file writing is enabled.
        """
        if not self.config.allow_file_write:
            return Failure(FILE_WRITE_DISABLED_MESSAGE)

        log_path_diagnostics(request.file_path, resolve_path(request.file_path, self._cwd))

        try:
            log.info(
                "Generating code for file: %s at line: %d",
                request.file_path,
                request.line_number,
            )
            generated = await self._complete(
                request.prompt(), self.config.system_prompt_generate_code
            )
        except Exception as e:
            return self._inference_failure("generating code to file", e)

        code = extract_code_block(generated)
        patch = FilePatch.create(
            request.file_path,
            request.line_number,
            request.replace_lines or 0,
            code,
            cwd=self._cwd,
        )
        try:
            outcome = await self._patch_writer.apply(patch)
        except FileAccessError as e:
            return Failure(str(e), cause=e)

        return Success(
            f"Successfully generated and inserted code into {outcome.file_path} "
            f"at line {outcome.offset}.\n\nGenerated code:\n"
            f"```{request.resolved_language}\n{code}\n```"
        )

    async def _complete(
        self,
        prompt: str,
        system_prompt: str | None,
        *,
        model_name: str | None = None,
    ) -> str:
        """Build a fresh client, run one single-turn chat, flatten the reply."""
        config = self.config
        if model_name is not None:
            config = dataclasses.replace(config, model_name=model_name)
        client = self._client_factory(config, system_prompt)
        response = await client.chat(user_message(prompt))
        return response_text(response)

    def _inference_failure(self, action: str, error: BaseException) -> Failure:
        log.error("Error %s: %s", action, error)
        return Failure(self.diagnostic(action, error), cause=error)

    def diagnostic(self, action: str, error: BaseException) -> str:
        """Render a user-facing message naming the model, endpoint and a fix."""
        model = self.config.model_name
        provider = self.config.provider_id
        label = _PROVIDER_LABELS.get(provider, "provider endpoint")
        lines = [
            f"Error {action}: {error}",
            f'Please check that the model "{model}" is available on your {label} '
            f'at "{describe_endpoint(self.config)}".',
        ]
        hint = error.hint if isinstance(error, McpLlmError) else None
        if hint:
            lines.append(hint)
        if provider == "ollama" and not (hint and "ollama pull" in hint):
            lines.append(f"You may need to pull the model first using: ollama pull {model}")
        return "\n\n".join(lines)
