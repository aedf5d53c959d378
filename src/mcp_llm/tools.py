"""Tool catalogue and typed tool requests.

Each tool has a pydantic model that is both its advertised input schema and
the single validation pass applied at dispatch. Handlers only ever see a
validated request.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, ClassVar

from mcp import types
from mcp.shared.exceptions import McpError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_LANGUAGE = "JavaScript"
DEFAULT_DOC_FORMAT = "Markdown"

_LANGUAGE_HELP = "Programming language (e.g., JavaScript, Python, TypeScript)"


class ToolRequest(BaseModel):
    """Base for validated tool arguments."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    tool_name: ClassVar[str]
    tool_description: ClassVar[str]

    def prompt(self) -> str:
        """Render the single user message sent to the model."""
        raise NotImplementedError


class GenerateCodeRequest(ToolRequest):
    tool_name: ClassVar[str] = "generate_code"
    tool_description: ClassVar[str] = "Generate code based on a description"

    description: str = Field(min_length=1, description="Description of the code to generate")
    language: str | None = Field(None, description=_LANGUAGE_HELP)
    additional_context: str | None = Field(
        None,
        alias="additionalContext",
        description="Additional context or requirements for the code",
    )

    @property
    def resolved_language(self) -> str:
        return self.language or DEFAULT_LANGUAGE

    def prompt(self) -> str:
        extra = (
            f"Additional context:\n{self.additional_context}"
            if self.additional_context
            else ""
        )
        return (
            f"Generate {self.resolved_language} code for the following description:"
            f"\n\n{self.description}\n\n{extra}"
        )


class GenerateCodeToFileRequest(GenerateCodeRequest):
    tool_name: ClassVar[str] = "generate_code_to_file"
    tool_description: ClassVar[str] = (
        "Generate code and write it directly to a file at a specific line number"
    )

    file_path: str = Field(
        min_length=1,
        alias="filePath",
        description="Path to the file where the code should be written",
    )
    line_number: int = Field(
        alias="lineNumber",
        description="Line number where the code should be inserted (0-based)",
    )
    replace_lines: int | None = Field(
        None,
        alias="replaceLines",
        description="Number of lines to replace (0 for insertion only)",
    )

    @field_validator("file_path")
    @classmethod
    def _no_nul_bytes(cls, value: str) -> str:
        if "\x00" in value:
            raise ValueError("must not contain NUL bytes")
        return value


class GenerateDocumentationRequest(ToolRequest):
    tool_name: ClassVar[str] = "generate_documentation"
    tool_description: ClassVar[str] = "Generate documentation for code"

    code: str = Field(min_length=1, description="Code to document")
    language: str | None = Field(None, description="Programming language of the code")
    format: str | None = Field(
        None, description="Documentation format (e.g., JSDoc, Markdown)"
    )

    def prompt(self) -> str:
        language = self.language or DEFAULT_LANGUAGE
        doc_format = self.format or DEFAULT_DOC_FORMAT
        return (
            f"Generate {doc_format} documentation for the following {language} code:"
            f"\n\n```{language}\n{self.code}\n```"
        )


class AskQuestionRequest(ToolRequest):
    tool_name: ClassVar[str] = "ask_question"
    tool_description: ClassVar[str] = "Ask a question to the LLM"

    question: str = Field(min_length=1, description="Question to ask")
    context: str | None = Field(None, description="Additional context for the question")

    def prompt(self) -> str:
        if self.context:
            return f"{self.question}\n\nContext:\n{self.context}"
        return self.question


REQUEST_TYPES: dict[str, type[ToolRequest]] = {
    cls.tool_name: cls
    for cls in (
        GenerateCodeRequest,
        GenerateCodeToFileRequest,
        GenerateDocumentationRequest,
        AskQuestionRequest,
    )
}


def to_tool_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Simplify a pydantic JSON schema into a plain tool input schema.

    Drops generated titles and ``null`` defaults, and collapses
    ``anyOf: [X, null]`` into ``X``.
    """
    normalized = deepcopy(schema)

    def walk(node: Any) -> Any:
        if isinstance(node, list):
            return [walk(item) for item in node]
        if not isinstance(node, dict):
            return node

        updated: dict[str, Any] = {}
        for key, value in node.items():
            if key == "title" and isinstance(value, str):
                continue
            if key == "properties" and isinstance(value, dict):
                updated[key] = {name: walk(prop) for name, prop in value.items()}
                continue
            updated[key] = walk(value)

        options = updated.get("anyOf")
        if isinstance(options, list):
            non_null = [o for o in options if o != {"type": "null"}]
            if len(non_null) == 1 and len(non_null) != len(options):
                updated.pop("anyOf")
                updated = {**non_null[0], **updated}
        if "default" in updated and updated["default"] is None:
            updated.pop("default")
        return updated

    return walk(normalized)


def tool_definition(request_type: type[ToolRequest]) -> types.Tool:
    """Build the advertised MCP tool for a request model."""
    return types.Tool(
        name=request_type.tool_name,
        description=request_type.tool_description,
        inputSchema=to_tool_schema(request_type.model_json_schema(by_alias=True)),
    )


TOOLS: list[types.Tool] = [tool_definition(cls) for cls in REQUEST_TYPES.values()]


def parse_arguments(name: str, arguments: dict[str, Any] | None) -> ToolRequest:
    """Validate raw tool arguments into a typed request.

    Raises McpError with METHOD_NOT_FOUND for unknown tools and INVALID_PARAMS
    naming the first offending field.
    """
    request_type = REQUEST_TYPES.get(name)
    if request_type is None:
        raise McpError(
            types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Unknown tool: {name}")
        )
    try:
        return request_type.model_validate(arguments or {})
    except ValidationError as e:
        raise McpError(
            types.ErrorData(
                code=types.INVALID_PARAMS,
                message=f"Invalid arguments for {name}: {_describe_error(e)}",
            )
        ) from e


_MISSING_ERROR_TYPES = frozenset(
    {"missing", "string_too_short", "string_type", "int_type"}
)


def _describe_error(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(loc) for loc in first.get("loc", ())) or "arguments"
    missing = first.get("type") == "missing" or (
        first.get("type") in _MISSING_ERROR_TYPES and first.get("input") in (None, "")
    )
    if missing:
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"
