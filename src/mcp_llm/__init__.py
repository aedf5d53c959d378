"""mcp-llm: an MCP server exposing LLM-backed coding tools.

Public API:
    - Config: environment-backed configuration
    - build_client(): provider-agnostic chat client factory
    - ToolHandlers: tool dispatch and handlers
"""

from __future__ import annotations

import logging

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("mcp-llm")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

from mcp_llm.config import Config, SamplingParams
from mcp_llm.errors import (
    ConfigurationError,
    FileAccessError,
    InferenceError,
    McpLlmError,
    UnsupportedParameterError,
)
from mcp_llm.extraction import extract_code_block, response_text
from mcp_llm.factory import build_client
from mcp_llm.handlers import ToolHandlers
from mcp_llm.result import Failure, Success, ToolResult

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("mcp_llm").addHandler(logging.NullHandler())

__all__ = [
    "Config",
    "ConfigurationError",
    "Failure",
    "FileAccessError",
    "InferenceError",
    "McpLlmError",
    "SamplingParams",
    "Success",
    "ToolHandlers",
    "ToolResult",
    "UnsupportedParameterError",
    "__version__",
    "build_client",
    "extract_code_block",
    "response_text",
]
