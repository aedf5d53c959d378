#!/usr/bin/env python3
"""Recipe: Drive the mcp-llm server from an MCP client over stdio

When you need to: Call the server's tools from your own Python code instead
of an editor integration, e.g. to script documentation runs.

Ingredients:
- A reachable backend (default: a local Ollama with the model pulled)
- `LLM_MODEL_NAME` / `LLM_MODEL_PROVIDER` in the environment or flags below

What you'll learn:
- Launch the server as a subprocess with `StdioServerParameters`
- List the advertised tools and call one with camelCase arguments
- Tell diagnostic failures (`isError`) apart from normal answers

Difficulty: ⭐
Time: ~3 minutes
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.stdio import stdio_client


def _server_params(model: str, provider: str, base_url: str | None) -> StdioServerParameters:
    env = dict(os.environ)
    env["LLM_MODEL_NAME"] = model
    env["LLM_MODEL_PROVIDER"] = provider
    if base_url:
        env["LLM_BASE_URL"] = base_url
    return StdioServerParameters(command=sys.executable, args=["-m", "mcp_llm"], env=env)


def _print_result(result: types.CallToolResult) -> None:
    label = "FAILED" if result.isError else "OK"
    print(f"[{label}]")
    for block in result.content:
        if isinstance(block, types.TextContent):
            print(block.text)


async def main_async(args: argparse.Namespace) -> None:
    params = _server_params(args.model, args.provider, args.base_url)
    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            listed = await session.list_tools()
            print("Tools:", ", ".join(tool.name for tool in listed.tools))

            result = await session.call_tool(
                "ask_question",
                {"question": args.question, "context": args.context or ""},
            )
            _print_result(result)


def main() -> None:
    parser = argparse.ArgumentParser(description="Ask the mcp-llm server a question")
    parser.add_argument("question", nargs="?", default="What is a Python generator?")
    parser.add_argument("--context", default=None)
    parser.add_argument("--model", default=os.getenv("LLM_MODEL_NAME", "llama3.2"))
    parser.add_argument("--provider", default=os.getenv("LLM_MODEL_PROVIDER", "ollama"))
    parser.add_argument("--base-url", default=os.getenv("LLM_BASE_URL"))
    asyncio.run(main_async(parser.parse_args()))


if __name__ == "__main__":
    main()
