"""Actual Budget skill executor.

Usage:
  actual-skill --list
  actual-skill --describe get_accounts
  actual-skill --call '{"tool":"get_accounts","arguments":{}}'
  actual-skill --serve --transport http --port 3000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from actual_skill.client import LedgerClient
from actual_skill.config import Settings, load_settings
from actual_skill.errors import SkillError
from actual_skill.server import serve
from actual_skill.tools import TOOL_DOCS, run_tool

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str) -> None:
    # stdout carries tool output and the stdio transport
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


def _fail(message: str) -> None:
    print(json.dumps({"error": message}, ensure_ascii=False), file=sys.stderr)
    sys.exit(1)


async def _call(settings: Settings, tool: str, arguments: dict) -> str:
    async with LedgerClient(settings) as ledger:
        result = await run_tool(ledger, tool, arguments)
    return result.text


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Actual Budget skill executor")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--list", action="store_true", help="List all tools")
    group.add_argument("--describe", type=str, metavar="TOOL", help="Describe a tool")
    group.add_argument("--call", type=str, metavar="JSON", help='Call: {"tool":"name","arguments":{...}}')
    group.add_argument("--serve", action="store_true", help="Run the MCP server")
    parser.add_argument("--transport", choices=["stdio", "http"], help="Server transport (overrides MCP_TRANSPORT)")
    parser.add_argument("--port", type=int, help="HTTP port (overrides PORT)")
    parsed = parser.parse_args(argv)

    if parsed.list:
        tools = [{"name": n, "description": d["desc"]} for n, d in TOOL_DOCS.items()]
        print(json.dumps(tools, ensure_ascii=False, indent=2))
        return

    if parsed.describe:
        doc = TOOL_DOCS.get(parsed.describe)
        if not doc:
            _fail(f"Unknown tool: {parsed.describe}")
        print(json.dumps(
            {
                "name": parsed.describe,
                "title": doc["title"],
                "description": doc["desc"],
                "parameters": doc["input"].model_json_schema(),
            },
            ensure_ascii=False, indent=2,
        ))
        return

    try:
        settings = load_settings()
        if parsed.transport:
            settings.transport = parsed.transport
        if parsed.port:
            settings.port = parsed.port
        setup_logging(settings.log_level)
        settings.require()
    except SkillError as e:
        _fail(str(e))

    if parsed.serve:
        asyncio.run(serve(settings))
        return

    try:
        payload = json.loads(parsed.call)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")

    tool_name = payload.get("tool", "") if isinstance(payload, dict) else ""
    arguments = payload.get("arguments", {}) if isinstance(payload, dict) else {}
    if tool_name not in TOOL_DOCS:
        _fail(f"Unknown tool: {tool_name}. Use --list to see available tools.")

    try:
        print(asyncio.run(_call(settings, tool_name, arguments)))
    except SkillError as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
