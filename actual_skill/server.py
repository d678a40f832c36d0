"""MCP server exposing the ledger tools over stdio or streamable HTTP."""

from __future__ import annotations

import contextlib
import logging
from typing import Any

import mcp.types as types
import uvicorn
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from actual_skill import __version__
from actual_skill.client import LedgerClient
from actual_skill.config import Settings
from actual_skill.tools import TOOL_DOCS, Ledger, run_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "actual-skill"


def tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(
            name=name,
            title=doc["title"],
            description=doc["desc"],
            inputSchema=doc["input"].model_json_schema(),
            outputSchema=doc["output"].model_json_schema(),
        )
        for name, doc in TOOL_DOCS.items()
    ]


def build_server(ledger: Ledger) -> Server:
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_definitions()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> tuple[list[types.TextContent], dict]:
        # Raised errors become isError results carrying the message.
        result = await run_tool(ledger, name, arguments)
        return [types.TextContent(type="text", text=result.text)], result.payload

    return server


# ---------------------------------------------------------------------------
# stdio
# ---------------------------------------------------------------------------

async def serve_stdio(settings: Settings) -> None:
    async with LedgerClient(settings) as ledger:
        server = build_server(ledger)
        logger.info("%s started (stdio transport)", SERVER_NAME)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def _rpc_error(status: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status,
    )


def _token_from(request: Request) -> str | None:
    token = request.query_params.get("token")
    if token:
        return token
    header = request.headers.get("authorization", "")
    return header.removeprefix("Bearer ").strip() or None


class McpEndpoint:
    """ASGI endpoint for ``/mcp``: token check, then the session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager, auth_token: str | None) -> None:
        self.session_manager = session_manager
        self.auth_token = auth_token

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        if self.auth_token and _token_from(request) != self.auth_token:
            response = _rpc_error(401, -32001, "Unauthorized: Invalid or missing token")
        elif request.method != "POST":
            response = _rpc_error(405, -32000, "Method not allowed. Use POST for MCP requests.")
        else:
            await self.session_manager.handle_request(scope, receive, send)
            return
        await response(scope, receive, send)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "server": SERVER_NAME})


def build_http_app(ledger: Ledger, auth_token: str | None = None) -> Starlette:
    session_manager = StreamableHTTPSessionManager(
        app=build_server(ledger),
        event_store=None,
        json_response=True,
        stateless=True,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        async with session_manager.run():
            yield

    return Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/mcp", McpEndpoint(session_manager, auth_token), methods=["GET", "POST", "DELETE"]),
        ],
        lifespan=lifespan,
    )


async def serve_http(settings: Settings) -> None:
    async with LedgerClient(settings) as ledger:
        app = build_http_app(ledger, settings.auth_token)
        auth = "enabled (token required)" if settings.auth_token else "disabled (open access)"
        logger.info(
            "%s listening on http://0.0.0.0:%d/mcp (auth %s), ledger %s",
            SERVER_NAME, settings.port, auth, settings.server_url,
        )
        config = uvicorn.Config(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())
        await uvicorn.Server(config).serve()


async def serve(settings: Settings) -> None:
    if settings.transport == "http":
        await serve_http(settings)
    else:
        await serve_stdio(settings)
