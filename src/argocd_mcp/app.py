"""Wires the Argo CD tools into a LowLevelServer."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from argocd_mcp import __version__
from argocd_mcp.client import ArgoCDClient
from argocd_mcp.context import RequestContext
from argocd_mcp.runner import Lifespan
from argocd_mcp.server import LowLevelServer
from argocd_mcp.tools import ToolDispatcher
from argocd_mcp.types.json_rpc import JSONRPCRequest
from argocd_mcp.types.tools import CallToolRequestParams, CallToolResult, ListToolsResult

SERVER_NAME = "argocd-server"


def create_server(dispatcher: ToolDispatcher) -> LowLevelServer:
    """Build the protocol server exposing the dispatcher's tools.

    Usage:
        dispatcher = ToolDispatcher(client)
        app = create_sse_app(create_server(dispatcher), lifespan=client_lifespan(client))
    """
    server = LowLevelServer(name=SERVER_NAME, version=__version__)

    @server.request_handler("tools/list")
    async def list_tools(ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
        return ListToolsResult(tools=dispatcher.list_tools())

    @server.request_handler("tools/call")
    async def call_tool(ctx: RequestContext, request: JSONRPCRequest) -> CallToolResult:
        params = CallToolRequestParams.model_validate(request.params)
        return await dispatcher.dispatch(params.name, params.arguments)

    return server


def client_lifespan(client: ArgoCDClient | None) -> Lifespan:
    """Lifespan that closes the Argo CD client when the server stops."""

    @asynccontextmanager
    async def lifespan(server: LowLevelServer) -> AsyncIterator[dict[str, Any]]:
        if client is None:
            yield {}
            return
        async with client:
            yield {}

    return lifespan
