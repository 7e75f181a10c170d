"""Starlette application serving the SSE transport.

Routes:
    GET  /sse      open a session and stream its events
    POST /message  deliver one JSON-RPC message to a session
    GET  /health   liveness probe
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from argocd_mcp.runner import Lifespan, ServerRunner
from argocd_mcp.server import LowLevelServer
from argocd_mcp.transport.sse import SseSessionManager


class _SessionEndpoint:
    """ASGI endpoint forwarding to the app's session manager.

    Starlette treats a class instance as a raw ASGI app, so the manager writes
    the response itself (required for the long-lived SSE stream).
    """

    def __init__(self, method_name: str) -> None:
        self._method_name = method_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        manager: SseSessionManager = scope["app"].state.sse_manager
        await getattr(manager, self._method_name)(scope, receive, send)


async def _health(request: Request) -> PlainTextResponse:
    return PlainTextResponse("OK")


def create_sse_app(
    server: LowLevelServer,
    *,
    lifespan: Lifespan | None = None,
    sse_path: str = "/sse",
    message_path: str = "/message",
) -> Starlette:
    """Create a Starlette ASGI app serving a LowLevelServer over SSE.

    Usage:
        app = create_sse_app(create_server(dispatcher))
        uvicorn.run(app, host="0.0.0.0", port=58082)

    Every open session is closed when the app's lifespan ends.
    """

    @asynccontextmanager
    async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
        runner = ServerRunner(server, lifespan=lifespan)
        async with runner.run() as running:
            manager = SseSessionManager(running, message_path=message_path)
            async with manager.run():
                app.state.sse_manager = manager
                yield

    return Starlette(
        lifespan=app_lifespan,
        routes=[
            Route(sse_path, endpoint=_SessionEndpoint("handle_sse"), methods=["GET"]),
            Route(message_path, endpoint=_SessionEndpoint("handle_post_message"), methods=["POST"]),
            Route("/health", endpoint=_health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            )
        ],
    )
