"""LowLevelServer - Pure handler registry and dispatch.

No I/O, no lifecycle, no transport knowledge. Just dispatch.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from argocd_mcp.context import RequestContext
from argocd_mcp.exceptions import McpError
from argocd_mcp.types.common import ServerCapabilities
from argocd_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    error_response,
)

logger = logging.getLogger(__name__)

RequestHandler = Callable[[RequestContext, JSONRPCRequest], Awaitable[Any]]
NotificationHandler = Callable[[RequestContext, JSONRPCNotification], Awaitable[None]]


async def _ping_handler(ctx: RequestContext, request: JSONRPCRequest) -> dict[str, Any]:
    return {}


class LowLevelServer:
    """Pure handler registry + dispatch. No run loop, no transport, no lifecycle.

    Usage:
        server = LowLevelServer(name="argocd-server", version="0.1.0")

        @server.request_handler("tools/list")
        async def list_tools(ctx: RequestContext, request: JSONRPCRequest):
            return ListToolsResult(tools=[...])
    """

    def __init__(self, *, name: str, version: str, instructions: str | None = None) -> None:
        self.name = name
        self.version = version
        self.instructions = instructions
        self._request_handlers: dict[str, RequestHandler] = {"ping": _ping_handler}
        self._notification_handlers: dict[str, NotificationHandler] = {}

    def request_handler(self, method: str) -> Callable[[RequestHandler], RequestHandler]:
        """Decorator to register a request handler for a given method."""

        def decorator(fn: RequestHandler) -> RequestHandler:
            self._request_handlers[method] = fn
            return fn

        return decorator

    def notification_handler(self, method: str) -> Callable[[NotificationHandler], NotificationHandler]:
        """Decorator to register a notification handler for a given method."""

        def decorator(fn: NotificationHandler) -> NotificationHandler:
            self._notification_handlers[method] = fn
            return fn

        return decorator

    async def dispatch_request(self, ctx: RequestContext, request: JSONRPCRequest) -> JSONRPCResponse:
        """Dispatch a request to the appropriate handler.

        Never raises for handler failures: McpError becomes its own error
        response, invalid params become INVALID_PARAMS and anything else
        becomes INTERNAL_ERROR.
        """
        handler = self._request_handlers.get(request.method)
        if not handler:
            return error_response(request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}")
        try:
            result = await handler(ctx, request)
        except McpError as err:
            return JSONRPCErrorResponse(id=request.id, error=err.error)
        except ValidationError as err:
            logger.info("Invalid params for %s: %s", request.method, err)
            return error_response(request.id, INVALID_PARAMS, f"Invalid params for {request.method}")
        except Exception:
            logger.exception("Handler error for %s", request.method)
            return error_response(request.id, INTERNAL_ERROR, "Internal error")

        # Handler can return a BaseModel (serialized) or a raw dict
        if isinstance(result, BaseModel):
            result_data = result.model_dump(by_alias=True, exclude_none=True)
        elif isinstance(result, dict):
            result_data = result
        else:
            result_data = {}
        return JSONRPCResultResponse(id=request.id, result=result_data)

    async def dispatch_notification(self, ctx: RequestContext, notification: JSONRPCNotification) -> None:
        """Dispatch a notification to the appropriate handler."""
        handler = self._notification_handlers.get(notification.method)
        if handler:
            try:
                await handler(ctx, notification)
            except Exception:
                logger.exception("Notification handler error for %s", notification.method)

    def get_capabilities(self) -> ServerCapabilities:
        """Derive capabilities from registered handlers."""
        caps = ServerCapabilities()
        if "tools/list" in self._request_handlers or "tools/call" in self._request_handlers:
            caps.tools = {}
        return caps
