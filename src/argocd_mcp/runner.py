"""ServerRunner and RunningServer.

The runner bridges the LowLevelServer (pure dispatch) with transports.
It manages lifecycle (lifespan), handles the init handshake, and dispatches
messages to the server.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import anyio
from pydantic import ValidationError

from argocd_mcp.context import RequestContext, ResponseSink
from argocd_mcp.server import LowLevelServer
from argocd_mcp.session import SessionInfo
from argocd_mcp.types.base import LATEST_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS
from argocd_mcp.types.initialize import InitializeRequestParams, InitializeResult
from argocd_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    PARSE_ERROR,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResultResponse,
    error_response,
)

logger = logging.getLogger(__name__)

Lifespan = Callable[[LowLevelServer], AbstractAsyncContextManager[Any]]


@asynccontextmanager
async def _default_lifespan(server: LowLevelServer) -> AsyncIterator[dict[str, Any]]:
    yield {}


class ServerRunner:
    """Manages lifecycle and produces a RunningServer.

    Usage:
        runner = ServerRunner(server, lifespan=my_lifespan)
        async with runner.run() as running:
            # Use running.handle_message() with your transport
            ...
    """

    def __init__(self, server: LowLevelServer, *, lifespan: Lifespan | None = None) -> None:
        self.server = server
        self._lifespan = lifespan or _default_lifespan

    @asynccontextmanager
    async def run(self) -> AsyncIterator[RunningServer]:
        """Enter server lifespan once, yield a running server."""
        async with self._lifespan(self.server) as server_state:
            yield RunningServer(self.server, server_state)


class RunningServer:
    """A server with active lifespan, ready to handle requests.

    Handles the init handshake internally; the LowLevelServer never sees
    'initialize' as a request.
    """

    def __init__(self, server: LowLevelServer, server_state: Any) -> None:
        self._server = server
        self._server_state = server_state

    async def handle_message(
        self,
        sink: ResponseSink,
        message: JSONRPCMessage,
        *,
        session: SessionInfo | None = None,
    ) -> SessionInfo | None:
        """Dispatch a single message. Returns SessionInfo if this was an init handshake.

        For init requests: handles the handshake, responds via sink, returns new SessionInfo.
        For regular requests: dispatches to server, responds via sink, returns None.
        For notifications: dispatches to server, returns None.
        """
        if isinstance(message, JSONRPCRequest):
            if message.method == "initialize":
                return await self._handle_initialize(sink, message)

            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id=message.id,
                _sink=sink,
            )
            response = await self._server.dispatch_request(ctx, message)
            await sink.send_result(response)
            return None

        if isinstance(message, JSONRPCNotification):
            if message.method == "notifications/initialized":
                return None
            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id="notification",
                _sink=sink,
            )
            await self._server.dispatch_notification(ctx, message)
            return None

        # This server never issues server→client requests, so responses are dropped.
        logger.debug("Ignoring unsolicited response from client: %s", message)
        return None

    async def handle_payload(
        self,
        sink: ResponseSink,
        payload: str | bytes,
        *,
        session: SessionInfo | None = None,
    ) -> SessionInfo | None:
        """Decode one raw JSON-RPC payload and dispatch it.

        Undecodable payloads are answered through the sink with a PARSE_ERROR
        (not JSON) or INVALID_REQUEST (JSON, but not a JSON-RPC message) and a
        null id. Failures never escape to the transport: anything unexpected is
        answered with INTERNAL_ERROR for the request that caused it.
        """
        try:
            message = JSONRPCMessageAdapter.validate_json(payload)
        except ValidationError as err:
            code = PARSE_ERROR if any(e["type"] == "json_invalid" for e in err.errors()) else INVALID_REQUEST
            logger.info("Rejected undecodable message (code %d)", code)
            message_text = "Parse error" if code == PARSE_ERROR else "Invalid Request"
            await sink.send_result(error_response(None, code, message_text))
            return None

        try:
            return await self.handle_message(sink, message, session=session)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            # The connection is gone; the transport owning it tears it down.
            raise
        except Exception:
            logger.exception("Unhandled error while processing %s", type(message).__name__)
            if isinstance(message, JSONRPCRequest):
                await sink.send_result(error_response(message.id, INTERNAL_ERROR, "Internal error"))
            else:
                await sink.close()
            return None

    async def _handle_initialize(self, sink: ResponseSink, request: JSONRPCRequest) -> SessionInfo | None:
        """Handle the initialize handshake. Returns the new SessionInfo."""
        try:
            params = InitializeRequestParams.model_validate(request.params)
        except ValidationError:
            logger.info("Rejected malformed initialize request %s", request.id)
            await sink.send_result(error_response(request.id, INVALID_PARAMS, "Invalid initialize params"))
            return None

        if params.protocol_version in SUPPORTED_PROTOCOL_VERSIONS:
            protocol_version = params.protocol_version
        else:
            protocol_version = LATEST_PROTOCOL_VERSION

        capabilities = self._server.get_capabilities()

        result = InitializeResult.model_validate(
            {
                "protocolVersion": protocol_version,
                "capabilities": capabilities.model_dump(by_alias=True, exclude_none=True),
                "serverInfo": {"name": self._server.name, "version": self._server.version},
                "instructions": self._server.instructions,
            }
        )

        response = JSONRPCResultResponse(
            id=request.id,
            result=result.model_dump(by_alias=True, exclude_none=True),
        )
        await sink.send_result(response)
        logger.info(
            "Initialized session for %s %s (protocol %s)",
            params.client_info.name,
            params.client_info.version,
            protocol_version,
        )

        return SessionInfo(
            client_info=params.client_info,
            client_capabilities=params.capabilities,
            protocol_version=protocol_version,
        )
