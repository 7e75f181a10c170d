"""RequestContext and the ResponseSink protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from argocd_mcp.session import SessionInfo
from argocd_mcp.types.json_rpc import JSONRPCResponse, RequestId


@runtime_checkable
class ResponseSink(Protocol):
    """Transport-specific sink for the response to one request.

    StreamSink (used by both the SSE and stdio transports) writes onto the
    connection's outbound stream.
    """

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Send the final result. After this, the sink is done."""
        ...

    async def close(self) -> None:
        """Ensure the sink is closed (e.g., on handler error)."""
        ...


@dataclass
class RequestContext:
    """What handlers receive: lifespan state, the session and the request id."""

    server_state: Any
    session: SessionInfo | None
    request_id: RequestId
    _sink: ResponseSink
