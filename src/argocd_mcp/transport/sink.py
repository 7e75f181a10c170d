"""Transport Sinks - ResponseSink implementations."""

from __future__ import annotations

import json
from dataclasses import dataclass

import anyio.lowlevel
from anyio.streams.memory import MemoryObjectSendStream

from argocd_mcp.types.json_rpc import JSONRPCErrorResponse, JSONRPCMessage, JSONRPCResponse


@dataclass
class SinkEvent:
    """A message produced by a ResponseSink for the transport layer to write out."""

    message: JSONRPCMessage


def serialize_message(message: JSONRPCMessage) -> str:
    """Render a JSON-RPC message as a single line of JSON."""
    if isinstance(message, JSONRPCErrorResponse) and message.id is None:
        # JSON-RPC wants an explicit null id when the request id is unknown.
        data = message.model_dump(mode="json", by_alias=True, exclude_none=True)
        data["id"] = None
        return json.dumps(data, separators=(",", ":"))
    return message.model_dump_json(by_alias=True, exclude_none=True)


class StreamSink:
    """ResponseSink that writes onto a connection's shared outbound stream.

    One sink is created per inbound request. Finishing the request marks the
    sink done but leaves the stream open, since the stream belongs to the
    connection and carries every later response too.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[SinkEvent]) -> None:
        self._send = send_stream
        self._closed = False

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Send the final result; later sends through this sink are dropped."""
        if self._closed:
            return
        self._closed = True
        await self._send.send(SinkEvent(message=response))

    async def close(self) -> None:
        """Mark the sink done without sending a result (e.g., on handler error)."""
        self._closed = True
        await anyio.lowlevel.checkpoint()
