"""Exceptions raised across the server, the transports and the Argo CD client."""

from argocd_mcp.types.json_rpc import ErrorData


class McpError(Exception):
    """Exception carrying a JSON-RPC error to be returned to the MCP peer.

    Raised by request handlers when a request cannot be served for protocol
    reasons (for example an unknown tool). The protocol engine turns it into a
    JSON-RPC error response instead of a tool result.

    Attributes:
        error: The ErrorData sent back to the peer
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        super().__init__(error.message)
        self.error = error


class ArgoCDError(Exception):
    """A call against the Argo CD API failed (network, HTTP status or payload)."""


class AuthenticationError(ArgoCDError):
    """Exchanging the configured username and password for a token failed."""


class TransportError(Exception):
    """Base class for connection-local failures of the SSE transport."""


class TransportInitError(TransportError):
    """A session's outbound channel could not be established."""


class MissingSessionIdentity(TransportError):
    """An inbound message arrived without a session identity."""


class SessionNotFound(TransportError):
    """An inbound message names a session that is not open."""

    def __init__(self, session_id: str):
        super().__init__(f"No open session {session_id!r}")
        self.session_id = session_id


class SessionBusy(TransportError):
    """An inbound message arrived while its session's queue was full."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id!r} is not accepting more messages")
        self.session_id = session_id
