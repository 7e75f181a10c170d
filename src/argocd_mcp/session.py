"""Protocol-level session state negotiated by the initialize handshake."""

from __future__ import annotations

from dataclasses import dataclass

from argocd_mcp.types.common import ClientCapabilities, Implementation


@dataclass(frozen=True)
class SessionInfo:
    """Immutable protocol-level session state, created during the init handshake.

    Transport-level state (streams, lifecycle) lives with the transport that owns
    the connection, not here.
    """

    client_info: Implementation
    client_capabilities: ClientCapabilities
    protocol_version: str
