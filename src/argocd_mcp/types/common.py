"""MCP Common Types - Shared types used across the protocol."""

from typing import Annotated, Any

from pydantic import Field

from argocd_mcp.types.base import MCPModel


class Implementation(MCPModel):
    """Describes the name and version of an MCP implementation."""

    name: str
    version: str
    title: str | None = None
    website_url: Annotated[str | None, Field(alias="websiteUrl")] = None


class ClientCapabilities(MCPModel):
    """Capabilities that a client may support."""

    experimental: dict[str, Any] | None = None
    roots: dict[str, Any] | None = None
    sampling: dict[str, Any] | None = None
    elicitation: dict[str, Any] | None = None


class ServerCapabilities(MCPModel):
    """Capabilities that a server may support."""

    experimental: dict[str, Any] | None = None
    tools: dict[str, Any] | None = None
