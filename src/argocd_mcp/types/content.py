"""MCP Content Types - Content blocks returned in tool results."""

from typing import Literal

from argocd_mcp.types.base import MCPModel


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str


ContentBlock = TextContent
