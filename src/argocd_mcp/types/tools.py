"""MCP Tools Types - Types for tool listing and invocation."""

from typing import Annotated, Any, Literal

from pydantic import Field

from argocd_mcp.types.base import MCPModel, Meta, RequestParams, Result
from argocd_mcp.types.content import ContentBlock


class JsonSchema(MCPModel):
    """A JSON Schema object."""

    type: Literal["object"] = "object"
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ToolAnnotations(MCPModel):
    """Additional properties describing a Tool to clients."""

    destructive_hint: Annotated[bool | None, Field(alias="destructiveHint")] = None
    idempotent_hint: Annotated[bool | None, Field(alias="idempotentHint")] = None
    open_world_hint: Annotated[bool | None, Field(alias="openWorldHint")] = None
    read_only_hint: Annotated[bool | None, Field(alias="readOnlyHint")] = None
    title: str | None = None


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    input_schema: Annotated[JsonSchema, Field(alias="inputSchema")]
    name: str

    annotations: ToolAnnotations | None = None
    description: str | None = None
    title: str | None = None


class ListToolsResult(Result[Meta]):
    """Server's response to a tools/list request."""

    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolRequestParams(RequestParams):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result[Meta]):
    """Server's response to a tools/call request."""

    content: list[ContentBlock]
    is_error: Annotated[bool, Field(alias="isError")] = False
