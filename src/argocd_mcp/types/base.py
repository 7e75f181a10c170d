"""MCP Base Types - Core type definitions for MCP protocol."""

from typing import Annotated, Any, Final, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

LATEST_PROTOCOL_VERSION: Final[str] = "2025-11-25"

# Versions we can answer an initialize request with, newest first.
SUPPORTED_PROTOCOL_VERSIONS: Final[tuple[str, ...]] = (
    LATEST_PROTOCOL_VERSION,
    "2025-06-18",
    "2025-03-26",
    "2024-11-05",
)

ProgressToken = str | int


class MCPModel(BaseModel):
    """Base class for all MCP domain types. Allows extra fields for forward compatibility."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class RequestMeta(MCPModel):
    """Metadata for MCP requests."""

    progress_token: Annotated[ProgressToken | None, Field(alias="progressToken")] = None


class RequestParams(MCPModel):
    """Base class for MCP request parameters with _meta support."""

    meta: Annotated[RequestMeta | None, Field(alias="_meta")] = None


class Meta(MCPModel):
    """Base class for MCP meta information models."""


MetaT = TypeVar("MetaT", bound=Meta | dict[str, Any] | None)


class Result(MCPModel, Generic[MetaT]):
    """Base class for MCP results with _meta support."""

    meta: Annotated[MetaT | None, Field(alias="_meta")] = None
