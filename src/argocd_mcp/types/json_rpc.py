"""JSON-RPC 2.0 envelopes exchanged with MCP clients.

Messages are told apart by the fields they carry, not by a tag:

- a request has ``id`` and ``method``
- a notification has ``method`` and no ``id``
- a result response has ``id`` and ``result``
- an error response has ``error``; its ``id`` is null when the request that
  caused it could not be read
"""

from typing import Annotated, Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

JSONRPC_VERSION: Final[str] = "2.0"

PARSE_ERROR: Final[int] = -32700
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603

# Booleans are not ids, so integers are matched strictly.
RequestId = Annotated[int, Field(strict=True)] | str


class JSONRPCBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION


class JSONRPCRequest(JSONRPCBase):
    """A call the server answers with exactly one response."""

    id: RequestId
    method: str
    params: dict[str, Any] | None = None


class JSONRPCNotification(JSONRPCBase):
    """A one-way message. Nothing is sent back."""

    method: str
    params: dict[str, Any] | None = None


class ErrorData(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class JSONRPCResultResponse(JSONRPCBase):
    id: RequestId
    result: dict[str, Any]


class JSONRPCErrorResponse(JSONRPCBase):
    id: RequestId | None = None
    error: ErrorData


def error_response(request_id: RequestId | None, code: int, message: str) -> JSONRPCErrorResponse:
    """Build the error envelope answering ``request_id``."""
    return JSONRPCErrorResponse(id=request_id, error=ErrorData(code=code, message=message))


JSONRPCResponse = JSONRPCResultResponse | JSONRPCErrorResponse
JSONRPCMessage = JSONRPCRequest | JSONRPCNotification | JSONRPCResponse

JSONRPCMessageAdapter: TypeAdapter[JSONRPCMessage] = TypeAdapter(JSONRPCMessage)
