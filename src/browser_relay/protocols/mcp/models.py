"""MCP models — JSON-RPC 2.0 messages and tool payload shapes.

The envelope keeps ``params`` and ``result`` opaque; callers decode them
lazily with :meth:`JsonRpcMessage.decode_result` into one of the typed
payloads below. Absent optional fields are omitted on the wire, never sent
as ``null``, because the host uses presence of ``id`` to tell requests from
notifications.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from browser_relay.protocols.errors import DecodeError

JSONRPC_VERSION = "2.0"

_PayloadT = TypeVar("_PayloadT", bound=BaseModel)

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcMessage(BaseModel):
    """A JSON-RPC 2.0 request, notification, or response."""

    model_config = {"extra": "ignore"}

    jsonrpc: str = JSONRPC_VERSION
    id: int | str | None = None
    method: str | None = None
    params: Any = None
    result: Any = None
    error: JsonRpcError | None = None

    @classmethod
    def request(cls, request_id: int | str, method: str, params: Any = None) -> JsonRpcMessage:
        return cls(id=request_id, method=method, params=params)

    @classmethod
    def notification(cls, method: str, params: Any = None) -> JsonRpcMessage:
        return cls(method=method, params=params)

    @property
    def is_request(self) -> bool:
        return self.method is not None and self.id is not None

    @property
    def is_notification(self) -> bool:
        return self.method is not None and self.id is None

    @property
    def is_response(self) -> bool:
        return self.method is None and self.id is not None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a plain dict, dropping absent optional fields."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            data["id"] = self.id
        if self.method is not None:
            data["method"] = self.method
        if self.params is not None:
            data["params"] = self.params
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            error: dict[str, Any] = {"code": self.error.code, "message": self.error.message}
            if self.error.data is not None:
                error["data"] = self.error.data
            data["error"] = error
        return data

    @classmethod
    def from_wire(cls, data: Any) -> JsonRpcMessage:
        """Validate a decoded JSON document as an envelope."""
        if not isinstance(data, dict):
            msg = f"expected a JSON-RPC object, got {type(data).__name__}"
            raise DecodeError(msg)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            msg = f"malformed JSON-RPC message: {exc.error_count()} validation error(s)"
            raise DecodeError(msg) from exc

    def decode_result(self, model: type[_PayloadT]) -> _PayloadT:
        """Decode ``result`` into *model*."""
        try:
            return model.model_validate(self.result if self.result is not None else {})
        except ValidationError as exc:
            msg = f"result does not match {model.__name__}: {exc.errors()[0]['msg']}"
            raise DecodeError(msg) from exc


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class InitializeParams(BaseModel):
    """Parameters of the ``initialize`` handshake."""

    model_config = {"populate_by_name": True}

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    client_info: dict[str, str] = Field(default_factory=dict, alias="clientInfo")


class InitializeResult(BaseModel):
    """What the host reports back from ``initialize``."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    protocol_version: str = Field(default="", alias="protocolVersion")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    server_info: dict[str, Any] = Field(default_factory=dict, alias="serverInfo")


class CallToolParams(BaseModel):
    """Parameters of a ``tools/call`` request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Tool(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")


class ListToolsResult(BaseModel):
    """The ``tools/list`` result."""

    model_config = {"extra": "ignore"}

    tools: list[Tool] = Field(default_factory=list)


class ToolMeta(BaseModel):
    """Host metadata attached to a tool result."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    request_id: str | None = Field(default=None, alias="requestId")
    timestamp: int | None = None


class ToolResult(BaseModel):
    """The ``tools/call`` result.

    ``content`` items stay untyped: the host sends plain strings or mappings
    whose keys (``text``, ``data``, ``html``, ``htmlContent``) vary between
    versions, so decoding them is left to the tool layer.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}

    content: list[Any] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")
    meta: ToolMeta | None = None

    def first_item(self) -> Any:
        return self.content[0] if self.content else None

    def error_message(self) -> str:
        """Best-effort human-readable message from the first content item."""
        item = self.first_item()
        if isinstance(item, str):
            return item
        if isinstance(item, dict):
            for key in ("text", "data", "message"):
                value = item.get(key)
                if isinstance(value, str):
                    return value
        return ""
