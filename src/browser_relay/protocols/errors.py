"""Shared error types for the protocol layer."""

from __future__ import annotations

from typing import Any


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class TransportError(ProtocolError):
    """Moving a message to or from the automation host failed."""

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class DecodeError(ProtocolError):
    """A wire message or result payload did not match any recognized shape."""


class RPCError(ProtocolError):
    """The host answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: int, message: str, data: Any = None) -> None:
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{method} error {code}: {message}")


class CorrelationTimeoutError(ProtocolError):
    """No response with the awaited id arrived before the deadline."""

    def __init__(self, detail: str, *, request_id: int | str | None = None) -> None:
        self.detail = detail
        self.request_id = request_id
        super().__init__(detail)


class ClientStateError(ProtocolError):
    """The client is not in a state that allows the requested call."""


class NotInitializedError(ClientStateError):
    """A call was made before the initialize handshake completed."""

    def __init__(self) -> None:
        super().__init__("client not initialized")


class ClientClosedError(ClientStateError):
    """A call was made after the client was closed."""

    def __init__(self) -> None:
        super().__init__("client is closed")


class ToolExecutionError(ProtocolError):
    """A tool invocation failed at the host side (``isError`` result)."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f": {detail}" if detail else ""))


class BrowserToolError(ProtocolError):
    """A browser operation failed; names the operation and its target."""

    def __init__(self, operation: str, target: str, cause: BaseException) -> None:
        self.operation = operation
        self.target = target
        self.cause = cause
        where = f" {target}" if target else ""
        super().__init__(f"{operation}{where} failed: {cause}")

    @property
    def timed_out(self) -> bool:
        """True when the underlying cause was a correlation timeout."""
        return isinstance(self.cause, CorrelationTimeoutError)


class FetchError(ProtocolError):
    """Fetching a URL body failed."""

    def __init__(self, method: str, url: str, detail: str, *, status_code: int | None = None) -> None:
        self.method = method
        self.url = url
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{method} {url} failed: {detail}")


class ServerNotFoundError(ProtocolError):
    """No reachable automation host could be located."""
