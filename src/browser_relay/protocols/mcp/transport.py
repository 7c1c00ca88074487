"""MCP transports — stdio and streamable-HTTP communication layers.

Each transport satisfies the :class:`MCPTransport` protocol, providing
``connect``, ``send``, ``receive``, ``request``, and ``close`` methods.
``request`` is the combined send-and-await-response used for every call
that expects an answer; the two transports implement it very differently.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from browser_relay.protocols.errors import (
    CorrelationTimeoutError,
    DecodeError,
    TransportError,
)
from browser_relay.protocols.mcp.models import JsonRpcMessage

logger = logging.getLogger(__name__)

DEFAULT_RECEIVE_TIMEOUT = 30.0
DEFAULT_MAX_ATTEMPTS = 50
# Page-content replies arrive as a single line.
DEFAULT_MAX_LINE_BYTES = 16 * 1024 * 1024
SESSION_HEADER = "mcp-session-id"
ACCEPT_HEADER = "application/json, text/event-stream"


@runtime_checkable
class MCPTransport(Protocol):
    """Abstract transport for MCP JSON-RPC communication."""

    async def connect(self) -> None: ...
    async def send(self, message: JsonRpcMessage) -> None: ...
    async def receive(self) -> JsonRpcMessage: ...
    async def request(self, message: JsonRpcMessage) -> JsonRpcMessage: ...
    async def close(self) -> None: ...


def encode_message(message: JsonRpcMessage) -> bytes:
    """Encode one message as a single compact JSON line."""
    return json.dumps(message.to_wire(), separators=(",", ":"), ensure_ascii=False).encode() + b"\n"


def decode_message(raw: bytes | str) -> JsonRpcMessage:
    """Parse one JSON document into an envelope."""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        msg = f"unparseable message: {exc}"
        raise DecodeError(msg) from exc
    return JsonRpcMessage.from_wire(data)


class StdioTransport:
    """Communicates with an MCP host via subprocess stdin/stdout.

    Sends and receives newline-delimited JSON. Exchanges are serialized on
    the single pipe pair; a response left behind by an abandoned request is
    skipped by the next exchange because its id does not match.
    """

    def __init__(
        self,
        command: str,
        args: list[str] | tuple[str, ...] = (),
        env: dict[str, str] | None = None,
        *,
        receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> None:
        self._command = command
        self._args = list(args)
        self._env = env
        self._receive_timeout = receive_timeout
        self._max_attempts = max_attempts
        self._max_line_bytes = max_line_bytes
        self._process: asyncio.subprocess.Process | None = None
        self._write_lock = asyncio.Lock()
        self._exchange_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._process is not None

    async def connect(self) -> None:
        """Launch the subprocess."""
        if self._process is not None:
            return
        try:
            self._process = await asyncio.create_subprocess_exec(
                self._command,
                *self._args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                env=self._env,
                limit=self._max_line_bytes,
            )
        except OSError as exc:
            msg = f"failed to start command {self._command!r}: {exc}"
            raise TransportError(msg) from exc
        logger.debug("Started MCP host %s (pid %s)", self._command, self._process.pid)

    async def send(self, message: JsonRpcMessage) -> None:
        """Write a JSON line to stdin."""
        if self._process is None or self._process.stdin is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        line = encode_message(message)
        async with self._write_lock:
            try:
                self._process.stdin.write(line)
                await self._process.stdin.drain()
            except (OSError, RuntimeError) as exc:
                msg = f"failed to write message: {exc}"
                raise TransportError(msg) from exc
        logger.debug("stdio -> %s id=%s", message.method, message.id)

    async def receive(self) -> JsonRpcMessage:
        """Read one JSON line from stdout, waiting at most ``receive_timeout``."""
        if self._process is None or self._process.stdout is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        try:
            line = await asyncio.wait_for(
                self._process.stdout.readline(), timeout=self._receive_timeout
            )
        except asyncio.TimeoutError as exc:
            msg = f"receive timeout after {self._receive_timeout}s"
            raise CorrelationTimeoutError(msg) from exc
        except (OSError, ValueError) as exc:
            msg = f"failed to receive message: {exc}"
            raise TransportError(msg) from exc
        if not line:
            msg = "Transport closed"
            raise TransportError(msg)
        return decode_message(line)

    async def request(self, message: JsonRpcMessage) -> JsonRpcMessage:
        """Send *message* and return the response carrying the same id.

        Notifications and responses for other ids are discarded. Gives up
        after ``max_attempts`` reads.
        """
        async with self._exchange_lock:
            await self.send(message)
            for _ in range(self._max_attempts):
                reply = await self.receive()
                if reply.id is None:
                    logger.debug("stdio: discarding notification %s", reply.method)
                    continue
                if reply.id == message.id:
                    return reply
                logger.warning(
                    "stdio: discarding response id=%s while awaiting id=%s", reply.id, message.id
                )
        msg = f"timeout waiting for response to id={message.id}"
        raise CorrelationTimeoutError(msg, request_id=message.id)

    async def close(self) -> None:
        """Close the pipes and kill the subprocess."""
        process = self._process
        if process is None:
            return
        self._process = None

        errors: list[str] = []
        if process.stdin is not None:
            try:
                process.stdin.close()
            except OSError as exc:
                errors.append(f"stdin: {exc}")
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            except OSError as exc:
                errors.append(f"kill: {exc}")
        try:
            await process.wait()
        except OSError as exc:
            errors.append(f"wait: {exc}")

        if errors:
            msg = "close errors: " + "; ".join(errors)
            raise TransportError(msg)
        logger.debug("Stopped MCP host %s", self._command)


class HTTPTransport:
    """Communicates with an MCP host over streamable HTTP.

    Every message is one POST. The reply is either a bare JSON document or
    an event stream whose ``data:`` lines carry JSON fragments. A session id
    handed out by the host is echoed back on every later request.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = DEFAULT_RECEIVE_TIMEOUT,
    ) -> None:
        if not url:
            msg = "server URL cannot be empty"
            raise ValueError(msg)
        self._url = url
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._session_id: str | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def connect(self) -> None:
        """Create the HTTP client if one was not injected."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True

    async def send(self, message: JsonRpcMessage) -> None:
        """POST *message* and check only the status (for notifications)."""
        await self._post(message)

    async def receive(self) -> JsonRpcMessage:
        msg = "HTTP transport delivers responses through request()"
        raise TransportError(msg)

    async def request(self, message: JsonRpcMessage) -> JsonRpcMessage:
        """POST *message* and decode the response from the body."""
        response = await self._post(message)
        reply = parse_response_body(response.text)
        self._capture_session(response)
        return reply

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        client = self._client
        self._client = None
        if client is not None and self._owns_client:
            await client.aclose()

    async def _post(self, message: JsonRpcMessage) -> httpx.Response:
        if self._client is None:
            msg = "Transport not connected"
            raise TransportError(msg)

        headers = {"Content-Type": "application/json", "Accept": ACCEPT_HEADER}
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id

        logger.debug("http -> %s id=%s (%s)", message.method, message.id, self._url)
        try:
            response = await self._client.post(
                self._url,
                content=json.dumps(message.to_wire()).encode(),
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            msg = f"request to {self._url} timed out after {self._timeout}s"
            raise CorrelationTimeoutError(msg, request_id=message.id) from exc
        except httpx.HTTPError as exc:
            msg = f"failed to send request: {exc}"
            raise TransportError(msg) from exc

        if not response.is_success:
            msg = f"server returned status {response.status_code}: {response.text[:200]}"
            raise TransportError(msg, status_code=response.status_code)
        return response

    def _capture_session(self, response: httpx.Response) -> None:
        session_id = response.headers.get(SESSION_HEADER)
        if session_id and session_id != self._session_id:
            logger.debug("http: captured session id %s", session_id)
            self._session_id = session_id


def parse_response_body(body: str) -> JsonRpcMessage:
    """Decode a reply body that is either plain JSON or an event stream.

    For event streams the first ``data:`` line carrying a response wins;
    malformed or partial lines are skipped. Server notifications or requests
    sent ahead of the response are only returned when nothing else parses.
    """
    stripped = body.strip()
    if stripped.startswith("{"):
        try:
            return JsonRpcMessage.from_wire(json.loads(stripped))
        except (ValueError, DecodeError):
            pass

    fallback: JsonRpcMessage | None = None
    for line in body.splitlines():
        if not line.startswith("data:"):
            continue
        fragment = line[len("data:"):].strip()
        try:
            message = JsonRpcMessage.from_wire(json.loads(fragment))
        except (ValueError, DecodeError):
            logger.debug("http: skipping unparseable data line %r", fragment[:80])
            continue
        if message.is_response:
            return message
        logger.debug("http: skipping non-response data line %s", message.method)
        if fallback is None:
            fallback = message

    if fallback is not None:
        return fallback
    msg = f"response body is neither JSON nor an event stream: {stripped[:80]!r}"
    raise DecodeError(msg)
