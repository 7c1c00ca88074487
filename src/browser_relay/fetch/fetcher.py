"""Fetchers — one ``get`` / ``get_json`` / ``post`` contract, two transports.

:class:`HTTPFetcher` talks to the origin directly. :class:`BrowserFetcher`
relays every request through the automation host so it carries the
browser's cookies and session. Which one a caller gets is decided once, at
construction time (see :func:`browser_relay.config.create_fetcher`).
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx

from browser_relay.protocols.errors import DecodeError, FetchError, ProtocolError
from browser_relay.protocols.mcp.tools import (
    BrowserTools,
    NetworkRequestOptions,
    extract_response_body,
)
from browser_relay.utils.telemetry import ATTR_FETCH_MODE, ATTR_FETCH_URL, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_TIMEOUT = 30.0
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# Repeated keys are sent once per value.
FormData = Mapping[str, str | Sequence[str]]


@runtime_checkable
class Fetcher(Protocol):
    """Fetches URL bodies regardless of how they travel."""

    async def get(self, url: str) -> bytes: ...
    async def get_json(self, url: str) -> dict[str, Any]: ...
    async def post(self, url: str, form: FormData) -> bytes: ...
    async def post_json(self, url: str, payload: Any) -> bytes: ...
    async def close(self) -> None: ...


def _form_fields(form: FormData) -> dict[str, str | list[str]]:
    return {key: value if isinstance(value, str) else list(value) for key, value in form.items()}


def _parse_json(method: str, url: str, body: bytes | str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise FetchError(method, url, f"failed to parse JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FetchError(method, url, f"expected a JSON object, got {type(data).__name__}")
    return data


class HTTPFetcher:
    """Fetches directly with an :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        logger.info("Initialized HTTPFetcher")

    async def get(self, url: str) -> bytes:
        return await self._send("GET", url)

    async def get_json(self, url: str) -> dict[str, Any]:
        body = await self._send("GET", url)
        return _parse_json("GET", url, body)

    async def post(self, url: str, form: FormData) -> bytes:
        return await self._send("POST", url, data=_form_fields(form))

    async def post_json(self, url: str, payload: Any) -> bytes:
        return await self._send("POST", url, json=payload)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> bytes:
        logger.debug("HTTPFetcher %s: %s", method, url)
        with _tracer.start_as_current_span("fetch.http") as span:
            span.set_attribute(ATTR_FETCH_URL, url)
            span.set_attribute(ATTR_FETCH_MODE, "http")
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                logger.error("HTTPFetcher %s failed: %s - %s", method, url, exc)
                raise FetchError(method, url, str(exc)) from exc

            if not response.is_success:
                logger.error("HTTPFetcher %s failed: %s - status %s", method, url, response.status_code)
                raise FetchError(
                    method, url, f"status {response.status_code}", status_code=response.status_code
                )
        logger.debug("HTTPFetcher %s success: %s (%d bytes)", method, url, len(response.content))
        return response.content


class BrowserFetcher:
    """Fetches through the browser via :class:`BrowserTools`."""

    def __init__(self, tools: BrowserTools, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._tools = tools
        self._timeout = timeout
        logger.info("Initialized BrowserFetcher")

    async def get(self, url: str) -> bytes:
        html = await self._run("GET", url, self._tools.get_web_content_html(url))
        return html.encode()

    async def get_json(self, url: str) -> dict[str, Any]:
        text = await self._run("GET", url, self._tools.get_web_content(url))
        return _parse_json("GET", url, text)

    async def post(self, url: str, form: FormData) -> bytes:
        options = NetworkRequestOptions(
            url=url,
            method="POST",
            headers={"Content-Type": FORM_CONTENT_TYPE},
            body=urlencode(_form_fields(form), doseq=True),
        )
        return await self._relay("POST", options)

    async def post_json(self, url: str, payload: Any) -> bytes:
        options = NetworkRequestOptions(
            url=url,
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
            body=json.dumps(payload),
        )
        return await self._relay("POST", options)

    async def close(self) -> None:
        """The MCP client belongs to the caller; nothing to release here."""

    async def _relay(self, method: str, options: NetworkRequestOptions) -> bytes:
        result = await self._run(method, options.url, self._tools.network_request(options))
        try:
            body = extract_response_body(result)
        except DecodeError as exc:
            logger.error("BrowserFetcher %s failed: %s - %s", method, options.url, exc)
            raise FetchError(method, options.url, str(exc)) from exc
        return body.encode()

    async def _run(self, method: str, url: str, operation: Any) -> Any:
        logger.debug("BrowserFetcher %s: %s", method, url)
        with _tracer.start_as_current_span("fetch.browser") as span:
            span.set_attribute(ATTR_FETCH_URL, url)
            span.set_attribute(ATTR_FETCH_MODE, "browser")
            try:
                result = await asyncio.wait_for(operation, self._timeout)
            except asyncio.TimeoutError as exc:
                logger.error("BrowserFetcher %s timed out: %s", method, url)
                raise FetchError(method, url, f"timed out after {self._timeout}s") from exc
            except ProtocolError as exc:
                logger.error("BrowserFetcher %s failed: %s - %s", method, url, exc)
                raise FetchError(method, url, f"browser request failed: {exc}") from exc
        return result
