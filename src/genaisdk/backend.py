"""
HTTP transport for the Generative Language and Vertex AI REST APIs.

Features:
- Unary JSON requests with typed decoding
- Streaming responses with SSE
- Bounded retry with exponential backoff for transient failures
- Cooperative cancellation through an ``asyncio.Event``
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterator, Mapping
from typing import Any, TypeVar

import httpx
from typing_extensions import Self

from .classifier import classify
from .config import ClientOptions
from .exceptions import (
    CancellationError,
    ClientClosedError,
    ConnectionError,
    DeserializationError,
    TimeoutError,
)
from .retry import RetryPolicy, RetryState, is_retryable_status
from .serialization import to_wire
from .types import HTTP_INTERNAL_SERVER_ERROR, SSE_DATA_PREFIX, SSE_DONE_SENTINEL

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SKIP = object()


class GenAIBackend:
    """Transport shared by every service of a client.

    Owns one pooled ``httpx.AsyncClient`` (created on first use) unless one
    is injected, in which case the caller keeps ownership of it.

    Example:
        >>> async with GenAIBackend(ClientOptions(api_key="...")) as backend:
        ...     async for chunk in backend.stream(
        ...         "/v1/models/gemini-2.5-flash:streamGenerateContent",
        ...         body=request,
        ...         parse=lambda data: from_wire(GenerateContentResponse, data),
        ...     ):
        ...         print(chunk.text, end="", flush=True)
    """

    def __init__(
        self,
        options: ClientOptions,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            options: Validated client options.
            http_client: Optional pre-configured client, for connection
                pooling across SDK clients or for tests.
        """
        self._options = options
        self._policy = RetryPolicy.from_options(options)
        self._client = http_client
        self._owns_client = http_client is None
        self._closed = False

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._closed:
            raise ClientClosedError()
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._options.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
            self._owns_client = True
        return self._client

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._options.user_agent,
        }
        headers.update(self._options.auth_headers())
        return headers

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self._options.get_base_url()}/{endpoint.lstrip('/')}"

    # -------------------------------------------------------------------------
    # Unary requests
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        parse: Callable[[Any], T] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """Send a request and decode its JSON body.

        Args:
            method: HTTP method.
            endpoint: Path relative to the API host.
            body: Dataclass or JSON-ready value to send.
            params: Query parameters.
            parse: Converts the decoded JSON into a typed value.
            cancel_event: Set it to abandon the call.

        Returns:
            ``parse(data)`` when ``parse`` is given, otherwise the decoded
            JSON (``None`` for an empty body).

        Raises:
            GenAISDKError: One of the SDK error types.
        """
        json_body = to_wire(body) if body is not None else None
        if json_body is not None:
            logger.debug(f"Request payload for {endpoint}: {json.dumps(json_body)}")

        response = await self._send_with_retry(
            method, endpoint, json_body=json_body, params=params, cancel_event=cancel_event
        )
        try:
            raw = await self._read_body(response, endpoint, cancel_event)
        finally:
            await response.aclose()

        return self._decode_body(raw, parse, endpoint)

    async def get(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("POST", endpoint, **kwargs)

    async def patch(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)

    def _decode_body(
        self,
        raw: bytes,
        parse: Callable[[Any], T] | None,
        endpoint: str,
    ) -> Any:
        text = raw.decode("utf-8", errors="replace")
        logger.debug(f"Response body for {endpoint}: {text[:1000]}")

        if not text.strip():
            if parse is None:
                return None
            raise DeserializationError(f"Empty response body from {endpoint}")

        try:
            data = json.loads(text)
        except ValueError as e:
            logger.error(f"Failed to decode JSON response from {endpoint}: {e}")
            raise DeserializationError(
                f"Failed to decode JSON response: {e}", response_body=text
            ) from e

        if parse is None:
            return data
        try:
            return parse(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Unexpected response shape from {endpoint}: {e}")
            raise DeserializationError(
                f"Failed to deserialize response: {e}", response_body=text
            ) from e

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    async def stream(
        self,
        endpoint: str,
        *,
        body: Any,
        parse: Callable[[Any], T],
        params: Mapping[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[T]:
        """Send a streaming request and yield parsed chunks as they arrive.

        Retries apply to establishing the stream only. Malformed chunks are
        logged and skipped; an error payload inside the stream is raised.

        Yields:
            ``parse(chunk)`` for every decodable chunk.
        """
        json_body = to_wire(body) if body is not None else None
        if json_body is not None:
            logger.debug(f"Streaming payload for {endpoint}: {json.dumps(json_body)}")
        query = {**(params or {}), "alt": "sse"}

        response = await self._send_with_retry(
            "POST", endpoint, json_body=json_body, params=query, cancel_event=cancel_event
        )
        try:
            content_type = response.headers.get("content-type", "")
            if "text/event-stream" in content_type:
                lines = _iter_lines(response, endpoint, cancel_event)
                async for item in decode_event_stream(lines, parse, endpoint=endpoint):
                    yield item
            else:
                raw = await self._read_body(response, endpoint, cancel_event)
                for item in decode_json_body(raw, parse, endpoint=endpoint):
                    _check_cancelled(cancel_event)
                    yield item
        finally:
            await response.aclose()

    # -------------------------------------------------------------------------
    # Retry loop
    # -------------------------------------------------------------------------

    async def _send_with_retry(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> httpx.Response:
        """Send until a 2xx arrives, retrying transient failures.

        The returned response is open; the caller reads and closes it.
        """
        client = self._get_client()
        url = self._url(endpoint)
        state = self._policy.start()

        while True:
            _check_cancelled(cancel_event)
            request = client.build_request(
                method,
                url,
                json=json_body,
                params=params,
                headers=self._build_headers(),
                timeout=self._options.timeout,
            )
            logger.debug(f"{method} {url} (attempt {state.attempt + 1})")

            try:
                response = await _run_cancellable(client.send(request, stream=True), cancel_event)
            except httpx.TimeoutException as e:
                raise TimeoutError(
                    f"Request to {endpoint} timed out after {self._options.timeout}s",
                    timeout=self._options.timeout,
                ) from e
            except httpx.TransportError as e:
                if state.exhausted(self._policy):
                    raise ConnectionError(
                        f"Request failed after {state.attempt} retry attempts: {e}",
                        endpoint=endpoint,
                        attempts=state.attempt,
                    ) from e
                logger.warning(
                    f"Transport error on {endpoint}: {e}. "
                    f"Retrying in {state.delay}s "
                    f"(attempt {state.attempt + 1}/{self._policy.max_attempts})"
                )
                state = await self._wait_and_advance(state, cancel_event)
                continue

            if response.is_success:
                return response

            error_body = await _read_error_body(response)
            error = classify(response.status_code, error_body, response.headers, endpoint=endpoint)

            if not is_retryable_status(response.status_code):
                raise error
            if state.exhausted(self._policy):
                raise error.with_attempts(state.attempt)

            logger.warning(
                f"Request to {endpoint} failed with status {response.status_code}. "
                f"Retrying in {state.delay}s "
                f"(attempt {state.attempt + 1}/{self._policy.max_attempts})"
            )
            state = await self._wait_and_advance(state, cancel_event)

    async def _wait_and_advance(
        self, state: RetryState, cancel_event: asyncio.Event | None
    ) -> RetryState:
        await _backoff_sleep(state.delay, cancel_event)
        return state.advance(self._policy)

    async def _read_body(
        self,
        response: httpx.Response,
        endpoint: str,
        cancel_event: asyncio.Event | None,
    ) -> bytes:
        try:
            return await _run_cancellable(response.aread(), cancel_event)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"Reading the response from {endpoint} timed out",
                timeout=self._options.timeout,
            ) from e
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Connection lost while reading the response from {endpoint}: {e}",
                endpoint=endpoint,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client. Further requests raise ``ClientClosedError``."""
        self._closed = True
        if self._owns_client and self._client:
            await self._client.aclose()
        self._client = None


# =============================================================================
# Stream decoding
# =============================================================================


async def decode_event_stream(
    lines: AsyncIterable[str],
    parse: Callable[[Any], T],
    *,
    endpoint: str | None = None,
) -> AsyncIterator[T]:
    """Decode ``data:`` lines of a server-sent event stream.

    Stops at the ``[DONE]`` sentinel or when ``lines`` ends. Lines without
    the ``data:`` prefix are ignored.
    """
    async for line in lines:
        if not line.startswith(SSE_DATA_PREFIX):
            continue
        payload = line[len(SSE_DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]
        payload = payload.rstrip()

        if payload == SSE_DONE_SENTINEL:
            return
        if not payload:
            continue

        item = _decode_chunk(payload, parse, endpoint)
        if item is not _SKIP:
            yield item


def decode_json_body(
    raw: bytes | str,
    parse: Callable[[Any], T],
    *,
    endpoint: str | None = None,
) -> Iterator[T]:
    """Decode a non-SSE streaming body: a JSON array of chunks or one object."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text.strip():
        return
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.error(f"Failed to decode streaming response from {endpoint}: {e}")
        raise DeserializationError(
            f"Failed to decode streaming response: {e}", response_body=text
        ) from e

    for element in data if isinstance(data, list) else [data]:
        item = _parse_chunk(element, parse, endpoint)
        if item is not _SKIP:
            yield item


def _decode_chunk(payload: str, parse: Callable[[Any], T], endpoint: str | None) -> Any:
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning(f"Skipping malformed stream chunk: {payload[:200]}")
        return _SKIP
    return _parse_chunk(data, parse, endpoint)


def _parse_chunk(data: Any, parse: Callable[[Any], T], endpoint: str | None) -> Any:
    _raise_for_stream_error(data, endpoint)
    try:
        return parse(data)
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping stream chunk with unexpected shape: {e}")
        return _SKIP


def _raise_for_stream_error(data: Any, endpoint: str | None) -> None:
    """Raise the classified error when a chunk carries an ``error`` object."""
    if not isinstance(data, Mapping):
        return
    error = data.get("error")
    if not isinstance(error, Mapping):
        return
    code = error.get("code")
    status = code if isinstance(code, int) and code >= 400 else HTTP_INTERNAL_SERVER_ERROR
    raise classify(status, dict(data), endpoint=endpoint)


async def _iter_lines(
    response: httpx.Response,
    endpoint: str,
    cancel_event: asyncio.Event | None,
) -> AsyncIterator[str]:
    lines = response.aiter_lines()
    try:
        while True:
            _check_cancelled(cancel_event)
            try:
                line = await _run_cancellable(lines.__anext__(), cancel_event)
            except StopAsyncIteration:
                return
            yield line
    except httpx.TimeoutException as e:
        raise TimeoutError(f"Stream from {endpoint} timed out") from e
    except httpx.TransportError as e:
        raise ConnectionError(
            f"Connection lost while streaming from {endpoint}: {e}", endpoint=endpoint
        ) from e
    finally:
        await lines.aclose()


# =============================================================================
# Cancellation helpers
# =============================================================================


def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise CancellationError()


async def _run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event | None,
) -> T:
    """Await ``awaitable`` unless ``cancel_event`` is set first."""
    if cancel_event is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise
    waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    try:
        abandoned = await task
    except (asyncio.CancelledError, httpx.HTTPError):
        abandoned = None
    if isinstance(abandoned, httpx.Response):
        await abandoned.aclose()
    raise CancellationError()


async def _backoff_sleep(delay: float, cancel_event: asyncio.Event | None) -> None:
    """Wait ``delay`` seconds; raise ``CancellationError`` if cancelled meanwhile."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise CancellationError()


async def _read_error_body(response: httpx.Response) -> bytes | None:
    try:
        return await response.aread()
    except httpx.HTTPError:
        logger.debug("Failed to read error response body.")
        return None
    finally:
        await response.aclose()
