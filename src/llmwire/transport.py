"""HTTP transport on top of httpx.

Translates httpx failures into library errors at a single seam:

- ``httpx.TransportError`` / ``OSError`` -> ``TransportError``
- status >= 400 -> ``APIStatusError`` (error body read up to ``max_error_body``)
- JSON body with a non-empty ``error.message`` -> ``APIError``
"""

import asyncio
import json
import logging
import threading
from typing import Any

import httpx

from .abort import AbortError, AbortSignal
from .config import ClientConfig
from .errors import APIError, APIStatusError, RequestError, TransportError, message_from_body

logger = logging.getLogger(__name__)

SEND_ERRORS = (httpx.TransportError, OSError)


def raise_for_error_object(data: Any) -> None:
    """Raise APIError if a decoded body carries a non-empty ``error.message``."""
    if not isinstance(data, dict):
        return
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        code = error.get("code")
        raise APIError(
            str(error["message"]),
            type=error.get("type"),
            param=error.get("param"),
            code=str(code) if code is not None else None,
        )


def _redacted(headers: httpx.Headers) -> dict[str, str]:
    return {k: ("<redacted>" if k.lower() == "authorization" else v) for k, v in headers.items()}


def _log_request(request: httpx.Request) -> None:
    logger.debug(f"--> {request.method} {request.url} headers={_redacted(request.headers)}")
    if not request.headers.get("accept", "").startswith("text/event-stream"):
        logger.debug(f"--> body: {request.content.decode('utf-8', errors='replace')}")


def _log_response(response: httpx.Response) -> None:
    logger.debug(
        f"<-- {response.status_code} {response.request.method} {response.request.url} "
        f"content-type={response.headers.get('content-type', '')}"
    )


async def _alog_request(request: httpx.Request) -> None:
    _log_request(request)


async def _alog_response(response: httpx.Response) -> None:
    _log_response(response)


class Transport:
    """JSON and event-stream requests against the configured base URL.

    Args:
        config: Connection settings. Raises RequestError if no API key is set.
        http_client: Injected sync client (e.g. with ``httpx.MockTransport``).
        async_http_client: Injected async client; created lazily otherwise.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client | None = None,
        async_http_client: httpx.AsyncClient | None = None,
    ):
        config.validate_credentials()
        self.config = config
        self._owns_client = http_client is None
        self._owns_async_client = async_http_client is None
        self._client = http_client
        self._async_client = async_http_client

    # === Clients ===

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            hooks = (
                {"request": [_log_request], "response": [_log_response]}
                if self.config.log_http
                else {}
            )
            self._client = httpx.Client(timeout=self.config.timeout, event_hooks=hooks)
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        if self._async_client is None:
            hooks = (
                {"request": [_alog_request], "response": [_alog_response]}
                if self.config.log_http
                else {}
            )
            self._async_client = httpx.AsyncClient(timeout=self.config.timeout, event_hooks=hooks)
        return self._async_client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    async def aclose(self) -> None:
        if self._owns_async_client and self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    # === Request building ===

    def url(self, path: str) -> str:
        return self.config.normalized_base_url + path.lstrip("/")

    def _build(
        self,
        client: httpx.Client | httpx.AsyncClient,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        stream: bool = False,
    ) -> httpx.Request:
        content = None
        if payload is not None:
            try:
                content = json.dumps(payload).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise RequestError(f"request body is not JSON serializable: {e}") from e

        all_headers = self.config.default_headers()
        if stream:
            all_headers["Accept"] = "text/event-stream"
        if headers:
            all_headers.update(headers)

        return client.build_request(
            method,
            self.url(path),
            content=content,
            headers=all_headers,
            params=params,
            timeout=self.config.timeout,
        )

    # === Response handling ===

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            body = response.text[: self.config.max_error_body]
            raise APIStatusError(response.status_code, message_from_body(body), body)
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"response body is not valid JSON: {e}") from e
        raise_for_error_object(data)
        return data

    def _read_error_body(self, response: httpx.Response) -> str:
        limit = self.config.max_error_body
        buffer = bytearray()
        try:
            for chunk in response.iter_bytes():
                buffer += chunk
                if len(buffer) >= limit:
                    break
        except (httpx.HTTPError, httpx.StreamError, OSError) as e:
            logger.debug(f"Failed to read error body: {e}")
        finally:
            response.close()
        return bytes(buffer[:limit]).decode("utf-8", errors="replace")

    async def _aread_error_body(self, response: httpx.Response) -> str:
        limit = self.config.max_error_body
        buffer = bytearray()
        try:
            async for chunk in response.aiter_bytes():
                buffer += chunk
                if len(buffer) >= limit:
                    break
        except (httpx.HTTPError, httpx.StreamError, OSError) as e:
            logger.debug(f"Failed to read error body: {e}")
        finally:
            await response.aclose()
        return bytes(buffer[:limit]).decode("utf-8", errors="replace")

    # === JSON requests ===

    def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a JSON request and return the decoded body."""
        request = self._build(self.client, method, path, payload, headers, params)
        try:
            response = self.client.send(request)
        except SEND_ERRORS as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        return self._decode(response)

    async def arequest(
        self,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Async variant of request()."""
        request = self._build(self.async_client, method, path, payload, headers, params)
        try:
            response = await self.async_client.send(request)
        except SEND_ERRORS as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        return self._decode(response)

    # === Event streams ===

    @staticmethod
    def _lift_read_timeout(response: httpx.Response) -> None:
        """Let the body wait indefinitely once the headers are in.

        httpcore reads the timeout dict when body iteration starts, so updating
        it in place after the handshake only affects the body.
        """
        timeouts = response.request.extensions.get("timeout")
        if isinstance(timeouts, dict):
            timeouts["read"] = None

    def _send_stream(self, request: httpx.Request, path: str, signal: AbortSignal | None) -> httpx.Response:
        if signal is None:
            try:
                return self.client.send(request, stream=True)
            except SEND_ERRORS as e:
                raise TransportError(f"POST {path} failed: {e}") from e

        # abort() releases the caller while the send is still blocked on the server
        handshake = _Handshake(self.client, request)
        unsubscribe = signal.on_abort(handshake.done.set)
        if not signal.aborted:
            handshake.start()
        try:
            handshake.done.wait()
        finally:
            unsubscribe()

        if not handshake.abandon():
            raise AbortError(signal.reason)
        if handshake.error is not None:
            if signal.aborted:
                raise AbortError(signal.reason) from handshake.error
            if isinstance(handshake.error, SEND_ERRORS):
                raise TransportError(f"POST {path} failed: {handshake.error}") from handshake.error
            raise handshake.error
        return handshake.response

    def open_stream(
        self,
        path: str,
        payload: Any,
        signal: AbortSignal | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST and return the response with its body unread.

        The handshake is bounded by ``config.timeout``; the body has no read
        timeout. The caller owns the returned response and must close it.

        Raises:
            AbortError: ``signal`` fired before or during the handshake.
            TransportError: The request could not be sent.
            APIStatusError: The server answered with status >= 400.
        """
        if signal is not None:
            signal.throw_if_aborted()
        request = self._build(self.client, "POST", path, payload, headers, stream=True)
        response = self._send_stream(request, path, signal)

        if response.status_code >= 400:
            body = self._read_error_body(response)
            raise APIStatusError(response.status_code, message_from_body(body), body)
        if signal is not None and signal.aborted:
            response.close()
            raise AbortError(signal.reason)
        self._lift_read_timeout(response)
        return response

    async def aopen_stream(
        self,
        path: str,
        payload: Any,
        signal: AbortSignal | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Async variant of open_stream(). Aborting cancels an in-flight handshake."""
        if signal is not None:
            signal.throw_if_aborted()
        client = self.async_client
        request = self._build(client, "POST", path, payload, headers, stream=True)

        loop = asyncio.get_running_loop()
        task = loop.create_task(client.send(request, stream=True))
        unsubscribe = (
            signal.on_abort(lambda: loop.call_soon_threadsafe(task.cancel))
            if signal is not None
            else None
        )
        try:
            response = await task
        except asyncio.CancelledError:
            if signal is not None and signal.aborted:
                raise AbortError(signal.reason) from None
            raise
        except SEND_ERRORS as e:
            raise TransportError(f"POST {path} failed: {e}") from e
        finally:
            if unsubscribe:
                unsubscribe()

        if response.status_code >= 400:
            body = await self._aread_error_body(response)
            raise APIStatusError(response.status_code, message_from_body(body), body)
        if signal is not None and signal.aborted:
            await response.aclose()
            raise AbortError(signal.reason)
        self._lift_read_timeout(response)
        return response


class _Handshake:
    """One ``client.send(stream=True)`` on a daemon thread.

    ``done`` is set when the send returns or fails, and by the abort callback.
    A response that arrives after the caller gave up is closed here.
    """

    def __init__(self, client: httpx.Client, request: httpx.Request):
        self.done = threading.Event()
        self.response: httpx.Response | None = None
        self.error: Exception | None = None
        self._client = client
        self._request = request
        self._lock = threading.Lock()
        self._finished = False
        self._abandoned = False
        self._thread = threading.Thread(target=self._run, name="llmwire-handshake", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        response = None
        error = None
        try:
            response = self._client.send(self._request, stream=True)
        except Exception as e:
            error = e
        with self._lock:
            self._finished = True
            self.response = response
            self.error = error
            abandoned = self._abandoned
        if abandoned and response is not None:
            response.close()
        self.done.set()

    def abandon(self) -> bool:
        """Give up on the send unless it already finished. Returns True if it did."""
        with self._lock:
            if not self._finished:
                self._abandoned = True
            return self._finished
