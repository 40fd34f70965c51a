"""Responses endpoint: single-shot requests, background polling and streaming."""

import logging
import time
from typing import Any

from .abort import AbortError, AbortSignal
from .errors import RequestError, ResponseFailedError
from .session import AsyncStreamSession, StreamSession
from .tools import ToolRegistry, execute_calls, resolve_calls
from .transport import Transport
from .types import Response, ResponseRequest, ResponseStatus
from .usage import estimate_cost

logger = logging.getLogger(__name__)

RESPONSES_PATH = "v1/responses"


def _parse(data: dict[str, Any]) -> Response:
    response = Response.model_validate(data)
    if response.refusals:
        logger.warning(f"Response {response.id} contains refusal: {response.refusals[0]}")
    if response.usage and logger.isEnabledFor(logging.DEBUG):
        usage = response.usage
        cost = estimate_cost(response.model, usage.input_tokens, usage.output_tokens)
        logger.debug(
            f"Response {response.id}: {usage.input_tokens} input / "
            f"{usage.output_tokens} output tokens, est. ${cost:.6f}"
        )
    return response


def _merge_follow_up(response: Response, follow_up: Response) -> Response:
    """The follow-up response, with the first turn's non-call output items in front."""
    kept = [item for item in response.output if item.get("type") != "function_call"]
    return follow_up.model_copy(update={"output": kept + follow_up.output})


def _stream_payload(request: ResponseRequest) -> dict[str, Any]:
    return request.model_copy(update={"stream": True}).to_payload()


class ResponsesService:
    """Client for ``v1/responses``.

    Example:
        request = ResponseRequest(model="gpt-4o-mini", input="Say hi")

        response = client.responses.send(request)
        print(response.text)

        with client.responses.stream(request) as session:
            for event in session:
                ...
    """

    def __init__(self, transport: Transport, tools: ToolRegistry | None = None):
        self._transport = transport
        self._tools = tools

    # === Dispatch ===

    def create(
        self, request: ResponseRequest, signal: AbortSignal | None = None
    ) -> Response | StreamSession:
        """Send ``request``: a StreamSession if ``request.stream`` is set, else a Response."""
        if request.stream:
            return self.stream(request, signal=signal)
        return self.send(request)

    async def acreate(
        self, request: ResponseRequest, signal: AbortSignal | None = None
    ) -> Response | AsyncStreamSession:
        if request.stream:
            return await self.astream(request, signal=signal)
        return await self.asend(request)

    # === Single-shot ===

    def send(self, request: ResponseRequest) -> Response:
        """Create a response and wait for the full result.

        Function calls to registered tools are executed and answered in
        follow-up requests until the model replies without calling one; see
        ``llmwire.tools``.

        Raises:
            RequestError: ``request.stream`` is set (use stream()).
            ToolError: A called tool is not registered, or its function failed.
            APIStatusError / APIError / TransportError: The request failed.
        """
        if request.stream:
            raise RequestError("streaming requests must use stream()")
        response = _parse(self._transport.request("POST", RESPONSES_PATH, request.to_payload()))
        outputs = self._tool_outputs(request, response)
        if outputs is None:
            return response
        return _merge_follow_up(response, self.send(request.follow_up(response, outputs)))

    async def asend(self, request: ResponseRequest) -> Response:
        if request.stream:
            raise RequestError("streaming requests must use astream()")
        data = await self._transport.arequest("POST", RESPONSES_PATH, request.to_payload())
        response = _parse(data)
        outputs = self._tool_outputs(request, response)
        if outputs is None:
            return response
        return _merge_follow_up(response, await self.asend(request.follow_up(response, outputs)))

    def _tool_outputs(self, request: ResponseRequest, response: Response) -> list[dict[str, Any]] | None:
        """Outputs of the executed function calls, or None if there is nothing to send back."""
        if request.background or request.return_tool_calls or self._tools is None:
            return None
        calls = response.function_calls
        if not calls:
            return None
        resolved = resolve_calls(self._tools, calls)
        if resolved is None:
            logger.debug(f"Response {response.id} has calls without a function, returning them")
            return None
        return execute_calls(resolved)

    def retrieve(self, response_id: str) -> Response:
        return _parse(self._transport.request("GET", f"{RESPONSES_PATH}/{response_id}"))

    def delete(self, response_id: str) -> bool:
        data = self._transport.request("DELETE", f"{RESPONSES_PATH}/{response_id}")
        return bool(data.get("deleted", True))

    def cancel(self, response_id: str) -> Response:
        """Cancel a background response."""
        return _parse(self._transport.request("POST", f"{RESPONSES_PATH}/{response_id}/cancel"))

    def poll(
        self,
        response_id: str,
        interval: float = 1.0,
        signal: AbortSignal | None = None,
        timeout: float | None = None,
    ) -> Response:
        """Retrieve a background response until it leaves the queued/in-progress states.

        Returns the response once ``completed`` (also ``incomplete`` or ``cancelled``,
        which callers can tell apart by ``status``).

        Raises:
            ResponseFailedError: The response status is ``failed``.
            AbortError: ``signal`` fired while waiting.
            TimeoutError: ``timeout`` seconds elapsed.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            if signal is not None:
                signal.throw_if_aborted()
            response = self.retrieve(response_id)
            status = response.status
            if status == ResponseStatus.FAILED.value:
                message = response.error.message if response.error else ""
                raise ResponseFailedError(
                    message or f"response {response.id} failed",
                    code=response.error.code if response.error else None,
                )
            if status not in (ResponseStatus.QUEUED.value, ResponseStatus.IN_PROGRESS.value):
                return response

            logger.debug(f"Response {response_id} is {status}, polling again in {interval}s")
            if deadline is not None and time.monotonic() + interval > deadline:
                raise TimeoutError(f"response {response_id} still {status} after {timeout}s")
            if signal is not None:
                if signal.wait(interval):
                    raise AbortError(signal.reason)
            else:
                time.sleep(interval)

    # === Streaming ===

    def stream(self, request: ResponseRequest, signal: AbortSignal | None = None) -> StreamSession:
        """Open a streamed response. ``stream`` is always sent as true.

        The session owns the HTTP body; ``signal`` covers both the handshake
        and the stream.

        Raises:
            AbortError: ``signal`` fired before the stream was established.
            TransportError: The request could not be sent.
            APIStatusError: Non-success status (no session is created).
        """
        response = self._transport.open_stream(RESPONSES_PATH, _stream_payload(request), signal)
        return StreamSession(
            response.iter_bytes(),
            close=response.close,
            signal=signal,
            capacity=self._transport.config.stream_capacity,
            name=f"responses-{request.model}",
        )

    async def astream(
        self, request: ResponseRequest, signal: AbortSignal | None = None
    ) -> AsyncStreamSession:
        """Async variant of stream(). Aborting during the handshake cancels it."""
        response = await self._transport.aopen_stream(
            RESPONSES_PATH, _stream_payload(request), signal
        )
        return AsyncStreamSession(
            response.aiter_bytes(),
            aclose=response.aclose,
            signal=signal,
            capacity=self._transport.config.stream_capacity,
            name=f"responses-{request.model}",
        )
