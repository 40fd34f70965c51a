"""Exception hierarchy.

Every error raised by the library derives from ``LLMWireError``:

- ``RequestError``: the request could not be built (bad input, encoding failure).
- ``TransportError``: the network or HTTP layer failed.
- ``APIStatusError``: the server answered with a non-success status.
- ``APIError``: the server answered with an ``error`` object in the body.
- ``FrameError``: the event stream framing is malformed (fatal to the stream).
- ``EventDecodeError``: one event could not be decoded (not fatal).
- ``ResponseFailedError``: the stream ended with a failed/incomplete/error event.
- ``ToolError``: a function tool could not be resolved or failed while executing.
- ``AbortError`` (in ``llmwire.abort``): the caller cancelled.
"""

import json
from typing import Any


class LLMWireError(Exception):
    """Base class for all library errors."""


class RequestError(LLMWireError):
    """Request could not be constructed or is not valid for the chosen call."""


class TransportError(LLMWireError):
    """Network or HTTP transport failure."""


class APIStatusError(LLMWireError):
    """Server returned a non-success HTTP status."""

    def __init__(self, status_code: int, message: str, body: str = ""):
        self.status_code = status_code
        self.message = message
        self.body = body
        super().__init__(f"request failed with status {status_code}: {message}")


class APIError(LLMWireError):
    """Server reported an error object in an otherwise readable body."""

    def __init__(
        self,
        message: str,
        type: str | None = None,
        param: str | None = None,
        code: str | None = None,
    ):
        self.message = message
        self.type = type
        self.param = param
        self.code = code
        super().__init__(f"API error: {message}" + (f" ({code})" if code else ""))


class FrameError(LLMWireError):
    """Malformed server-sent-event framing."""


class EventDecodeError(LLMWireError):
    """A frame could not be decoded into a typed event."""

    def __init__(self, message: str, event_name: str = "", data: str = ""):
        self.event_name = event_name
        self.data = data
        super().__init__(message)


class ResponseFailedError(LLMWireError):
    """Stream terminated with a failure event (failed, incomplete or error)."""

    def __init__(self, message: str, event: Any = None, code: str | None = None):
        self.message = message
        self.event = event
        self.code = code
        super().__init__(message)


class ToolError(LLMWireError):
    """A function call named an unknown tool, or its function failed."""

    def __init__(self, message: str, name: str = ""):
        self.name = name
        super().__init__(message)


def message_from_body(body: str) -> str:
    """Best-effort extraction of ``error.message`` from a JSON error body."""
    try:
        data = json.loads(body)
    except (ValueError, TypeError):
        return body.strip()
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return body.strip()
