"""Unified API - sync-first with async variants, on a default client."""

from collections.abc import AsyncIterator, Iterator

from .abort import AbortSignal
from .client import Client
from .events import StreamEvent
from .session import StreamSession
from .types import DEFAULT_MODEL, Response, ResponseRequest

# Default client singleton
_client: Client | None = None


def _get_client() -> Client:
    global _client
    if _client is None:
        _client = Client()
    return _client


def set_default_client(client: Client | None) -> None:
    """Replace the client used by the module-level functions (None resets it)."""
    global _client
    _client = client


# === Responses (sync-first) ===


def respond(request: ResponseRequest) -> Response:
    """Send a request and wait for the complete response (sync, blocking).

    Example:
        from llmwire import respond, ResponseRequest

        response = respond(ResponseRequest(input="Name three colors."))
        print(response.text)
    """
    return _get_client().responses.send(request)


def stream(request: ResponseRequest, signal: AbortSignal | None = None) -> StreamSession:
    """Stream a response (sync). Iterate the session, then check ``err()``.

    Example:
        from llmwire import stream, ResponseRequest, OutputTextDeltaEvent

        with stream(ResponseRequest(input="Write a poem.")) as session:
            for event in session:
                if isinstance(event, OutputTextDeltaEvent):
                    print(event.delta, end="", flush=True)
        print()
    """
    return _get_client().responses.stream(request, signal=signal)


async def astream(
    request: ResponseRequest,
    signal: AbortSignal | None = None,
) -> AsyncIterator[StreamEvent]:
    """Stream a response (async variant).

    Raises the session's terminal error, if any, after the last event.

    Example:
        async for event in astream(ResponseRequest(input="Write a poem.")):
            if event.type == "response.output_text.delta":
                print(event.delta, end="", flush=True)
    """
    session = await _get_client().responses.astream(request, signal=signal)
    async with session:
        async for event in session:
            yield event
    if session.err() is not None:
        raise session.err()


def stream_text(request: ResponseRequest, signal: AbortSignal | None = None) -> Iterator[str]:
    """Yield only the output text deltas of a streamed response."""
    with stream(request, signal=signal) as session:
        for event in session:
            if event.type == "response.output_text.delta":
                yield event.delta
    if session.err() is not None:
        raise session.err()


# === Convenience Functions ===


def quick(
    prompt: str,
    model: str = DEFAULT_MODEL,
    instructions: str | None = None,
    temperature: float | None = None,
) -> str:
    """Quick one-liner: send ``prompt`` and return the output text.

    Example:
        from llmwire import quick

        print(quick("What is 2+2?"))  # "4"
    """
    request = ResponseRequest(
        model=model,
        input=prompt,
        instructions=instructions,
        temperature=temperature,
    )
    return respond(request).text
