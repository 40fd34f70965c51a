"""Tests for the asyncio stream session."""

import asyncio

import httpx
import pytest

from llmwire import (
    AbortController,
    AbortError,
    AsyncStreamSession,
    OutputTextDeltaEvent,
    ResponseCompletedEvent,
    SessionState,
)
from llmwire.errors import ResponseFailedError, TransportError


def delta(text: str, seq: int = 0) -> dict:
    return {"type": "response.output_text.delta", "sequence_number": seq, "delta": text}


def completed(seq: int = 0) -> dict:
    return {"type": "response.completed", "sequence_number": seq, "response": {"id": "resp_1"}}


async def chunks(*items: bytes):
    for item in items:
        yield item


class HangingBody:
    """Async body that yields its chunks, then waits forever for more data."""

    def __init__(self, *items: bytes):
        self.items = list(items)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self.items:
            return self.items.pop(0)
        await asyncio.Event().wait()
        raise StopAsyncIteration

    async def aclose(self):
        self.closed = True


class TestAsyncStreamSession:
    @pytest.mark.asyncio
    async def test_events_in_order(self, sse):
        session = AsyncStreamSession(
            chunks(sse(delta("He", 1)), sse(delta("llo", 2)), sse(completed(3)))
        )
        events = await session.collect()

        assert [e.sequence_number for e in events] == [1, 2, 3]
        assert isinstance(events[-1], ResponseCompletedEvent)
        assert session.err() is None
        assert session.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_done_sentinel(self, sse):
        session = AsyncStreamSession(chunks(sse(delta("a")), b"data: [DONE]\n\n", sse(delta("b"))))
        events = [event async for event in session]
        assert [e.delta for e in events] == ["a"]
        assert session.err() is None

    @pytest.mark.asyncio
    async def test_failed_event(self, sse):
        session = AsyncStreamSession(
            chunks(sse({"type": "response.failed", "response": {"error": {"message": "boom"}}}))
        )
        with pytest.raises(ResponseFailedError, match="boom"):
            await session.output_text()

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_data(self, sse):
        body = HangingBody(sse(delta("a")))
        session = AsyncStreamSession(body, aclose=body.aclose)
        events = session.events()

        first = await asyncio.wait_for(events.__anext__(), 5)
        assert isinstance(first, OutputTextDeltaEvent)

        session.cancel("stop")
        rest = await asyncio.wait_for(session.collect(), 5)

        assert rest == []
        assert body.closed
        assert isinstance(session.err(), AbortError)
        assert session.err().reason == "stop"

    @pytest.mark.asyncio
    async def test_external_signal(self):
        controller = AbortController()
        body = HangingBody()
        session = AsyncStreamSession(body, aclose=body.aclose, signal=controller.signal)

        await asyncio.sleep(0)
        controller.abort("user")
        await asyncio.wait_for(session.wait(), 5)

        assert isinstance(session.err(), AbortError)
        assert body.closed

    @pytest.mark.asyncio
    async def test_cancelled_from_other_thread(self):
        body = HangingBody()
        session = AsyncStreamSession(body, aclose=body.aclose)

        await asyncio.to_thread(session.cancel)
        await asyncio.wait_for(session.wait(), 5)
        assert isinstance(session.err(), AbortError)

    @pytest.mark.asyncio
    async def test_context_manager(self, sse):
        body = HangingBody(sse(delta("a")))
        async with AsyncStreamSession(body, aclose=body.aclose) as session:
            async for _ in session:
                break

        assert session.state is SessionState.CLOSED
        assert isinstance(session.err(), AbortError)

    @pytest.mark.asyncio
    async def test_backpressure(self, sse):
        reads = 0

        async def endless():
            nonlocal reads
            while True:
                reads += 1
                yield sse(delta("x"))

        session = AsyncStreamSession(endless(), capacity=2)
        await asyncio.sleep(0.05)
        assert reads <= 2 + 2

        await session.aclose()
        assert isinstance(session.err(), AbortError)

    @pytest.mark.asyncio
    async def test_read_error(self, sse):
        async def body():
            yield sse(delta("a"))
            raise httpx.ReadError("connection reset")

        session = AsyncStreamSession(body())
        events = await session.collect()
        assert len(events) == 1
        assert isinstance(session.err(), TransportError)

    @pytest.mark.asyncio
    async def test_unexpected_body_error_is_wrapped(self):
        async def body():
            raise RuntimeError("decoder exploded")
            yield b""

        session = AsyncStreamSession(body())
        assert await session.collect() == []
        assert isinstance(session.err(), TransportError)
        assert isinstance(session.err().__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_decode_error_dropped(self, sse):
        session = AsyncStreamSession(
            chunks(b"event: response.output_text.delta\ndata: nope\n\n", sse(completed()))
        )
        events = await session.collect()
        assert [type(e) for e in events] == [ResponseCompletedEvent]
        assert len(session.decode_errors) == 1

    @pytest.mark.asyncio
    async def test_final_response(self, sse):
        session = AsyncStreamSession(chunks(sse(completed())))
        response = await session.final_response()
        assert response.id == "resp_1"
