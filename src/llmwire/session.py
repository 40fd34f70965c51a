"""Stream sessions: a producer drives body -> frames -> typed events -> bounded channel.

``StreamSession`` runs its producer on a daemon thread; ``AsyncStreamSession``
runs it as an asyncio task. Both own the HTTP body exclusively, deliver events
in wire order, stop after the first terminal event (or ``[DONE]``), and report
the outcome through ``err()`` once the event channel is closed:

- ``None``: normal end (terminal success, ``[DONE]`` or end of body).
- ``ResponseFailedError``: the server sent failed / incomplete / error.
- ``TransportError`` / ``FrameError``: reading or framing the body failed.
- ``AbortError``: the session (or the request's signal) was cancelled.

Example:
    with client.responses.stream(request) as session:
        for event in session:
            if isinstance(event, OutputTextDeltaEvent):
                print(event.delta, end="", flush=True)
    if session.err():
        raise session.err()
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator
from enum import Enum
from typing import Any

from .abort import AbortController, AbortError, AbortSignal
from .decoder import decode_event
from .errors import EventDecodeError, FrameError, ResponseFailedError, TransportError
from .events import (
    OutputTextDeltaEvent,
    ResponseCompletedEvent,
    StreamEvent,
    Terminality,
    event_terminality,
    failure_code,
    failure_message,
)
from .sse import DEFAULT_MAX_LINE_SIZE, DONE, aiter_frames, iter_frames
from .types import Response

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 8


class SessionState(str, Enum):
    """OPEN: producer running. DRAINING: releasing the body. CLOSED: channel closed."""

    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"


class _Outcome:
    """What the producer loop observed, turned into the terminal error."""

    def __init__(self):
        self.error: BaseException | None = None
        self.finished = False
        self.cancelled = False

    def observe(self, event: Any) -> bool:
        """Record a delivered event. Returns True if the stream must stop."""
        kind = event_terminality(event)
        if kind is Terminality.NON_TERMINAL:
            return False
        self.finished = True
        if kind is Terminality.FAILURE:
            self.error = ResponseFailedError(
                failure_message(event), event=event, code=failure_code(event)
            )
        return True

    def result(self, signal: AbortSignal) -> BaseException | None:
        if self.cancelled or (signal.aborted and not self.finished):
            return AbortError(signal.reason)
        return self.error


def _wrap_unexpected(error: Exception) -> TransportError:
    wrapped = TransportError(f"stream body failed: {type(error).__name__}: {error}")
    wrapped.__cause__ = error
    return wrapped


# === Channels ===


class EventChannel:
    """Bounded FIFO between one producer thread and one consumer.

    ``send`` blocks while full; ``interrupt`` wakes a blocked sender and makes
    further sends fail (cancellation). ``receive`` returns ``None`` once the
    channel is closed and drained.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self._capacity = capacity
        self._items: deque = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._interrupted = False

    def send(self, item: Any) -> bool:
        with self._cond:
            self._cond.wait_for(
                lambda: len(self._items) < self._capacity or self._interrupted or self._closed
            )
            if self._interrupted or self._closed:
                return False
            self._items.append(item)
            self._cond.notify_all()
            return True

    def interrupt(self) -> None:
        with self._cond:
            self._interrupted = True
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def receive(self, timeout: float | None = None) -> Any:
        """Next item, or None when closed and empty.

        Raises:
            TimeoutError: Nothing arrived within ``timeout`` seconds.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._items or self._closed, timeout):
                raise TimeoutError("no event received before timeout")
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            return None

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)


class AsyncEventChannel:
    """asyncio counterpart of EventChannel. Cancellation is task cancellation."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self._capacity = capacity
        self._items: deque = deque()
        self._cond = asyncio.Condition()
        self._closed = False

    async def send(self, item: Any) -> bool:
        async with self._cond:
            await self._cond.wait_for(lambda: len(self._items) < self._capacity or self._closed)
            if self._closed:
                return False
            self._items.append(item)
            self._cond.notify_all()
            return True

    async def close(self) -> None:
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    async def receive(self) -> Any:
        async with self._cond:
            await self._cond.wait_for(lambda: bool(self._items) or self._closed)
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            return None

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)


# === Sessions ===


class _SessionBase(ABC):
    """State shared by both session flavours."""

    def __init__(self, signal: AbortSignal | None, max_line_size: int):
        self._controller = AbortController()
        self._external = signal
        self._unlink: Callable[[], None] | None = None
        self._error: BaseException | None = None
        self._state = SessionState.OPEN
        self._decode_errors: list[EventDecodeError] = []
        self._max_line_size = max_line_size
        self._event_count = 0
        self._started = time.monotonic()

    def _link(self) -> None:
        """Propagate the caller's signal and our own cancel() to the producer."""
        self._controller.signal.on_abort(self._on_abort)
        if self._external is not None:
            external = self._external
            self._unlink = external.on_abort(lambda: self._controller.abort(external.reason))

    @abstractmethod
    def _on_abort(self) -> None:
        """Interrupt the producer. Runs on whichever thread called abort()."""

    def _decode(self, frame) -> StreamEvent | None:
        try:
            return decode_event(frame)
        except EventDecodeError as e:
            logger.warning(f"Dropping undecodable stream event: {e}")
            self._decode_errors.append(e)
            return None

    def _finish(self, outcome: _Outcome) -> None:
        self._error = outcome.result(self._controller.signal)
        if self._unlink:
            self._unlink()
        logger.debug(
            f"Stream finished after {time.monotonic() - self._started:.2f}s, "
            f"got {self._event_count} events"
            + (f" ({type(self._error).__name__}: {self._error})" if self._error else "")
        )

    @property
    def signal(self) -> AbortSignal:
        """Signal that fires when this session is cancelled."""
        return self._controller.signal

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def decode_errors(self) -> list[EventDecodeError]:
        """Events that were dropped because they could not be decoded."""
        return list(self._decode_errors)

    def err(self) -> BaseException | None:
        """Terminal error, or None. Meaningful once the event channel is closed."""
        return self._error

    def cancel(self, reason: str | None = None) -> None:
        """Request early termination. Idempotent; safe from any thread.

        Events already buffered may still be delivered before the channel closes.
        """
        self._controller.abort(reason)

    def _raise_for_error(self) -> None:
        if self._error is not None:
            raise self._error


def _final_response(events: list[Any]) -> Response | None:
    for event in reversed(events):
        if isinstance(event, ResponseCompletedEvent):
            return event.response
    return None


def _joined_text(events: list[Any]) -> str:
    return "".join(e.delta for e in events if isinstance(e, OutputTextDeltaEvent))


class StreamSession(_SessionBase):
    """Consumer handle for a stream read by a background thread.

    Args:
        body: Iterable of raw byte chunks (e.g. ``httpx.Response.iter_bytes()``).
        close: Releases the body; called once when the producer exits, and
            early on cancel so that a blocked read returns.
        signal: Caller's cancellation handle; aborting it cancels the session.
        capacity: Channel size. A full channel stalls the producer, which stops
            reading the body.
    """

    def __init__(
        self,
        body: Iterable[bytes],
        close: Callable[[], None] | None = None,
        signal: AbortSignal | None = None,
        capacity: int = DEFAULT_CAPACITY,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
        name: str = "stream",
    ):
        super().__init__(signal, max_line_size)
        self._body = body
        self._close = close
        self._close_lock = threading.Lock()
        self._body_closed = False
        self._channel = EventChannel(capacity)
        self._thread = threading.Thread(
            target=self._produce, name=f"llmwire-{name}", daemon=True
        )
        self._link()
        self._thread.start()

    def _on_abort(self) -> None:
        self._channel.interrupt()
        self._close_body()

    def _close_body(self) -> None:
        with self._close_lock:
            if self._body_closed:
                return
            self._body_closed = True
        if self._close is None:
            return
        try:
            self._close()
        except Exception:
            logger.warning("Failed to close stream body", exc_info=True)

    def _produce(self) -> None:
        outcome = _Outcome()
        signal = self._controller.signal
        try:
            for frame in iter_frames(self._body, self._max_line_size):
                if signal.aborted:
                    outcome.cancelled = True
                    break
                if frame is DONE:
                    outcome.finished = True
                    break
                event = self._decode(frame)
                if event is None:
                    continue
                if not self._channel.send(event):
                    outcome.cancelled = True
                    break
                self._event_count += 1
                if outcome.observe(event):
                    break
        except (TransportError, FrameError) as e:
            outcome.error = e
        except Exception as e:
            logger.exception("Stream producer failed")
            outcome.error = _wrap_unexpected(e)

        self._state = SessionState.DRAINING
        self._close_body()
        self._finish(outcome)
        self._state = SessionState.CLOSED
        self._channel.close()

    # === Consumer API ===

    def events(self, timeout: float | None = None) -> Iterator[StreamEvent]:
        """Yield events until the channel closes.

        Args:
            timeout: Max seconds to wait for each event (TimeoutError if exceeded).
        """
        while True:
            event = self._channel.receive(timeout)
            if event is None:
                return
            yield event

    def __iter__(self) -> Iterator[StreamEvent]:
        return self.events()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the producer to exit. Returns True if it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def close(self) -> None:
        """Cancel (if still running) and wait for the producer to exit."""
        if self._state is SessionState.OPEN:
            self.cancel()
        self.wait()

    def __enter__(self) -> "StreamSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def collect(self) -> list[StreamEvent]:
        """Consume the whole stream. Check err() afterwards."""
        return list(self.events())

    def output_text(self) -> str:
        """Consume the stream and return the concatenated output text deltas.

        Raises:
            LLMWireError: The terminal error, if the stream did not end normally.
        """
        text = _joined_text(self.collect())
        self._raise_for_error()
        return text

    def final_response(self) -> Response | None:
        """Consume the stream and return the response of the completed event.

        Raises:
            LLMWireError: The terminal error, if the stream did not end normally.
        """
        response = _final_response(self.collect())
        self._raise_for_error()
        return response


class AsyncStreamSession(_SessionBase):
    """asyncio variant of StreamSession. Must be created inside a running loop.

    Args:
        body: Async iterable of raw byte chunks (``httpx.Response.aiter_bytes()``).
        aclose: Coroutine function releasing the body (``httpx.Response.aclose``).
    """

    def __init__(
        self,
        body: AsyncIterable[bytes],
        aclose: Callable[[], Awaitable[None]] | None = None,
        signal: AbortSignal | None = None,
        capacity: int = DEFAULT_CAPACITY,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
        name: str = "stream",
    ):
        super().__init__(signal, max_line_size)
        self._body = body
        self._aclose = aclose
        self._channel = AsyncEventChannel(capacity)
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._produce(), name=f"llmwire-{name}")
        self._link()

    def _on_abort(self) -> None:
        # abort() may be called from any thread
        if not self._task.done():
            self._loop.call_soon_threadsafe(self._cancel_task)

    def _cancel_task(self) -> None:
        if self._state is SessionState.OPEN and not self._task.done():
            self._task.cancel()

    async def _close_body(self) -> None:
        if self._aclose is None:
            return
        try:
            await self._aclose()
        except Exception:
            logger.warning("Failed to close stream body", exc_info=True)

    async def _produce(self) -> None:
        outcome = _Outcome()
        signal = self._controller.signal
        frames = aiter_frames(self._body, self._max_line_size)
        try:
            if signal.aborted:
                raise asyncio.CancelledError
            async for frame in frames:
                if frame is DONE:
                    outcome.finished = True
                    break
                event = self._decode(frame)
                if event is None:
                    continue
                await self._channel.send(event)
                self._event_count += 1
                if outcome.observe(event):
                    break
        except asyncio.CancelledError:
            outcome.cancelled = True
        except (TransportError, FrameError) as e:
            outcome.error = e
        except Exception as e:
            logger.exception("Stream producer failed")
            outcome.error = _wrap_unexpected(e)

        self._state = SessionState.DRAINING
        await frames.aclose()
        await self._close_body()
        self._finish(outcome)
        self._state = SessionState.CLOSED
        await self._channel.close()

    # === Consumer API ===

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until the channel closes."""
        while True:
            event = await self._channel.receive()
            if event is None:
                return
            yield event

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self.events()

    async def wait(self) -> None:
        """Wait for the producer task to exit."""
        await asyncio.wait({self._task})

    async def aclose(self) -> None:
        """Cancel (if still running) and wait for the producer to exit."""
        if self._state is SessionState.OPEN:
            self.cancel()
        await self.wait()

    async def __aenter__(self) -> "AsyncStreamSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def collect(self) -> list[StreamEvent]:
        return [event async for event in self.events()]

    async def output_text(self) -> str:
        text = _joined_text(await self.collect())
        self._raise_for_error()
        return text

    async def final_response(self) -> Response | None:
        response = _final_response(await self.collect())
        self._raise_for_error()
        return response
