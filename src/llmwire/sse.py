"""Server-sent-event frame reader.

Turns a byte stream (any chunking) into ``Frame`` values following the SSE
rules: frames end at a blank line, ``data`` lines join with ``\\n``, comment
lines and unknown fields are ignored, LF and CRLF line endings both work. A
frame whose data is ``[DONE]`` becomes the ``DONE`` sentinel. An unterminated
frame at end of input is dropped.
"""

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass

import httpx

from .errors import FrameError, TransportError

DEFAULT_MAX_LINE_SIZE = 16 * 1024 * 1024  # partial images arrive as one base64 line

# Exceptions from a body iterator that mean the transport failed
READ_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError)


@dataclass(frozen=True)
class Frame:
    """One dispatched SSE block."""

    event: str = "message"
    data: str = ""
    id: str | None = None
    retry: int | None = None


class EndOfStream:
    """Sentinel type for the ``[DONE]`` data value."""

    _instance: "EndOfStream | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DONE"


DONE = EndOfStream()


class LineDecoder:
    """Splits arbitrarily chunked bytes into lines, dropping the terminator."""

    def __init__(self, max_line_size: int = DEFAULT_MAX_LINE_SIZE):
        self._buffer = bytearray()
        self._max_line_size = max_line_size

    def feed(self, chunk: bytes) -> list[bytes]:
        self._buffer += chunk
        lines = []
        start = 0
        while True:
            end = self._buffer.find(b"\n", start)
            if end < 0:
                break
            line = bytes(self._buffer[start:end])
            if line.endswith(b"\r"):
                line = line[:-1]
            lines.append(line)
            start = end + 1
        if start:
            del self._buffer[:start]
        if len(self._buffer) > self._max_line_size:
            raise FrameError(f"line exceeds {self._max_line_size} bytes")
        return lines

    @property
    def pending(self) -> int:
        """Bytes buffered for an unterminated line."""
        return len(self._buffer)


class FrameParser:
    """Accumulates field lines and dispatches a frame on each blank line."""

    def __init__(self):
        self._event: str | None = None
        self._data: list[str] = []
        self._last_id: str | None = None
        self._retry: int | None = None
        self._first_line = True

    def feed_line(self, raw: bytes) -> Frame | EndOfStream | None:
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameError(f"invalid UTF-8 in event stream: {e}") from e

        if self._first_line:
            self._first_line = False
            line = line.removeprefix("\ufeff")

        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self._retry = int(value)
        return None

    def _dispatch(self) -> Frame | EndOfStream | None:
        event, data = self._event, self._data
        self._event, self._data = None, []
        if not data:
            return None
        payload = "\n".join(data)
        if payload == "[DONE]":
            return DONE
        return Frame(
            event=event or "message",
            data=payload,
            id=self._last_id,
            retry=self._retry,
        )


class _Reader:
    def __init__(self, max_line_size: int):
        self.lines = LineDecoder(max_line_size)
        self.parser = FrameParser()

    def feed(self, chunk: bytes) -> list[Frame | EndOfStream]:
        frames = []
        for line in self.lines.feed(chunk):
            frame = self.parser.feed_line(line)
            if frame is not None:
                frames.append(frame)
        return frames


def iter_frames(
    chunks: Iterable[bytes],
    max_line_size: int = DEFAULT_MAX_LINE_SIZE,
) -> Iterator[Frame | EndOfStream]:
    """Yield frames from a byte-chunk iterable.

    Raises:
        TransportError: The chunk iterable failed while reading.
        FrameError: A line is not UTF-8 or is longer than ``max_line_size``.
    """
    reader = _Reader(max_line_size)
    iterator = iter(chunks)
    while True:
        try:
            chunk = next(iterator)
        except StopIteration:
            return
        except READ_ERRORS as e:
            raise TransportError(f"stream read failed: {e}") from e
        yield from reader.feed(chunk)


async def aiter_frames(
    chunks: AsyncIterable[bytes],
    max_line_size: int = DEFAULT_MAX_LINE_SIZE,
) -> AsyncIterator[Frame | EndOfStream]:
    """Async variant of iter_frames()."""
    reader = _Reader(max_line_size)
    iterator = chunks.__aiter__()
    while True:
        try:
            chunk = await iterator.__anext__()
        except StopAsyncIteration:
            return
        except READ_ERRORS as e:
            raise TransportError(f"stream read failed: {e}") from e
        for frame in reader.feed(chunk):
            yield frame
