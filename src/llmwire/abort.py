"""Abort signal and controller for cooperative cancellation of requests and streams."""

import logging
import threading
from collections.abc import Callable

from .errors import LLMWireError

logger = logging.getLogger(__name__)


class AbortError(LLMWireError):
    """Raised (or reported by a stream session) when an operation was aborted."""

    def __init__(self, reason: str | None = None):
        self.reason = reason or "Operation was aborted"
        super().__init__(self.reason)


class AbortSignal:
    """Signal for cooperative cancellation, shared by a request and its stream.

    Works from any thread: the producer of a stream session polls ``aborted``
    and registers an ``on_abort`` callback that closes the HTTP body so that
    blocking reads return.

    Example:
        controller = AbortController()
        session = client.responses.stream(request, signal=controller.signal)

        # From anywhere (another thread, a timer, a signal handler)
        controller.abort("user pressed ctrl-c")
    """

    def __init__(self):
        self._aborted = threading.Event()
        self._reason: str | None = None
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        """True if abort() has been called."""
        return self._aborted.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given to abort(), if any."""
        return self._reason

    def _abort(self, reason: str | None = None) -> None:
        """Internal: called by AbortController."""
        with self._lock:
            if self._aborted.is_set():
                return
            self._reason = reason
            self._aborted.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            try:
                cb()
            except Exception:
                # One failing cleanup must not prevent the others from running
                logger.exception("abort callback failed")

    def on_abort(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback to run when aborted.

        If already aborted, callback runs immediately.
        Returns an unsubscribe function.
        """
        with self._lock:
            if not self._aborted.is_set():
                self._callbacks.append(callback)
                registered = True
            else:
                registered = False
        if not registered:
            callback()

        def unsubscribe():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def wait(self, timeout: float | None = None) -> bool:
        """Block until aborted or timeout. Returns True if aborted."""
        return self._aborted.wait(timeout)

    def throw_if_aborted(self) -> None:
        """Raise AbortError if aborted."""
        if self._aborted.is_set():
            raise AbortError(self._reason)


class AbortController:
    """Controller that creates and triggers an AbortSignal.

    Example:
        controller = AbortController()
        session = client.responses.stream(request, signal=controller.signal)
        controller.abort()
    """

    def __init__(self):
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        """The AbortSignal controlled by this controller."""
        return self._signal

    def abort(self, reason: str | None = None) -> None:
        """Abort all operations using this controller's signal."""
        self._signal._abort(reason)
