"""Cancellable single-shot timer used to debounce filter-bar input."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], Any]], TimerHandle]


class DebounceTimer:
    """At most one pending callback; arming it again cancels the previous one.

    Args:
        scheduler: ``scheduler(delay_seconds, callback) -> handle`` where
            ``handle.cancel()`` drops the callback.  Defaults to the running
            asyncio loop's ``call_later``.  Without a running loop the
            callback is held until :meth:`flush` runs it.
    """

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None
        self._callback: Callable[[], None] | None = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def start(self, delay_ms: float, callback: Callable[[], Any]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            self._callback = None
            callback()

        self._callback = fire
        if self._scheduler is not None:
            self._handle = self._scheduler(delay_ms / 1000, fire)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, holding debounced input until flush()")
            return
        self._handle = loop.call_later(delay_ms / 1000, fire)

    def flush(self) -> None:
        """Run the pending callback now, if there is one."""
        callback = self._callback
        if callback is None:
            return
        if self._handle is not None:
            self._handle.cancel()
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._callback = None
