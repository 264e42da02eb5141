"""
Schedulers that feed the sequence engine's clock.

The engine never sleeps or spawns anything itself.  It is handed a scheduler
with ``schedule(delay_ms, callback) -> handle`` and ``cancel(handle)``; a Tk
root (``after`` / ``after_cancel``) fits through :class:`TkScheduler`, and
:class:`TimerScheduler` covers headless use.
"""

import threading
from typing import Callable, Protocol


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: Callable[[], None]):
        ...

    def cancel(self, handle) -> None:
        ...


class TkScheduler:
    """Adapter over any widget exposing ``after`` / ``after_cancel``."""

    def __init__(self, widget) -> None:
        self._widget = widget

    def schedule(self, delay_ms: int, callback: Callable[[], None]):
        return self._widget.after(delay_ms, callback)

    def cancel(self, handle) -> None:
        self._widget.after_cancel(handle)


class TimerScheduler:
    """``threading.Timer`` based scheduler; callbacks run on daemon threads."""

    def __init__(self) -> None:
        self._timers: set = set()
        self._lock = threading.Lock()

    def schedule(self, delay_ms: int, callback: Callable[[], None]):
        holder: list = []

        def run() -> None:
            with self._lock:
                self._timers.discard(holder[0])
            callback()

        timer = threading.Timer(delay_ms / 1000.0, run)
        timer.daemon = True
        holder.append(timer)
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def cancel(self, handle) -> None:
        handle.cancel()
        with self._lock:
            self._timers.discard(handle)

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._timers)


class RepeatingTask:
    """Re-arm *callback* every *interval_ms* on *scheduler* until stopped.

    A generation counter guards each firing, so a callback already queued when
    ``stop()`` runs does nothing.  Arming and stopping share a lock; a firing
    that re-arms after ``stop()`` slipped in cancels its own new handle.
    """

    def __init__(self, scheduler: Scheduler, interval_ms: int,
                 callback: Callable[[int], None]) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._scheduler = scheduler
        self._interval_ms = interval_ms
        self._callback = callback
        self._handle = None
        self._gen = 0
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        with self._lock:
            if self._handle is not None:
                return
            self._arm(self._gen)

    def _arm(self, gen: int) -> None:
        self._handle = self._scheduler.schedule(
            self._interval_ms, lambda: self._fire(gen))

    def _fire(self, gen: int) -> None:
        with self._lock:
            if gen != self._gen or self._handle is None:
                return
            self._arm(gen)
            if gen != self._gen:
                # stop() ran while the scheduler was arming.
                handle, self._handle = self._handle, None
                if handle is not None:
                    self._scheduler.cancel(handle)
                return
        self._callback(self._interval_ms)

    def stop(self) -> None:
        with self._lock:
            self._gen += 1
            handle, self._handle = self._handle, None
        if handle is not None:
            self._scheduler.cancel(handle)
