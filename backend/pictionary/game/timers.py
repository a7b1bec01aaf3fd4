from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Protocol

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback. Cancelling twice, or after it fired, is a no-op."""

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler(Protocol):
    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle: ...


class SocketIOScheduler:
    """Runs each timer as a Socket.IO background task.

    Works with whatever async mode the server picked (eventlet or threading)
    because sleeping goes through ``socketio.sleep``.
    """

    def __init__(self, socketio: SocketIO):
        self._socketio = socketio

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def _runner() -> None:
            self._socketio.sleep(delay_sec)
            if handle.cancelled:
                return
            try:
                callback()
            except Exception:
                logger.exception("Timer callback failed")

        self._socketio.start_background_task(_runner)
        return handle


class ArmedTimer:
    """At most one pending callback per timer family.

    ``arm`` cancels the previous arm first. The callback runs under ``lock``
    and only if this arm is still the current one, so a timer that woke up
    just as it was cancelled never mutates the room.
    """

    def __init__(self, name: str, scheduler: Scheduler, lock: RLock):
        self.name = name
        self._scheduler = scheduler
        self._lock = lock
        self._handle: TimerHandle | None = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay_sec: float, callback: Callable[[], None]) -> None:
        with self._lock:
            self.cancel()
            generation = self._generation
            logger.debug("Arming %s timer for %ss", self.name, delay_sec)
            self._handle = self._scheduler.call_later(
                delay_sec, lambda: self._fire(generation, callback)
            )

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._handle is not None:
                logger.debug("Cancelling %s timer", self.name)
                self._handle.cancel()
                self._handle = None

    def _fire(self, generation: int, callback: Callable[[], None]) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._handle = None
            self._generation += 1
            callback()
