"""
Global pytest configuration and fixtures.
Provides a deterministic scheduler and game loop fixtures for the tests.
"""

import heapq
import itertools
from unittest.mock import Mock

import pytest

from pictionary.config import Config
from pictionary.game import service
from pictionary.game.loop import RoomGameLoop
from pictionary.game.timers import TimerHandle
from pictionary.game.words import StaticWordSupplier
from pictionary.realtime import handlers


class ManualScheduler:
    """Scheduler driven by virtual time; nothing fires until ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay_sec, callback):
        handle = TimerHandle()
        heapq.heappush(self._queue, (self.now + delay_sec, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self):
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds):
        target = self.now + seconds
        # Tolerate float drift from repeated small advances.
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                callback()
        self.now = target

    def clock_ms(self):
        return int(self.now * 1000)


class TestConfig(Config):
    TESTING = True
    TRUST_PROXY_HEADERS = False


@pytest.fixture(autouse=True)
def reset_rooms():
    """Each test starts without rooms or socket memberships."""
    service.reset()
    handlers.reset_memberships()
    yield
    service.reset()
    handlers.reset_memberships()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def broadcaster():
    return Mock()


@pytest.fixture
def words():
    return StaticWordSupplier(
        {
            "easy": ["cat", "dog", "sun", "tree", "fish", "ball", "moon", "star", "hat", "cup"],
            "medium": ["guitar", "castle", "rocket", "pirate", "ladder", "camera"],
            "hard": ["gravity", "eclipse", "orbit", "echo", "illusion", "friction"],
        }
    )


@pytest.fixture
def make_loop(broadcaster, words, scheduler):
    def _make(participants=0, **kwargs):
        loop = RoomGameLoop(
            room_code="main",
            broadcaster=broadcaster,
            words=words,
            scheduler=scheduler,
            clock=scheduler.clock_ms,
            **kwargs,
        )
        for i in range(participants):
            loop.add_participant(f"user{i}", f"User {i}", f"sid{i}")
        return loop

    return _make


@pytest.fixture
def app_and_socketio(scheduler):
    from pictionary.server import create_app

    return create_app(TestConfig, scheduler=scheduler)


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture
def client(app):
    return app.test_client()
