from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable

from ..config import Config
from .loop import RoomBroadcaster, RoomGameLoop
from .timers import Scheduler
from .words import StaticWordSupplier, WordSupplier

logger = logging.getLogger(__name__)


_lock = RLock()
_rooms: dict[str, RoomGameLoop] = {}


def create_room(
    code: str,
    broadcaster: RoomBroadcaster,
    scheduler: Scheduler,
    words: WordSupplier | None = None,
    settings: Any = Config,
) -> RoomGameLoop:
    with _lock:
        if code in _rooms:
            return _rooms[code]

        room = RoomGameLoop(
            room_code=code,
            broadcaster=broadcaster,
            words=words or StaticWordSupplier(),
            scheduler=scheduler,
            round_duration_sec=_setting(settings, "ROUND_DURATION_SEC"),
            next_round_delay_sec=_setting(settings, "NEXT_ROUND_DELAY_SEC"),
            winner_announcement_sec=_setting(settings, "WINNER_ANNOUNCEMENT_SEC"),
            all_found_grace_sec=_setting(settings, "ALL_FOUND_GRACE_SEC"),
        )
        _rooms[code] = room
        logger.info("Created room %s", code)
        return room


def get_or_create_room(
    code: str,
    broadcaster_factory: Callable[[str], RoomBroadcaster],
    scheduler: Scheduler,
    words: WordSupplier | None = None,
    settings: Any = Config,
) -> RoomGameLoop:
    with _lock:
        room = _rooms.get(code)
        if room is None:
            room = create_room(code, broadcaster_factory(code), scheduler, words=words, settings=settings)
        return room


def get_room(code: str) -> RoomGameLoop | None:
    with _lock:
        return _rooms.get(code)


def delete_room(code: str) -> bool:
    with _lock:
        room = _rooms.pop(code, None)
    if room is None:
        return False
    room.shutdown()
    logger.info("Deleted room %s", code)
    return True


def list_rooms() -> list[RoomGameLoop]:
    with _lock:
        return list(_rooms.values())


def reset() -> None:
    """Drop every room, cancelling their timers."""
    for room in list_rooms():
        delete_room(room.room_code)


def room_public_state(room: RoomGameLoop) -> dict:
    # Never expose the active word here.
    with room._lock:
        drawer = room.current_drawer()
        return {
            "code": room.room_code,
            "phase": room.phase.value,
            "players": [p.to_dict() for p in room.participants],
            "drawerId": drawer.id if drawer else None,
            "roundsLeft": room.rounds_left,
            "totalRounds": room.total_rounds,
            "roundStartTimestamp": room.round_start_timestamp or None,
            "roundDurationSec": room.round_duration_sec,
            "previousWord": room.previous_word,
        }


def room_summary(room: RoomGameLoop) -> dict:
    with room._lock:
        return {"code": room.room_code, "phase": room.phase.value, "players": len(room.participants)}


def _setting(settings: Any, key: str) -> Any:
    if isinstance(settings, dict):
        return settings.get(key, getattr(Config, key))
    return getattr(settings, key, getattr(Config, key))
