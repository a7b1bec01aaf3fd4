from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from flask import current_app, request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..config import Config
from ..game import service
from ..game.loop import now_ms
from ..game.timers import Scheduler, SocketIOScheduler
from .broadcaster import SocketIORoomBroadcaster

logger = logging.getLogger(__name__)


_room_tasks: dict[str, bool] = {}

# socket id -> {room code: participant id}
_memberships_lock = RLock()
_memberships: dict[str, dict[str, str]] = {}


def _validate_name(name: str) -> bool:
    n = (name or "").strip()
    if not n:
        return False
    if len(n) > 32:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def _participant_for(sid: str, room_code: str) -> str | None:
    with _memberships_lock:
        return _memberships.get(sid, {}).get(room_code)


def _other_socket_for(sid: str, room_code: str, participant_id: str) -> str | None:
    """Another live socket on which the participant is in the room, if any."""
    with _memberships_lock:
        for other_sid, joined in _memberships.items():
            if other_sid != sid and joined.get(room_code) == participant_id:
                return other_sid
    return None


def _release_participant(sid: str, room_code: str, participant_id: str) -> None:
    """Drop the participant unless it is still in the room on another socket."""
    room = service.get_room(room_code)
    if not room:
        return
    other_sid = _other_socket_for(sid, room_code, participant_id)
    if other_sid:
        room.update_participant_socket(participant_id, other_sid)
    else:
        room.remove_participant(participant_id)


def reset_memberships() -> None:
    with _memberships_lock:
        _memberships.clear()
    _room_tasks.clear()


def _ensure_room_task(socketio: SocketIO, room_code: str, settings: Any) -> None:
    if settings.get("TESTING", False):
        return
    if _room_tasks.get(room_code):
        return
    _room_tasks[room_code] = True

    interval = float(settings.get("TICK_INTERVAL_SEC", Config.TICK_INTERVAL_SEC))
    empty_ttl_ms = int(settings.get("EMPTY_ROOM_TTL_SEC", Config.EMPTY_ROOM_TTL_SEC)) * 1000

    def _runner() -> None:
        empty_since: int | None = None
        while True:
            room = service.get_room(room_code)
            if not room:
                _room_tasks.pop(room_code, None)
                break

            now = now_ms()

            # Auto-destroy empty room after TTL
            if not room.participants:
                if empty_since is None:
                    empty_since = now
                elif now - empty_since >= empty_ttl_ms:
                    # Flag goes before the room so a racing join starts its own runner.
                    _room_tasks.pop(room_code, None)
                    service.delete_room(room_code)
                    break
            else:
                empty_since = None

            try:
                room.tick()
            except Exception:
                logger.exception("Room %s: tick failed", room_code)

            socketio.emit("server:time", {"roomCode": room_code, "nowMs": now}, to=room_code)
            socketio.sleep(interval)

        logger.info("Room %s: tick runner stopped", room_code)

    socketio.start_background_task(_runner)


def register_socketio_handlers(socketio: SocketIO, scheduler: Scheduler | None = None) -> None:
    scheduler = scheduler or SocketIOScheduler(socketio)

    @socketio.on("room:join")
    def room_join(data):
        payload = data or {}
        settings = current_app.config
        room_code = str(payload.get("roomCode") or settings.get("DEFAULT_ROOM", Config.DEFAULT_ROOM)).strip()
        user = payload.get("user") if isinstance(payload.get("user"), dict) else {}
        participant_id = str(user.get("id", "")).strip()
        name = str(user.get("name", "")).strip()

        if not room_code or not participant_id or not _validate_name(name):
            emit("room:error", {"error": "invalid_payload"})
            return {"ok": False, "error": "invalid_payload"}

        room = service.get_or_create_room(
            room_code,
            lambda code: SocketIORoomBroadcaster(socketio, code),
            scheduler,
            settings=settings,
        )

        join_room(room_code)
        with _memberships_lock:
            joined = _memberships.setdefault(request.sid, {})
            previous_id = joined.get(room_code)
            joined[room_code] = participant_id
        # One socket holds one identity per room.
        if previous_id and previous_id != participant_id:
            _release_participant(request.sid, room_code, previous_id)

        room.add_participant(participant_id, name, request.sid)
        _ensure_room_task(socketio, room_code, settings)
        return {"ok": True, "roomCode": room_code}

    @socketio.on("room:leave")
    def room_leave(data):
        payload = data or {}
        room_code = str(payload.get("roomCode", "")).strip()
        if not room_code:
            return

        room = service.get_room(room_code)
        if not room:
            return

        leave_room(room_code)
        with _memberships_lock:
            participant_id = _memberships.get(request.sid, {}).pop(room_code, None)
        if participant_id:
            _release_participant(request.sid, room_code, participant_id)

    @socketio.on("guess:submit")
    def guess_submit(data):
        payload = data or {}
        room_code = str(payload.get("roomCode", "")).strip()
        text = str(payload.get("text", ""))
        if not room_code or not text.strip():
            return

        room = service.get_room(room_code)
        if not room:
            emit("room:error", {"error": "room_not_found"})
            return

        participant_id = _participant_for(request.sid, room_code)
        if not participant_id:
            emit("room:error", {"error": "not_in_room"})
            return

        room.submit_guess(participant_id, text)

    @socketio.on("draw:stroke")
    def draw_stroke(data):
        payload = data or {}
        room_code = str(payload.get("roomCode", "")).strip()
        if not room_code or not _participant_for(request.sid, room_code):
            return

        emit("draw:stroke", payload, to=room_code, include_self=False)

    @socketio.on("draw:clear")
    def draw_clear(data):
        payload = data or {}
        room_code = str(payload.get("roomCode", "")).strip()
        if not room_code or not _participant_for(request.sid, room_code):
            return

        # Broadcast to everyone in the room, including the sender.
        emit("draw:clear", {"roomCode": room_code}, to=room_code)

    @socketio.on("disconnect")
    def on_disconnect(*args):
        with _memberships_lock:
            rooms = _memberships.pop(request.sid, {})
        for room_code, participant_id in rooms.items():
            _release_participant(request.sid, room_code, participant_id)
