from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from flask_socketio import SocketIO

from ..game.models import Participant, PhasePayload

logger = logging.getLogger(__name__)


class SocketIORoomBroadcaster:
    """Sends one room's game notices over Socket.IO.

    Room-wide notices go to the Socket.IO room named after the room code.
    Private notices go to the participant's latest socket id.
    """

    def __init__(self, socketio: SocketIO, room_code: str):
        self.socketio = socketio
        self.room_code = room_code
        self._lock = RLock()
        self._sockets: dict[str, Any] = {}

    def update_participant_socket(self, participant_id: str, socket_id: Any) -> None:
        with self._lock:
            if socket_id is None:
                self._sockets.pop(participant_id, None)
            else:
                self._sockets[participant_id] = socket_id

    def socket_for(self, participant_id: str) -> Any:
        with self._lock:
            return self._sockets.get(participant_id)

    def broadcast_room_state(self, event: str, payload: PhasePayload | None = None) -> None:
        self.socketio.emit("game:state", self._state_message(event, payload), to=self.room_code)
        logger.debug("Room %s: broadcast %s", self.room_code, event)

    def send_room_state_to_player(
        self, participant_id: str, event: str, payload: PhasePayload | None = None
    ) -> None:
        sid = self.socket_for(participant_id)
        if sid is None:
            logger.debug("Room %s: no socket for %s, dropping %s", self.room_code, participant_id, event)
            return
        self.socketio.emit("game:state", self._state_message(event, payload), to=sid)

    def broadcast_scores(self, roster: list[Participant]) -> None:
        self.socketio.emit(
            "game:scores",
            {"roomCode": self.room_code, "players": [p.to_dict() for p in roster]},
            to=self.room_code,
        )

    def broadcast_last_guess(self, guesser_id: str, text: str, was_correct: bool) -> None:
        self.socketio.emit(
            "game:last_guess",
            {"roomCode": self.room_code, "from": guesser_id, "text": text, "correct": was_correct},
            to=self.room_code,
        )

    def send_word_to_player(self, participant_id: str, word: str) -> None:
        sid = self.socket_for(participant_id)
        if sid is None:
            logger.warning("Room %s: drawer %s has no socket, word not delivered", self.room_code, participant_id)
            return
        self.socketio.emit("game:word", {"roomCode": self.room_code, "word": word}, to=sid)

    def _state_message(self, event: str, payload: PhasePayload | None) -> dict:
        return {
            "roomCode": self.room_code,
            "event": event,
            "payload": payload.to_dict() if payload is not None else None,
        }
