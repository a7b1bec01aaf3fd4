from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class GamePhase(str, Enum):
    IDLE = "idle"
    ROUND_IN_PROGRESS = "round_in_progress"
    WAIT_FOR_NEXT_ROUND = "wait_for_next_round"
    ANNOUNCE_WINNER = "announce_winner"


# Room-state event names
GE_IDLE = "GE_IDLE"
GE_NEW_GAME = "GE_NEW_GAME"
GE_NEW_ROUND = "GE_NEW_ROUND"
GE_WAIT_FOR_NEXT_ROUND = "GE_WAIT_FOR_NEXT_ROUND"
GE_ANNOUNCE_WINNER = "GE_ANNOUNCE_WINNER"


@dataclass
class Participant:
    id: str
    name: str
    score: int = 0
    found_word: bool = False
    is_drawing: bool = False

    def clear_round_info(self) -> None:
        self.found_word = False
        self.is_drawing = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "roundInfo": {"foundWord": self.found_word, "isDrawing": self.is_drawing},
        }


@dataclass(frozen=True)
class NewGamePayload:
    round_duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"roundDuration": self.round_duration_ms}


@dataclass(frozen=True)
class NewRoundPayload:
    rounds_left: int
    total_rounds: int
    drawer: Participant | None
    round_start_timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "roundsLeft": self.rounds_left,
            "totalRounds": self.total_rounds,
            "drawer": {"id": self.drawer.id, "name": self.drawer.name} if self.drawer else None,
            "roundStartTimestamp": self.round_start_timestamp,
        }


@dataclass(frozen=True)
class WaitForNextRoundPayload:
    previous_word: str | None
    rounds_left: int
    total_rounds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "previousWord": self.previous_word,
            "roundsLeft": self.rounds_left,
            "totalRounds": self.total_rounds,
        }


@dataclass(frozen=True)
class AnnounceWinnerPayload:
    previous_word: str | None
    winners: list[Participant] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "previousWord": self.previous_word,
            "winners": [w.to_dict() for w in self.winners] if self.winners is not None else None,
        }


PhasePayload = Union[NewGamePayload, NewRoundPayload, WaitForNextRoundPayload, AnnounceWinnerPayload]
