from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Any, Callable, Protocol

from ..config import Config
from .models import (
    GE_ANNOUNCE_WINNER,
    GE_IDLE,
    GE_NEW_GAME,
    GE_NEW_ROUND,
    GE_WAIT_FOR_NEXT_ROUND,
    AnnounceWinnerPayload,
    GamePhase,
    NewGamePayload,
    NewRoundPayload,
    Participant,
    PhasePayload,
    WaitForNextRoundPayload,
)
from .timers import ArmedTimer, Scheduler
from .words import DIFFICULTIES, Difficulty, WordSupplier

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2

# Rounds per game by roster size at game start; other sizes play one round each.
ROUNDS_BY_ROSTER_SIZE = {2: 8, 3: 9, 4: 8, 5: 10, 6: 12, 7: 14}

FIRST_GUESS_POINTS = 10
MIN_GUESS_POINTS = 5
DRAWER_POINTS = 3


def now_ms() -> int:
    return int(time.time() * 1000)


class RoomBroadcaster(Protocol):
    def broadcast_room_state(self, event: str, payload: PhasePayload | None = None) -> None: ...

    def send_room_state_to_player(
        self, participant_id: str, event: str, payload: PhasePayload | None = None
    ) -> None: ...

    def broadcast_scores(self, roster: list[Participant]) -> None: ...

    def broadcast_last_guess(self, guesser_id: str, text: str, was_correct: bool) -> None: ...

    def send_word_to_player(self, participant_id: str, word: str) -> None: ...

    def update_participant_socket(self, participant_id: str, socket_id: Any) -> None: ...


def rounds_for_roster(size: int) -> int:
    return ROUNDS_BY_ROSTER_SIZE.get(size, size)


def difficulty_for_progress(rounds_left: int, total_rounds: int) -> Difficulty:
    if total_rounds <= 0:
        return "easy"
    progress = 1 - (rounds_left / total_rounds)
    if progress > 0.66:
        return "hard"
    if progress > 0.33:
        return "medium"
    return "easy"


def guess_points(correct_guess_count: int) -> int:
    return max(MIN_GUESS_POINTS, FIRST_GUESS_POINTS - correct_guess_count)


def compute_winners(roster: list[Participant]) -> list[Participant] | None:
    """Everyone tied at the top score, or None when nobody scored."""
    if not roster:
        return None
    high_score = max(p.score for p in roster)
    if high_score <= 0:
        return None
    return [p for p in roster if p.score == high_score]


class RoomGameLoop:
    """Game state machine for a single room.

    Transport handlers call ``add_participant``, ``remove_participant`` and
    ``submit_guess``; a scheduler calls ``tick`` about once a second. Every
    entry point and every timer callback runs under the room lock, so two
    mutations of the same room never interleave.
    """

    def __init__(
        self,
        room_code: str,
        broadcaster: RoomBroadcaster,
        words: WordSupplier,
        scheduler: Scheduler,
        round_duration_sec: float = Config.ROUND_DURATION_SEC,
        next_round_delay_sec: float = Config.NEXT_ROUND_DELAY_SEC,
        winner_announcement_sec: float = Config.WINNER_ANNOUNCEMENT_SEC,
        all_found_grace_sec: float = Config.ALL_FOUND_GRACE_SEC,
        clock: Callable[[], int] = now_ms,
    ):
        self.room_code = room_code
        self.round_duration_sec = round_duration_sec
        self.next_round_delay_sec = next_round_delay_sec
        self.winner_announcement_sec = winner_announcement_sec
        self.all_found_grace_sec = all_found_grace_sec

        self._broadcaster = broadcaster
        self._words = words
        self._clock = clock
        self._lock = RLock()

        self.phase = GamePhase.IDLE
        self.participants: list[Participant] = []
        self.total_rounds = 0
        self.rounds_left = 0
        self.current_word: str | None = None
        self.previous_word: str | None = None
        self.used_words: set[str] = set()
        self.current_drawer_index = 0
        self.current_drawer_id: str | None = None
        self.round_start_timestamp = 0
        self.correct_guess_count = 0
        self.winner_announcement_in_progress = False
        self._round_evaluated = True

        self._round_timer = ArmedTimer("round-expiry", scheduler, self._lock)
        self._grace_timer = ArmedTimer("all-found-grace", scheduler, self._lock)
        # Next-round delay and winner delay never overlap, so they share a family.
        self._phase_timer = ArmedTimer("phase-delay", scheduler, self._lock)

        self._broadcaster.broadcast_room_state(GE_IDLE)

    # Roster

    def get_participant(self, participant_id: str) -> Participant | None:
        with self._lock:
            return next((p for p in self.participants if p.id == participant_id), None)

    def add_participant(self, participant_id: str, name: str, socket_id: Any = None) -> Participant:
        with self._lock:
            participant = self.get_participant(participant_id)
            if participant is None:
                participant = Participant(id=participant_id, name=name)
                self.participants.append(participant)
                logger.info("Room %s: %s joined", self.room_code, participant_id)
            else:
                logger.debug("Room %s: %s is already in the room", self.room_code, participant_id)

            self._broadcaster.update_participant_socket(participant_id, socket_id)
            self._broadcaster.broadcast_scores(self.participants)
            event, payload = self.snapshot()
            self._broadcaster.send_room_state_to_player(participant_id, event, payload)
            return participant

    def remove_participant(self, participant_id: str) -> bool:
        with self._lock:
            participant = self.get_participant(participant_id)
            if participant is None:
                return False
            self.participants.remove(participant)
            logger.info("Room %s: %s left", self.room_code, participant_id)
            self._broadcaster.update_participant_socket(participant_id, None)
            self._broadcaster.broadcast_scores(self.participants)
            return True

    def update_participant_socket(self, participant_id: str, socket_id: Any) -> None:
        with self._lock:
            if self.get_participant(participant_id) is not None:
                self._broadcaster.update_participant_socket(participant_id, socket_id)

    def snapshot(self) -> tuple[str, PhasePayload | None]:
        """The phase notice a late joiner needs to render the room."""
        with self._lock:
            if self.phase == GamePhase.WAIT_FOR_NEXT_ROUND:
                return GE_WAIT_FOR_NEXT_ROUND, WaitForNextRoundPayload(
                    previous_word=self.previous_word,
                    rounds_left=self.rounds_left,
                    total_rounds=self.total_rounds,
                )
            if self.phase == GamePhase.ROUND_IN_PROGRESS:
                return GE_NEW_ROUND, self._new_round_payload(self.current_drawer())
            if self.phase == GamePhase.ANNOUNCE_WINNER:
                return GE_ANNOUNCE_WINNER, AnnounceWinnerPayload(
                    previous_word=self.previous_word,
                    winners=self.winners(),
                )
            return GE_IDLE, None

    def current_drawer(self) -> Participant | None:
        if self.current_drawer_id is None:
            return None
        return self.get_participant(self.current_drawer_id)

    # Periodic tick

    def tick(self) -> None:
        with self._lock:
            logger.debug("Room %s: tick in phase %s", self.room_code, self.phase.value)
            if self.phase == GamePhase.IDLE:
                if len(self.participants) >= MIN_PARTICIPANTS:
                    self._start_game()
            elif self.phase == GamePhase.ROUND_IN_PROGRESS:
                if len(self.participants) < MIN_PARTICIPANTS:
                    logger.info("Room %s: not enough participants, abandoning round", self.room_code)
                    self.stop_game()
            elif self.phase == GamePhase.ANNOUNCE_WINNER:
                if not self.winner_announcement_in_progress:
                    self._announce_winner()
            # WAIT_FOR_NEXT_ROUND is driven by its delay timer only.

    # Game lifecycle

    def _start_game(self) -> None:
        for participant in self.participants:
            participant.score = 0
        self.correct_guess_count = 0
        self.used_words = set()
        self.previous_word = None
        self.phase = GamePhase.ROUND_IN_PROGRESS

        self._broadcaster.broadcast_room_state(
            GE_NEW_GAME, NewGamePayload(round_duration_ms=int(self.round_duration_sec * 1000))
        )
        self._broadcaster.broadcast_scores(self.participants)

        self.total_rounds = rounds_for_roster(len(self.participants))
        self.rounds_left = self.total_rounds
        logger.info(
            "Room %s: new game with %d participants, %d rounds",
            self.room_code,
            len(self.participants),
            self.total_rounds,
        )
        self.start_round()

    def start_round(self) -> None:
        with self._lock:
            self._round_timer.cancel()
            self._grace_timer.cancel()
            self._phase_timer.cancel()

            for participant in self.participants:
                participant.clear_round_info()

            self.phase = GamePhase.ROUND_IN_PROGRESS
            self.round_start_timestamp = self._clock()
            self.correct_guess_count = 0
            self._round_evaluated = False
            self.current_word = None

            if not self.participants:
                logger.info("Room %s: nobody left to draw, skipping round", self.room_code)
                self.current_drawer_id = None
                self.evaluate_round()
                return

            self.current_drawer_index = (self.total_rounds - self.rounds_left) % len(self.participants)
            drawer = self.participants[self.current_drawer_index]
            self.current_drawer_id = drawer.id
            drawer.is_drawing = True
            self._broadcaster.broadcast_scores(self.participants)

            difficulty = difficulty_for_progress(self.rounds_left, self.total_rounds)
            logger.info(
                "Room %s: round %d/%d, drawer %s, difficulty %s",
                self.room_code,
                self.total_rounds - self.rounds_left + 1,
                self.total_rounds,
                drawer.id,
                difficulty,
            )
            self.current_word = self._select_word(difficulty)
            self._broadcaster.send_word_to_player(drawer.id, self.current_word)
            self._broadcaster.broadcast_room_state(GE_NEW_ROUND, self._new_round_payload(drawer))

            self._round_timer.arm(self.round_duration_sec, self.evaluate_round)

    def _select_word(self, difficulty: Difficulty) -> str:
        # Fall back to the other difficulties once a pool is used up so a
        # long game never spins on a fully used list.
        levels = [difficulty] + [d for d in DIFFICULTIES if d != difficulty]
        for level in levels:
            if not set(self._words.words_for(level)) - self.used_words:
                continue
            word = self._words.select_word(level)
            while word in self.used_words:
                word = self._words.select_word(level)
            self.used_words.add(word)
            return word

        logger.warning("Room %s: every word has been used this game, allowing a repeat", self.room_code)
        return self._words.select_word(difficulty)

    def _new_round_payload(self, drawer: Participant | None) -> NewRoundPayload:
        return NewRoundPayload(
            rounds_left=self.rounds_left,
            total_rounds=self.total_rounds,
            drawer=drawer,
            round_start_timestamp=self.round_start_timestamp,
        )

    def evaluate_round(self) -> None:
        with self._lock:
            if self._round_evaluated or self.phase != GamePhase.ROUND_IN_PROGRESS:
                return
            self._round_evaluated = True
            self._round_timer.cancel()
            self._grace_timer.cancel()

            self.rounds_left = max(0, self.rounds_left - 1)
            self.previous_word = self.current_word
            self.current_word = None
            for participant in self.participants:
                participant.is_drawing = False

            if self.rounds_left <= 0:
                self.stop_game()
                return

            self.phase = GamePhase.WAIT_FOR_NEXT_ROUND
            logger.info("Room %s: round over, %d left", self.room_code, self.rounds_left)
            self._broadcaster.broadcast_room_state(
                GE_WAIT_FOR_NEXT_ROUND,
                WaitForNextRoundPayload(
                    previous_word=self.previous_word,
                    rounds_left=self.rounds_left,
                    total_rounds=self.total_rounds,
                ),
            )
            self._phase_timer.arm(self.next_round_delay_sec, self._after_round_delay)

    def _after_round_delay(self) -> None:
        if self.phase != GamePhase.WAIT_FOR_NEXT_ROUND:
            return
        if len(self.participants) >= MIN_PARTICIPANTS:
            self.start_round()
        else:
            logger.info("Room %s: participants left before the next round", self.room_code)
            self.stop_game()

    def stop_game(self) -> None:
        with self._lock:
            self.cancel_timers()
            if self.current_word is not None:
                self.previous_word = self.current_word
                self.current_word = None
            for participant in self.participants:
                participant.is_drawing = False
            self._round_evaluated = True
            self.winner_announcement_in_progress = False
            self.phase = GamePhase.ANNOUNCE_WINNER
            logger.info("Room %s: game over, announcing winner", self.room_code)

    def _announce_winner(self) -> None:
        winners = self.winners()
        logger.info(
            "Room %s: winners %s", self.room_code, [w.id for w in winners] if winners else None
        )
        self._broadcaster.broadcast_room_state(
            GE_ANNOUNCE_WINNER,
            AnnounceWinnerPayload(previous_word=self.previous_word, winners=winners),
        )
        self.rounds_left = 0
        self.total_rounds = 0
        self.current_word = None
        self.used_words = set()
        self.current_drawer_index = 0
        self.current_drawer_id = None
        self.winner_announcement_in_progress = True
        self._phase_timer.arm(self.winner_announcement_sec, self._back_to_idle)

    def _back_to_idle(self) -> None:
        self.phase = GamePhase.IDLE
        self.winner_announcement_in_progress = False
        self._broadcaster.broadcast_room_state(GE_IDLE)

    def winners(self) -> list[Participant] | None:
        with self._lock:
            return compute_winners(self.participants)

    # Guesses

    def submit_guess(self, participant_id: str, text: str | None) -> None:
        with self._lock:
            if not text or not text.strip():
                return
            if self.phase != GamePhase.ROUND_IN_PROGRESS or self.current_word is None:
                return

            guesser = self.get_participant(participant_id)
            if guesser is None:
                logger.debug("Room %s: guess from unknown participant %s", self.room_code, participant_id)
                return

            if text.strip().lower() != self.current_word.strip().lower():
                self._broadcaster.broadcast_last_guess(participant_id, text, False)
                return

            if guesser.id == self.current_drawer_id or guesser.found_word:
                return

            logger.debug("Room %s: correct guess by %s", self.room_code, participant_id)
            guesser.score += guess_points(self.correct_guess_count)
            guesser.found_word = True
            self.correct_guess_count += 1

            drawer = self.current_drawer()
            if drawer is not None:
                drawer.score += DRAWER_POINTS

            self._broadcaster.broadcast_scores(self.participants)
            self._broadcaster.broadcast_last_guess(participant_id, text, True)

            if self.has_everyone_found_the_word():
                self._grace_timer.arm(self.all_found_grace_sec, self._end_round_early)

    def has_everyone_found_the_word(self) -> bool:
        return self.correct_guess_count >= len(self.participants) - 1

    def _end_round_early(self) -> None:
        self._round_timer.cancel()
        self.evaluate_round()

    # Teardown

    def cancel_timers(self) -> None:
        with self._lock:
            self._round_timer.cancel()
            self._grace_timer.cancel()
            self._phase_timer.cancel()

    def shutdown(self) -> None:
        """Drop every pending timer; the room is being discarded."""
        self.cancel_timers()
        logger.info("Room %s: shut down", self.room_code)
