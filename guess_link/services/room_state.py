# guess_link/services/room_state.py
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from guess_link.core.config import Settings, settings
from guess_link.core.exceptions import RoomFull, UsernameTaken
from guess_link.models.enums import RoomStatus, RoundEndReason
from guess_link.models.events import GameEvent
from guess_link.models.game import (
    CurrentRoundPublic, GameOverSummary, GuessRecord, ImageSetPublic,
    JoinResult, PlayerState, RoomSnapshot,
)
from guess_link.models.validation import GuessValidationResult
from guess_link.core.normalization import normalize_guess
from guess_link.services.guess_validator import GuessValidator
from guess_link.services.round_catalog import RoundCatalog
from guess_link.services.scoring import calculate_round_score

logger = logging.getLogger("guess_link.services.room_state")  # Logger for this module


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError: # No running loop
        return None


class Room:
    """
    State machine for one game session:
    waiting -> playing -> cooldown -> playing -> ... -> finished.

    All mutations are plain synchronous methods, so each one runs to completion
    on the event loop without interleaving. The countdown and the pause between
    rounds share a single task handle, which is always cancelled before a new
    one is scheduled.
    """

    def __init__(
        self,
        room_code: str,
        catalog: RoundCatalog,
        validator: GuessValidator | None = None,
        config: Settings = settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.room_code = room_code
        self.catalog = catalog
        self.validator = validator or GuessValidator.from_settings(config)
        self.config = config
        self._clock = clock

        self.max_players = config.MAX_PLAYERS_PER_ROOM
        self.min_players = config.MIN_PLAYERS_TO_START
        self.max_rounds = config.MAX_ROUNDS

        self.players: Dict[str, PlayerState] = {} # insertion order == join order
        self.guess_records: Dict[str, GuessRecord] = {}
        self.status = RoomStatus.WAITING
        self.round_index = 0
        self.time_left = config.ROUND_TIMER_SECONDS
        self.current_image_set: Optional[ImageSetPublic] = None
        self.game_over_summary: Optional[GameOverSummary] = None

        self.created_at = time.time()
        self.last_activity = self.created_at
        self._timer_task: Optional[asyncio.Task] = None

    # --- Introspection ---

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def active_timer_count(self) -> int:
        return 1 if self._timer_task is not None and not self._timer_task.done() else 0

    def snapshot(self) -> RoomSnapshot:
        current_round = None
        if self.current_image_set and self.status in (RoomStatus.PLAYING, RoomStatus.COOLDOWN):
            current_round = CurrentRoundPublic(
                images=list(self.current_image_set.images),
                hint=self.current_image_set.hint,
                category=self.current_image_set.category,
            )
        players = [player.to_public() for player in self.players.values()]
        return RoomSnapshot(
            room_code=self.room_code,
            status=self.status,
            round=self.round_index,
            max_rounds=self.max_rounds,
            time_left=self.time_left,
            players=players,
            total_score=sum(player.score for player in players),
            current_round=current_round,
            game_over=self.game_over_summary,
        )

    # --- Messaging ---

    def broadcast(self, event: GameEvent, exclude_player_id: str | None = None):
        message = event.to_dict()
        for player_id, player in list(self.players.items()):
            if player_id != exclude_player_id:
                self._deliver(player, message)

    def notify(self, player_id: str, event: GameEvent):
        """Private message to one member; never widened to the rest of the room."""
        player = self.players.get(player_id)
        if player:
            self._deliver(player, event.to_dict())

    def broadcast_state(self):
        self.broadcast(GameEvent("gameState", self.snapshot().model_dump(by_alias=True, mode="json")))

    def _deliver(self, player: PlayerState, message: Dict[str, Any]):
        if player.connection is None:
            return
        if not player.connection.send(message):
            logger.warning(f"R:{self.room_code} - Could not queue '{message.get('type')}' for P:{player.id}.")

    # --- Membership ---

    def ensure_can_join(self, username: str):
        """Raises RoomFull or UsernameTaken without touching the room."""
        if len(self.players) >= self.max_players:
            raise RoomFull(f"Room {self.room_code} is full")
        if any(player.username == username for player in self.players.values()):
            raise UsernameTaken(f"Username '{username}' is already taken in room {self.room_code}")

    def add_player(self, player_id: str, username: str, connection: Any) -> JoinResult:
        self.ensure_can_join(username)

        self.players[player_id] = PlayerState(id=player_id, username=username, score=0, connection=connection)
        self.guess_records[player_id] = GuessRecord(player_id=player_id)
        self._touch()
        logger.info(f"R:{self.room_code} - P:{player_id} joined as '{username}'. Players: {len(self.players)}/{self.max_players}")

        self.broadcast_state()
        if self.status == RoomStatus.WAITING and len(self.players) >= self.min_players:
            logger.info(f"R:{self.room_code} - Minimum of {self.min_players} players reached. Starting game.")
            self._start_game()

        return JoinResult(room_code=self.room_code, player_id=player_id, username=username, status=self.status)

    def remove_player(self, player_id: str) -> bool:
        """Removes a member and returns True when the room is now empty."""
        player = self.players.pop(player_id, None)
        if player is None:
            return self.is_empty
        self.guess_records.pop(player_id, None)
        self._touch()
        logger.info(f"R:{self.room_code} - P:{player_id} ('{player.username}') left. Players: {len(self.players)}")

        if not self.players:
            self._cancel_timer()
            self._return_to_waiting()
            logger.info(f"R:{self.room_code} - Room is empty. Game stopped without a winner.")
            return True

        if len(self.players) < self.min_players:
            # The round halts instead of continuing with a reduced roster
            self._cancel_timer()
            self._return_to_waiting()
        self.broadcast_state()
        return False

    # --- Game lifecycle ---

    def reset_game(self):
        logger.info(f"R:{self.room_code} - Game reset requested (status: {self.status.value}).")
        self._cancel_timer()
        self._touch()
        if len(self.players) < self.min_players:
            for player in self.players.values():
                player.score = 0
            self._return_to_waiting()
            self.broadcast_state()
            return
        self._start_game()

    def end_game(self) -> GameOverSummary:
        self._cancel_timer()
        players = list(self.players.values())
        winner = None
        is_tie = False
        if players:
            top_score = max(player.score for player in players)
            leaders = [player for player in players if player.score == top_score]
            if len(leaders) > 1:
                is_tie = True
            else:
                winner = leaders[0].to_public()

        self.game_over_summary = GameOverSummary(
            winner=winner,
            is_tie=is_tie,
            final_scores=[player.to_public() for player in players],
        )
        self.status = RoomStatus.FINISHED
        logger.info(f"R:{self.room_code} - Game over. Winner: {winner.username if winner else None}. Tie: {is_tie}")

        self.broadcast(GameEvent("gameOver", self.game_over_summary.model_dump(by_alias=True, mode="json")))
        self.broadcast_state()
        return self.game_over_summary

    def _start_game(self):
        self._cancel_timer()
        for player in self.players.values():
            player.score = 0
        self.round_index = 0
        self.guess_records = {}
        self.game_over_summary = None
        self._start_round()

    def _start_round(self):
        self._cancel_timer()
        self.round_index += 1
        self.current_image_set = self.catalog.next()
        self.guess_records = {player_id: GuessRecord(player_id=player_id) for player_id in self.players}
        self.time_left = self.config.ROUND_TIMER_SECONDS
        self.status = RoomStatus.PLAYING
        logger.info(f"R:{self.room_code} - Round {self.round_index}/{self.max_rounds} started with image set {self.current_image_set.id} ({self.catalog.remaining} unused left).")

        round_start_payload = {
            "round": self.round_index,
            "maxRounds": self.max_rounds,
            "timeLeft": self.time_left,
            "images": list(self.current_image_set.images),
            "hint": self.current_image_set.hint,
            "category": self.current_image_set.category,
        }
        self.broadcast(GameEvent("roundStart", round_start_payload))
        self.broadcast_state()
        self._schedule(self._run_countdown)

    def tick(self):
        """One countdown step. Ticks arriving outside ``playing`` are ignored."""
        if self.status != RoomStatus.PLAYING:
            logger.debug(f"R:{self.room_code} - Ignoring tick while '{self.status.value}'.")
            return
        self.time_left = max(0, self.time_left - 1)
        self.broadcast(GameEvent("timeUpdate", {"timeLeft": self.time_left}))
        if self.time_left <= 0:
            self._end_round(RoundEndReason.TIMEOUT)

    def _end_round(self, reason: RoundEndReason):
        if self.status != RoomStatus.PLAYING:
            return
        self._cancel_timer()
        self.status = RoomStatus.COOLDOWN
        logger.info(f"R:{self.room_code} - Round {self.round_index} ended ({reason.value}).")

        round_end_payload = {
            "round": self.round_index,
            "reason": reason.value,
            "correctAnswer": self.current_image_set.correct_answer if self.current_image_set else None,
            "category": self.current_image_set.category if self.current_image_set else None,
            "scores": [player.to_public().model_dump(by_alias=True) for player in self.players.values()],
        }
        self.broadcast(GameEvent("roundEnd", round_end_payload))
        self._schedule(self._run_cooldown)

    def advance_after_cooldown(self):
        """Called when the pause between rounds is over: next round, or game over after the last one."""
        if self.status != RoomStatus.COOLDOWN:
            logger.debug(f"R:{self.room_code} - Cooldown finished but status is '{self.status.value}'. Ignoring.")
            return
        if self.round_index >= self.max_rounds:
            self.end_game()
        else:
            self._start_round()

    def _return_to_waiting(self):
        self.status = RoomStatus.WAITING
        self.round_index = 0
        self.time_left = self.config.ROUND_TIMER_SECONDS
        self.current_image_set = None
        self.game_over_summary = None
        self.guess_records = {player_id: GuessRecord(player_id=player_id) for player_id in self.players}

    # --- Guesses ---

    def submit_guess(self, player_id: str, raw_guess: str):
        player = self.players.get(player_id)
        if self.status != RoomStatus.PLAYING or player is None:
            logger.debug(f"R:{self.room_code} - Guess from P:{player_id} ignored (status: {self.status.value}).")
            return
        self._touch()

        record = self.guess_records.setdefault(player_id, GuessRecord(player_id=player_id))
        now_ms = self._clock() * 1000

        validation = self.validator.validate(raw_guess)
        if not validation.is_valid:
            self._reject_guess(player_id, raw_guess, record, validation)
            return
        rate_limit = self.validator.check_rate_limit(record, now_ms, validation.normalized_guess)
        if not rate_limit.is_valid:
            self._reject_guess(player_id, raw_guess, record, rate_limit)
            return

        record.last_guess = validation.normalized_guess
        record.last_guess_timestamp_ms = now_ms
        record.guess_count += 1

        correct_answer = self.current_image_set.correct_answer
        if validation.normalized_guess == normalize_guess(correct_answer):
            score_for_round = calculate_round_score(self.time_left, record.guess_count, self.config)
            player.score += score_for_round
            logger.info(f"R:{self.room_code} - P:{player_id} guessed correctly on attempt {record.guess_count}. +{score_for_round} (total {player.score})")

            self.broadcast(GameEvent("correctGuess", {
                "playerId": player_id,
                "username": player.username,
                "scoreForRound": score_for_round,
                "totalScore": player.score,
                "correctLink": correct_answer,
                "attempts": record.guess_count,
            }))
            self.broadcast_state()
            self._end_round(RoundEndReason.CORRECT_GUESS)
            return

        attempts_remaining = self.validator.remaining_attempts(record)
        logger.debug(f"R:{self.room_code} - Incorrect guess by P:{player_id}. Attempts remaining: {attempts_remaining}")
        self.notify(player_id, GameEvent("incorrectGuess", {
            "guess": raw_guess,
            "message": f"Try again! ({attempts_remaining} attempts remaining)",
            "reason": "incorrect",
            "attemptsRemaining": attempts_remaining,
        }))

    def _reject_guess(self, player_id: str, raw_guess: str, record: GuessRecord, result: GuessValidationResult):
        logger.debug(f"R:{self.room_code} - Guess from P:{player_id} rejected: {result.reason.value}")
        payload = {
            "guess": raw_guess,
            "message": result.message,
            "reason": result.reason.value,
            "reasonCategory": result.reason.category,
            "attemptsRemaining": self.validator.remaining_attempts(record),
        }
        if result.retry_after_ms is not None:
            payload["retryAfterMs"] = result.retry_after_ms
        self.notify(player_id, GameEvent("incorrectGuess", payload))

    # --- Timers ---

    def _schedule(self, coroutine_function: Callable[[], Any]):
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer_task = loop.create_task(coroutine_function(), name=f"room-{self.room_code}-{coroutine_function.__name__}")

    def _cancel_timer(self):
        task, self._timer_task = self._timer_task, None
        if task is None or task.done():
            return
        # A timer ending its own round only drops its handle; it returns right after
        if task is not _current_task():
            task.cancel()
            logger.debug(f"R:{self.room_code} - Timer task cancelled.")

    async def _run_countdown(self):
        try:
            while self.status == RoomStatus.PLAYING:
                await asyncio.sleep(self.config.ROUND_TICK_SECONDS)
                self.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"R:{self.room_code} - Error in round countdown: {e}")

    async def _run_cooldown(self):
        try:
            await asyncio.sleep(self.config.ROUND_COOLDOWN_SECONDS)
            self.advance_after_cooldown()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"R:{self.room_code} - Error after round cooldown: {e}")

    def close(self):
        """Cancels any pending timer; used when the room is discarded."""
        self._cancel_timer()
        logger.debug(f"R:{self.room_code} - Room closed.")

    def _touch(self):
        self.last_activity = time.time()
