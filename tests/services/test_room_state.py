# tests/services/test_room_state.py
import asyncio
import pytest

from guess_link.core.config import Settings
from guess_link.core.exceptions import RoomFull, UsernameTaken
from guess_link.models.enums import RoomStatus
from tests.services.fakes import FakeConnection

# --- Helpers ---
def _join_two(room):
    p1, p2 = FakeConnection(), FakeConnection()
    room.add_player("p1", "Alice", p1)
    room.add_player("p2", "Bob", p2)
    return p1, p2

def _run_out_the_clock(room):
    for _ in range(room.time_left):
        room.tick()


async def test_single_player_waits(make_room):
    room = make_room()
    conn = FakeConnection()
    result = room.add_player("p1", "Alice", conn)

    assert result.status == RoomStatus.WAITING
    assert room.active_timer_count == 0
    state = conn.last("gameState")["payload"]
    assert state["status"] == "waiting"
    assert state["roomCode"] == "ABC123"
    assert [p["username"] for p in state["players"]] == ["Alice"]

async def test_second_player_starts_first_round(make_room):
    room = make_room()
    p1, p2 = _join_two(room)

    assert room.status == RoomStatus.PLAYING
    assert room.round_index == 1
    assert room.active_timer_count == 1
    for conn in (p1, p2):
        round_start = conn.last("roundStart")["payload"]
        assert round_start["round"] == 1
        assert round_start["maxRounds"] == 3
        assert round_start["timeLeft"] == 20
        assert len(round_start["images"]) == 3
        assert round_start["hint"] == "Think about the outdoors"
        assert "correctAnswer" not in round_start

async def test_room_full(make_room):
    room = make_room()
    _join_two(room)
    with pytest.raises(RoomFull):
        room.add_player("p3", "Carol", FakeConnection())
    assert len(room.players) == 2

async def test_username_taken(make_room):
    room = make_room()
    room.add_player("p1", "Alice", FakeConnection())
    with pytest.raises(UsernameTaken):
        room.add_player("p2", "Alice", FakeConnection())
    assert room.status == RoomStatus.WAITING

async def test_correct_guess_scores_and_ends_round(make_room):
    room = make_room()
    p1, p2 = _join_two(room)

    room.submit_guess("p1", "Nature!")

    assert room.players["p1"].score == 100
    assert room.status == RoomStatus.COOLDOWN
    assert room.active_timer_count == 1
    for conn in (p1, p2):
        correct = conn.last("correctGuess")["payload"]
        assert correct["playerId"] == "p1"
        assert correct["scoreForRound"] == 100
        assert correct["correctLink"] == "nature"
        round_end = conn.last("roundEnd")["payload"]
        assert round_end["reason"] == "correct_guess"
        assert round_end["correctAnswer"] == "nature"

async def test_score_uses_time_left_and_attempts(make_room, clock):
    room = make_room()
    _join_two(room)
    for _ in range(5):
        room.tick()
    room.submit_guess("p1", "ocean")
    clock.advance(2.5)
    room.submit_guess("p1", "nature")
    assert room.players["p1"].score == 65

async def test_incorrect_guess_is_private(make_room):
    room = make_room()
    p1, p2 = _join_two(room)

    room.submit_guess("p1", "ocean")

    notice = p1.last("incorrectGuess")["payload"]
    assert notice["reason"] == "incorrect"
    assert notice["attemptsRemaining"] == 4
    assert notice["guess"] == "ocean"
    assert p2.of_type("incorrectGuess") == []
    assert room.status == RoomStatus.PLAYING

async def test_guess_during_cooldown_window_is_rejected(make_room, clock):
    room = make_room()
    p1, _ = _join_two(room)

    room.submit_guess("p1", "ocean")
    clock.advance(0.5)
    room.submit_guess("p1", "river")

    notice = p1.last("incorrectGuess")["payload"]
    assert notice["reason"] == "cooldown"
    assert notice["retryAfterMs"] == 1500
    # Rejected guesses do not count as attempts
    assert room.guess_records["p1"].guess_count == 1
    assert room.guess_records["p1"].last_guess == "ocean"

async def test_invalid_guess_not_counted(make_room):
    room = make_room()
    p1, _ = _join_two(room)
    room.submit_guess("p1", "a")
    assert p1.last("incorrectGuess")["payload"]["reason"] == "too_short"
    assert room.guess_records["p1"].guess_count == 0

async def test_duplicate_guess_rejected(make_room, clock):
    room = make_room()
    p1, _ = _join_two(room)
    room.submit_guess("p1", "ocean")
    clock.advance(2.5)
    room.submit_guess("p1", "Ocean!")
    assert p1.last("incorrectGuess")["payload"]["reason"] == "duplicate_guess"
    assert room.guess_records["p1"].guess_count == 1

async def test_max_attempts_per_round(make_room, clock):
    room = make_room()
    p1, _ = _join_two(room)
    for word in ["ocean", "river", "forest", "mountain", "desert"]:
        room.submit_guess("p1", word)
        clock.advance(2.5)
    room.submit_guess("p1", "nature")

    notice = p1.last("incorrectGuess")["payload"]
    assert notice["reason"] == "max_attempts_reached"
    assert notice["attemptsRemaining"] == 0
    assert room.players["p1"].score == 0
    assert room.status == RoomStatus.PLAYING

async def test_guess_records_reset_each_round(make_room, clock):
    room = make_room()
    _join_two(room)
    room.submit_guess("p1", "ocean")
    _run_out_the_clock(room)
    room.advance_after_cooldown()
    assert room.round_index == 2
    assert room.guess_records["p1"].guess_count == 0

async def test_tick_counts_down_and_times_out(make_room):
    room = make_room()
    p1, p2 = _join_two(room)

    room.tick()
    assert room.time_left == 19
    assert p2.last("timeUpdate")["payload"] == {"timeLeft": 19}

    _run_out_the_clock(room)
    assert room.time_left == 0
    assert room.status == RoomStatus.COOLDOWN
    round_end = p1.last("roundEnd")["payload"]
    assert round_end["reason"] == "timeout"
    assert round_end["correctAnswer"] == "nature"

async def test_tick_outside_playing_is_ignored(make_room):
    room = make_room()
    conn = FakeConnection()
    room.add_player("p1", "Alice", conn)
    room.tick()
    assert room.time_left == 20
    assert conn.of_type("timeUpdate") == []

async def test_guess_outside_playing_is_ignored(make_room):
    room = make_room()
    p1, _ = _join_two(room)
    room.submit_guess("p1", "nature")
    sent_before = len(p1.messages)
    room.submit_guess("p1", "technology")
    assert room.status == RoomStatus.COOLDOWN
    assert len(p1.messages) == sent_before

async def test_full_game_with_timeouts_ends_in_tie(make_room):
    room = make_room()
    p1, p2 = _join_two(room)

    for expected_round in (1, 2, 3):
        assert room.round_index == expected_round
        _run_out_the_clock(room)
        assert all(player.score == 0 for player in room.players.values())
        room.advance_after_cooldown()

    assert room.status == RoomStatus.FINISHED
    assert room.active_timer_count == 0
    game_over = p1.last("gameOver")["payload"]
    assert game_over["isTie"] is True
    assert game_over["winner"] is None
    assert p2.last("gameOver") == p1.last("gameOver")

async def test_full_game_declares_higher_score_winner(make_room):
    room = make_room()
    p1, _ = _join_two(room)

    room.submit_guess("p2", "nature")
    room.advance_after_cooldown()
    _run_out_the_clock(room)
    room.advance_after_cooldown()
    _run_out_the_clock(room)
    room.advance_after_cooldown()

    game_over = p1.last("gameOver")["payload"]
    assert game_over["isTie"] is False
    assert game_over["winner"]["username"] == "Bob"
    assert [p["score"] for p in game_over["finalScores"]] == [0, 100]
    assert p1.last("gameState")["payload"]["gameOver"]["winner"]["id"] == "p2"

async def test_rounds_use_distinct_image_sets(make_room):
    room = make_room()
    p1, _ = _join_two(room)
    hints = []
    for _ in range(3):
        hints.append(p1.last("roundStart")["payload"]["hint"])
        _run_out_the_clock(room)
        room.advance_after_cooldown()
    assert hints == ["Think about the outdoors", "Digital world", "Something delicious"]

async def test_player_leaving_mid_round_returns_to_waiting(make_room):
    room = make_room()
    _, p2 = _join_two(room)

    is_empty = room.remove_player("p1")

    assert is_empty is False
    assert room.status == RoomStatus.WAITING
    assert room.active_timer_count == 0
    state = p2.last("gameState")["payload"]
    assert state["status"] == "waiting"
    assert [p["id"] for p in state["players"]] == ["p2"]

async def test_last_player_leaving_empties_room(make_room):
    room = make_room()
    _join_two(room)
    room.remove_player("p1")
    assert room.remove_player("p2") is True
    assert room.is_empty
    assert room.active_timer_count == 0

async def test_rejoin_after_leave_starts_new_game(make_room):
    room = make_room()
    _join_two(room)
    room.submit_guess("p1", "nature")
    room.remove_player("p2")
    room.add_player("p3", "Carol", FakeConnection())
    assert room.status == RoomStatus.PLAYING
    assert room.round_index == 1
    assert room.players["p1"].score == 0

async def test_reset_game_restarts_from_round_one(make_room):
    room = make_room()
    p1, _ = _join_two(room)
    room.submit_guess("p1", "nature")
    room.advance_after_cooldown()

    room.reset_game()

    assert room.round_index == 1
    assert room.status == RoomStatus.PLAYING
    assert room.players["p1"].score == 0
    assert room.active_timer_count == 1
    assert p1.last("roundStart")["payload"]["round"] == 1

async def test_reset_game_with_one_player_waits(make_room):
    room = make_room()
    conn = FakeConnection()
    room.add_player("p1", "Alice", conn)
    room.reset_game()
    assert room.status == RoomStatus.WAITING
    assert conn.last("gameState")["payload"]["status"] == "waiting"

async def test_one_player_finish_declares_that_player(make_room):
    room = make_room()
    conn = FakeConnection()
    room.add_player("p1", "Alice", conn)
    summary = room.end_game()
    assert summary.winner.id == "p1"
    assert summary.is_tie is False

async def test_snapshot_hides_answer(make_room):
    room = make_room()
    _join_two(room)
    dumped = room.snapshot().model_dump(by_alias=True, mode="json")
    assert dumped["currentRound"]["hint"] == "Think about the outdoors"
    assert "nature" not in str(dumped)

async def test_full_outbound_queue_does_not_break_room(make_room):
    room = make_room()
    room.add_player("p1", "Alice", FakeConnection(accept=False))
    room.add_player("p2", "Bob", FakeConnection())
    assert room.status == RoomStatus.PLAYING

async def test_real_timers_drive_game_to_completion(make_room):
    config = Settings(ROUND_TIMER_SECONDS=2, ROUND_TICK_SECONDS=0.01, ROUND_COOLDOWN_SECONDS=0.01, MAX_ROUNDS=2)
    room = make_room(config=config)
    p1, _ = _join_two(room)

    for _ in range(100):
        if room.status == RoomStatus.FINISHED:
            break
        await asyncio.sleep(0.02)

    assert room.status == RoomStatus.FINISHED
    assert [m["payload"]["timeLeft"] for m in p1.of_type("timeUpdate")] == [1, 0, 1, 0]
    assert len(p1.of_type("roundEnd")) == 2
    assert room.active_timer_count == 0

async def test_close_cancels_pending_timer(make_room):
    room = make_room()
    _join_two(room)
    task = room._timer_task
    room.close()
    await asyncio.sleep(0)
    assert task.cancelled()
    assert room.active_timer_count == 0
