import random

import pytest

from academy.errors import DependencyUnavailable, InvalidRequest, NotFound
from labs.challenge import ChallengeGame, GameState, build_pools

from support import ManualScheduler


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, message, severity="info"):
        self.messages.append((severity, message))


@pytest.fixture
def game():
    solved = []
    g = ChallengeGame(
        build_pools(),
        ManualScheduler(),
        advance_delay=2.0,
        on_solved=solved.append,
        notifier=RecordingNotifier(),
        rng=random.Random(7),
    )
    g.solved = solved
    return g


def test_submit_before_load(game):
    with pytest.raises(NotFound):
        game.submit("anything")
    with pytest.raises(NotFound):
        game.show_hint()


def test_unknown_pool(game):
    with pytest.raises(NotFound):
        game.load_random("enigma")


def test_wrong_answer_resets_streak(game):
    challenge = game.load_random("caesar")
    game.submit(challenge.answer)
    game.scheduler.run_pending()

    result = game.submit("definitely wrong")
    assert not result.correct
    assert result.points == 0
    assert game.stats.current_streak == 0
    assert game.state is GameState.LOADED
    assert game.notifier.messages[-1][0] == "error"


def test_correct_answer_scores_and_advances(game):
    challenge = game.load_random("morse")
    result = game.submit("  " + challenge.answer.lower() + " ")

    assert result.correct
    assert result.points == challenge.points
    assert game.stats.challenges_solved == 1
    assert game.stats.total_score == challenge.points
    assert game.stats.current_streak == 1
    assert game.state is GameState.CORRECT
    assert game.solved == [challenge]

    with pytest.raises(InvalidRequest):
        game.submit(challenge.answer)

    assert game.scheduler.pending() == 1
    assert game.scheduler.tasks[0][0] == 2.0
    game.scheduler.run_pending()
    assert game.state is GameState.LOADED
    assert game.pool == "morse"
    assert game.current.algorithm == "morse"


def test_loading_cancels_pending_advance(game):
    challenge = game.load_random("atbash")
    game.submit(challenge.answer)
    game.load_random("caesar")
    picked = game.current

    assert game.scheduler.run_pending() == 0
    assert game.current is picked


def test_close_cancels_pending_advance(game):
    challenge = game.load_random("atbash")
    game.submit(challenge.answer)
    game.close()

    assert game.scheduler.run_pending() == 0
    assert game.state is GameState.IDLE
    assert game.current is None


def test_hints_count_every_view(game):
    challenge = game.load_random("vigenere")
    assert game.show_hint() == challenge.hint
    game.show_hint()
    assert game.stats.hints_used == 2
    assert game.snapshot()["hint"] == challenge.hint


def test_skip_resets_streak(game):
    challenge = game.load_random("caesar")
    game.submit(challenge.answer)
    game.scheduler.run_pending()
    game.skip()
    assert game.stats.current_streak == 0
    assert game.state is GameState.LOADED


def test_snapshot_hides_answer(game):
    game.load_random()
    snap = game.snapshot()
    assert "answer" not in snap["challenge"]
    assert "hint" not in snap["challenge"]
    assert snap["hint"] is None
    assert snap["state"] == "loaded"


def test_failed_award_keeps_game_state():
    def on_solved(_challenge):
        raise DependencyUnavailable("Progress could not be saved, please retry.")

    game = ChallengeGame(build_pools(), ManualScheduler(), on_solved=on_solved)
    challenge = game.load_random("caesar")
    with pytest.raises(DependencyUnavailable):
        game.submit(challenge.answer)
    assert game.stats.challenges_solved == 1
    assert game.state is GameState.CORRECT
    assert game.scheduler.pending() == 1
