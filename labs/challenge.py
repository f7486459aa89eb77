"""The cipher challenge game played in the crypto lab."""
from __future__ import annotations

import enum
import random
import threading
from dataclasses import asdict, dataclass
from typing import Callable

from academy.errors import InvalidRequest, NotFound

from .data import CHALLENGE_POOLS


@dataclass(frozen=True)
class CipherChallenge:
    id: str
    algorithm: str
    title: str
    description: str
    ciphertext: str
    answer: str
    hint: str
    points: int
    difficulty: int

    def public_dict(self):
        data = asdict(self)
        del data["answer"]
        del data["hint"]
        return data


def build_pools(raw=CHALLENGE_POOLS) -> dict[str, tuple[CipherChallenge, ...]]:
    return {
        algorithm: tuple(CipherChallenge(algorithm=algorithm, **entry) for entry in entries)
        for algorithm, entries in raw.items()
    }


class GameState(enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    CORRECT = "correct"


@dataclass
class GameStats:
    challenges_solved: int = 0
    total_score: int = 0
    current_streak: int = 0
    hints_used: int = 0


@dataclass
class SubmissionResult:
    correct: bool
    points: int
    stats: GameStats


def normalize_answer(text: str) -> str:
    return text.strip().casefold()


class ChallengeGame:
    """One learner's run through the cipher challenges.

    A correct answer scores, calls ``on_solved`` and schedules the next
    challenge after ``advance_delay`` seconds; the pending advance is
    cancelled whenever another challenge is loaded or the game is closed.
    """

    def __init__(self, pools, scheduler, advance_delay=2.0, on_solved=None, notifier=None, rng=None):
        if not pools:
            raise NotFound("No challenge pools are defined.")
        self.pools = pools
        self.scheduler = scheduler
        self.advance_delay = advance_delay
        self.on_solved: Callable[[CipherChallenge], None] | None = on_solved
        self.notifier = notifier
        self.rng = rng or random.Random()
        self.state = GameState.IDLE
        self.current: CipherChallenge | None = None
        self.pool: str | None = None
        self.hint_visible = False
        self.stats = GameStats()
        self._advance = None
        self._lock = threading.RLock()

    def _notify(self, message, severity="info"):
        if self.notifier is not None:
            self.notifier.notify(message, severity)

    def _cancel_advance(self):
        if self._advance is not None:
            self._advance.cancel()
            self._advance = None

    def load_random(self, pool: str | None = None) -> CipherChallenge:
        with self._lock:
            if pool is not None and pool not in self.pools:
                raise NotFound(f"Unknown challenge pool: {pool}")
            self._cancel_advance()
            name = pool if pool is not None else self.rng.choice(sorted(self.pools))
            self.current = self.rng.choice(self.pools[name])
            self.pool = pool
            self.hint_visible = False
            self.state = GameState.LOADED
            return self.current

    def _require_challenge(self) -> CipherChallenge:
        if self.current is None or self.state is GameState.IDLE:
            raise NotFound("Load a challenge first.")
        return self.current

    def submit(self, answer: str) -> SubmissionResult:
        with self._lock:
            challenge = self._require_challenge()
            if self.state is GameState.CORRECT:
                raise InvalidRequest("This challenge is already solved; the next one is on its way.")

            if normalize_answer(answer) != normalize_answer(challenge.answer):
                self.stats.current_streak = 0
                self._notify("Not quite, try again!", "error")
                return SubmissionResult(False, 0, self.stats)

            self.stats.challenges_solved += 1
            self.stats.total_score += challenge.points
            self.stats.current_streak += 1
            self.state = GameState.CORRECT
            self._notify(f"Correct! +{challenge.points} points!", "success")
            self._advance = self.scheduler.call_later(self.advance_delay, self._auto_advance, challenge)

        # outside the lock: the callback may hit the database
        if self.on_solved is not None:
            self.on_solved(challenge)
        return SubmissionResult(True, challenge.points, self.stats)

    def _auto_advance(self, solved: CipherChallenge):
        with self._lock:
            if self.state is GameState.CORRECT and self.current is solved:
                self._advance = None
                self.load_random(self.pool)

    def show_hint(self) -> str:
        with self._lock:
            challenge = self._require_challenge()
            # every view counts, including repeats
            self.stats.hints_used += 1
            self.hint_visible = True
            return challenge.hint

    def skip(self) -> CipherChallenge:
        with self._lock:
            self._require_challenge()
            self.stats.current_streak = 0
            self._notify("Challenge skipped.", "info")
            return self.load_random(self.pool)

    def close(self):
        with self._lock:
            self._cancel_advance()
            self.current = None
            self.hint_visible = False
            self.state = GameState.IDLE

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.state.value,
                "pool": self.pool,
                "challenge": self.current.public_dict() if self.current else None,
                "hint": self.current.hint if self.current and self.hint_visible else None,
                "stats": asdict(self.stats),
            }
