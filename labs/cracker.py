"""Password cracking simulator.

This only walks a candidate list against a target the lab generated itself,
one candidate per tick, so learners can watch how the search space grows.
"""
from __future__ import annotations

import enum
import itertools
import random
import re
import string
import threading
import time
from typing import Callable, Iterator

from academy.errors import InvalidConfiguration

from .data import COMMON_PASSWORDS

SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


class AttackMode(str, enum.Enum):
    DICTIONARY = "dictionary"
    BRUTE_FORCE = "brute-force"
    HYBRID = "hybrid"


class CrackStatus(str, enum.Enum):
    READY = "ready"
    RUNNING = "running"
    CRACKED = "cracked"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


FINISHED = {CrackStatus.CRACKED, CrackStatus.EXHAUSTED, CrackStatus.STOPPED}


def build_charset(lowercase=True, uppercase=False, digits=True, symbols=False) -> str:
    charset = ""
    if lowercase:
        charset += string.ascii_lowercase
    if uppercase:
        charset += string.ascii_uppercase
    if digits:
        charset += string.digits
    if symbols:
        charset += SYMBOLS
    return charset


def generate_target(charset: str, length: int, rng: random.Random | None = None) -> str:
    if not charset:
        raise InvalidConfiguration("Pick at least one character set.")
    if length < 1:
        raise InvalidConfiguration("The password needs at least one character.")
    rng = rng or random.SystemRandom()
    return "".join(rng.choice(charset) for _ in range(length))


def password_strength(password: str) -> tuple[int, str]:
    score = 0
    if len(password) >= 8:
        score += 25
    elif len(password) >= 6:
        score += 15
    elif len(password) >= 4:
        score += 5
    if re.search(r"[a-z]", password):
        score += 15
    if re.search(r"[A-Z]", password):
        score += 15
    if re.search(r"[0-9]", password):
        score += 15
    if re.search(r"[^a-zA-Z0-9]", password):
        score += 30

    if score >= 80:
        label = "very strong"
    elif score >= 60:
        label = "strong"
    elif score >= 40:
        label = "medium"
    elif score >= 20:
        label = "weak"
    else:
        label = "very weak"
    return score, label


def next_candidate(current: str, charset: str) -> str | None:
    """Odometer increment: bump the last position and carry leftwards.

    Returns None once the first position wraps around, i.e. the space is done.
    """
    chars = list(current)
    for i in range(len(chars) - 1, -1, -1):
        index = charset.index(chars[i])
        if index < len(charset) - 1:
            chars[i] = charset[index + 1]
            return "".join(chars)
        chars[i] = charset[0]
    return None


def odometer(charset: str, length: int) -> Iterator[str]:
    candidate = charset[0] * length
    while candidate is not None:
        yield candidate
        candidate = next_candidate(candidate, charset)


class CrackSession:
    def __init__(
        self,
        target: str,
        mode: AttackMode | str = AttackMode.DICTIONARY,
        charset: str = "",
        dictionary=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        try:
            self.mode = AttackMode(mode)
        except ValueError:
            raise InvalidConfiguration(f"Unknown attack mode: {mode}") from None
        if not target:
            raise InvalidConfiguration("Generate a target password first.")
        if self.mode is not AttackMode.DICTIONARY and not charset:
            raise InvalidConfiguration("Brute force needs a non-empty character set.")

        self.target = target
        # repeated characters would stall the odometer
        self.charset = "".join(dict.fromkeys(charset))
        self.dictionary = list(COMMON_PASSWORDS if dictionary is None else dictionary)
        self.clock = clock
        self.status = CrackStatus.READY
        self.attempts = 0
        self.current: str | None = None
        self.phase = AttackMode.BRUTE_FORCE if self.mode is AttackMode.BRUTE_FORCE else AttackMode.DICTIONARY
        self.started_at: float | None = None
        self.finished_at: float | None = None
        self._candidates = self._build_candidates()
        self._tick = None
        self._lock = threading.RLock()

    def _build_candidates(self) -> Iterator[tuple[AttackMode, str]]:
        words = ((AttackMode.DICTIONARY, w) for w in self.dictionary)
        brute = ((AttackMode.BRUTE_FORCE, c) for c in odometer(self.charset, len(self.target))) if self.charset else iter(())
        if self.mode is AttackMode.DICTIONARY:
            return words
        if self.mode is AttackMode.BRUTE_FORCE:
            return brute
        return itertools.chain(words, brute)

    @property
    def search_space(self) -> int:
        brute = len(self.charset) ** len(self.target) if self.charset else 0
        if self.mode is AttackMode.DICTIONARY:
            return len(self.dictionary)
        if self.mode is AttackMode.BRUTE_FORCE:
            return brute
        return len(self.dictionary) + brute

    @property
    def finished(self) -> bool:
        return self.status in FINISHED

    def _finish(self, status: CrackStatus):
        self.status = status
        self.finished_at = self.clock()
        self._cancel_tick()

    def step(self) -> CrackStatus:
        """Test one candidate."""
        with self._lock:
            if self.finished:
                return self.status
            if self.started_at is None:
                self.started_at = self.clock()
            self.status = CrackStatus.RUNNING

            nxt = next(self._candidates, None)
            if nxt is None:
                self._finish(CrackStatus.EXHAUSTED)
                return self.status
            self.phase, self.current = nxt
            self.attempts += 1
            if self.current == self.target:
                self._finish(CrackStatus.CRACKED)
            return self.status

    def run(self, max_steps: int | None = None) -> CrackStatus:
        steps = 0
        while not self.finished and (max_steps is None or steps < max_steps):
            self.step()
            steps += 1
        return self.status

    def start(self, scheduler, interval: float, on_finish=None):
        """Tick once per ``interval`` seconds until the session finishes."""

        def tick():
            self.step()
            if self.finished:
                if on_finish is not None:
                    on_finish(self)
            else:
                self._tick = scheduler.call_later(interval, tick)

        self._cancel_tick()
        self._tick = scheduler.call_later(interval, tick)

    def _cancel_tick(self):
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def stop(self):
        with self._lock:
            if not self.finished:
                self._finish(CrackStatus.STOPPED)

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else self.clock()
        return max(0.0, end - self.started_at)

    @property
    def throughput(self) -> float:
        elapsed = self.elapsed
        return self.attempts / elapsed if elapsed > 0 else 0.0

    @property
    def progress(self) -> float:
        space = self.search_space
        return min(100.0, self.attempts / space * 100) if space else 0.0

    def report(self) -> dict:
        data = {
            "mode": self.mode.value,
            "phase": self.phase.value,
            "status": self.status.value,
            "attempts": self.attempts,
            "current": self.current,
            "elapsed": round(self.elapsed, 3),
            "throughput": round(self.throughput, 1),
            "searchSpace": self.search_space,
            "progress": round(self.progress, 2),
            "targetLength": len(self.target),
        }
        if self.status is CrackStatus.CRACKED:
            data["password"] = self.target
        return data
