"""Per-learner lab state: one challenge game and any number of crack sessions."""
from __future__ import annotations

import threading
from typing import Callable
from uuid import uuid4

from academy.errors import NotFound

from .challenge import ChallengeGame
from .cracker import CrackSession


class LabRegistry:
    def __init__(self, game_factory: Callable[[int], ChallengeGame]):
        self.game_factory = game_factory
        self._games: dict[int, ChallengeGame] = {}
        self._cracks: dict[int, dict[str, CrackSession]] = {}
        self._lock = threading.Lock()

    def game_for(self, learner_id: int) -> ChallengeGame:
        with self._lock:
            game = self._games.get(learner_id)
            if game is None:
                game = self._games[learner_id] = self.game_factory(learner_id)
            return game

    def add_crack(self, learner_id: int, session: CrackSession) -> str:
        session_id = uuid4().hex
        with self._lock:
            self._cracks.setdefault(learner_id, {})[session_id] = session
        return session_id

    def crack(self, learner_id: int, session_id: str) -> CrackSession:
        with self._lock:
            session = self._cracks.get(learner_id, {}).get(session_id)
        if session is None:
            raise NotFound("Crack session not found.")
        return session

    def drop_crack(self, learner_id: int, session_id: str) -> CrackSession:
        with self._lock:
            session = self._cracks.get(learner_id, {}).pop(session_id, None)
        if session is None:
            raise NotFound("Crack session not found.")
        session.stop()
        return session

    def discard(self, learner_id: int):
        """Tear down everything a learner has running (e.g. on logout)."""
        with self._lock:
            game = self._games.pop(learner_id, None)
            cracks = self._cracks.pop(learner_id, {})
        if game is not None:
            game.close()
        for session in cracks.values():
            session.stop()
