"""Chat completions client and conversation memory for the AI tutor."""
from __future__ import annotations

import logging
import threading

import requests

from academy.errors import DependencyUnavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    "general": (
        "You are the CyberSec Academy security tutor. Help students understand "
        "security concepts, answer technical questions, recommend learning "
        "resources and explain code and vulnerabilities. Only discuss "
        "educational security content, stress ethical hacking and responsible "
        "disclosure, never give guidance for malicious attacks, and keep "
        "answers short and clear."
    ),
    "code_analysis": (
        "You are a security code reviewer. Analyse the code you are given and "
        "report: vulnerability type and risk level, an attack scenario, a fix "
        "with a secure code example, and related best practices."
    ),
    "learning_path": (
        "You are a security learning planner. Given the learner's level and "
        "interests: assess their skills, recommend an order of topics, suggest "
        "practice projects and resources, and propose a study schedule."
    ),
    "vulnerability_explanation": (
        "You explain security vulnerabilities: the technical root cause, how "
        "it is commonly exploited (for education only), how to prevent and "
        "detect it, real-world cases and relevant standards. Focus on "
        "defences and never provide working attack code."
    ),
}


class ConversationStore:
    """Recent chat turns per (learner, context), capped at ``max_messages``."""

    def __init__(self, max_messages: int = 20):
        self.max_messages = max(0, max_messages)
        self._histories: dict[tuple[int, str], list[dict]] = {}
        self._lock = threading.Lock()

    def history(self, learner_id: int, context: str) -> list[dict]:
        with self._lock:
            return list(self._histories.get((learner_id, context), []))

    def append(self, learner_id: int, context: str, role: str, content: str) -> None:
        with self._lock:
            turns = self._histories.setdefault((learner_id, context), [])
            turns.append({"role": role, "content": content})
            if len(turns) > self.max_messages:
                del turns[:len(turns) - self.max_messages]

    def clear(self, learner_id: int, context: str) -> bool:
        with self._lock:
            return self._histories.pop((learner_id, context), None) is not None

    def message_count(self, learner_id: int) -> int:
        with self._lock:
            return sum(len(turns) for (owner, _), turns in self._histories.items() if owner == learner_id)


class TutorClient:
    def __init__(self, api_url: str, api_key: str | None, model: str = "deepseek-chat",
                 timeout: float = 30.0, session: requests.Session | None = None):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def complete(self, messages: list[dict], temperature: float = 0.7, max_tokens: int = 1500) -> str:
        if not self.available:
            raise DependencyUnavailable("The AI tutor is not available right now.")
        try:
            resp = self.session.post(
                self.api_url,
                json={
                    "model": self.model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                    "stream": False,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()["choices"][0]["message"]["content"]
        except requests.RequestException as exc:
            logger.warning("AI API request failed: %s", exc)
            raise DependencyUnavailable("The AI tutor is busy, please try again shortly.") from exc
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("AI API returned an unexpected payload: %s", exc)
            raise DependencyUnavailable("The AI tutor is busy, please try again shortly.") from exc
