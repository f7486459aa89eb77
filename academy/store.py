"""Loading and saving learner profiles, plus the notification sink."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from typing import Iterator
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from .errors import DependencyUnavailable, NotFound
from .models import CourseCompletion, EarnedBadge, ExerciseCompletion, User, db
from .progress import (
    ActivityResult,
    CourseRecord,
    CurrentCourse,
    EarnedBadge as EarnedBadgeRecord,
    ExerciseRecord,
    LearnerProfile,
    record_activity,
)

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # sqlite hands datetimes back without tzinfo
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProfileStore:
    """Maps ``User`` rows to :class:`LearnerProfile` and back.

    Writers for the same learner are serialized through :meth:`editing`,
    because level and badge derivation read and then write the same row.
    """

    def __init__(self, timezone_name: str = "UTC"):
        self.tz: tzinfo = ZoneInfo(timezone_name)
        self._locks: dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, learner_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(learner_id, threading.Lock())

    def load(self, learner_id: int) -> LearnerProfile:
        try:
            user = db.session.get(User, learner_id)
        except SQLAlchemyError as exc:
            logger.exception("Loading profile %s failed", learner_id)
            raise DependencyUnavailable("Progress storage is unavailable, please retry.") from exc
        if user is None:
            raise NotFound("Learner not found.")
        current = None
        if user.current_course_id:
            current = CurrentCourse(
                user.current_course_id,
                user.current_course_progress or 0,
                _aware(user.current_course_accessed_at),
            )
        return LearnerProfile(
            learner_id=user.id,
            points=user.points or 0,
            level=user.level or 1,
            streak_days=user.streak_days or 0,
            last_active=user.last_active_date,
            badges=[EarnedBadgeRecord(b.badge_id, _aware(b.earned_at)) for b in user.badges],
            completed_courses={
                c.course_id: CourseRecord(c.course_id, _aware(c.completed_at), c.score)
                for c in user.course_completions
            },
            completed_exercises={
                e.exercise_id: ExerciseRecord(e.exercise_id, _aware(e.completed_at), e.attempts, e.best_score)
                for e in user.exercise_completions
            },
            current_course=current,
            comments_count=user.comments_count or 0,
            study_minutes=user.study_minutes or 0,
        )

    def save(self, profile: LearnerProfile) -> None:
        try:
            user = db.session.get(User, profile.learner_id)
            if user is None:
                raise NotFound("Learner not found.")
            user.points = profile.points
            user.level = profile.level
            user.streak_days = profile.streak_days
            user.last_active_date = profile.last_active
            user.comments_count = profile.comments_count
            user.study_minutes = profile.study_minutes
            if profile.current_course:
                user.current_course_id = profile.current_course.course_id
                user.current_course_progress = profile.current_course.progress
                user.current_course_accessed_at = profile.current_course.last_accessed_at
            else:
                user.current_course_id = None
                user.current_course_progress = 0
                user.current_course_accessed_at = None

            # badges are append-only
            stored = {b.badge_id for b in user.badges}
            for badge in profile.badges:
                if badge.badge_id not in stored:
                    user.badges.append(EarnedBadge(badge_id=badge.badge_id, earned_at=badge.earned_at))

            courses = {c.course_id: c for c in user.course_completions}
            for record in profile.completed_courses.values():
                row = courses.get(record.course_id)
                if row is None:
                    user.course_completions.append(CourseCompletion(
                        course_id=record.course_id, completed_at=record.completed_at, score=record.score,
                    ))
                else:
                    row.score = record.score

            exercises = {e.exercise_id: e for e in user.exercise_completions}
            for record in profile.completed_exercises.values():
                row = exercises.get(record.exercise_id)
                if row is None:
                    user.exercise_completions.append(ExerciseCompletion(
                        exercise_id=record.exercise_id,
                        completed_at=record.completed_at,
                        attempts=record.attempts,
                        best_score=record.best_score,
                    ))
                else:
                    row.attempts = record.attempts
                    row.best_score = record.best_score
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Saving profile %s failed", profile.learner_id)
            raise DependencyUnavailable("Progress could not be saved, please retry.") from exc

    @contextmanager
    def editing(self, learner_id: int) -> Iterator[LearnerProfile]:
        """Load, hand out and save one learner's profile under that learner's lock."""
        with self._lock_for(learner_id):
            profile = self.load(learner_id)
            yield profile
            self.save(profile)

    def record(self, learner_id: int, amount: int, reason: str) -> tuple[LearnerProfile, ActivityResult]:
        """Streak, points and badges for one action, persisted."""
        with self.editing(learner_id) as profile:
            result = record_activity(profile, amount, reason, tz=self.tz)
        logger.info("Learner %s +%s points (%s)", learner_id, result.points_earned, reason)
        return profile, result


class LogNotifier:
    """Fire-and-forget notification sink backed by the ``academy.notify`` logger."""

    LEVELS = {
        "success": logging.INFO,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def __init__(self, name: str = "academy.notify"):
        self.logger = logging.getLogger(name)

    def notify(self, message: str, severity: str = "info") -> None:
        self.logger.log(self.LEVELS.get(severity, logging.INFO), "[%s] %s", severity, message)
