"""Points, levels, streaks and badges.

Everything in this module works on a detached :class:`LearnerProfile` and never
touches the database; ``academy.store`` loads and saves profiles around these
calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable

from .errors import InvalidRequest

# Points handed out per activity.
POINTS = {
    "ai_chat": 2,
    "learning_advice": 3,
    "vulnerability_explanation": 4,
    "code_analysis": 5,
    "comment_reply": 5,
    "comment_post": 10,
    "course_start": 5,
    "course_complete": 50,
    "course_repeat": 10,
    "exercise_complete": 25,
    "exercise_improved": 15,
    "exercise_retry": 5,
    "password_lab": 50,
}

# (upper bound exclusive, level); past the last bound every 1000 points is a level.
LEVEL_THRESHOLDS = ((100, 1), (500, 2), (1500, 3), (3000, 4), (5000, 5))


def level_for(points: int) -> int:
    for limit, level in LEVEL_THRESHOLDS:
        if points < limit:
            return level
    return points // 1000 + 5


@dataclass
class EarnedBadge:
    badge_id: str
    earned_at: datetime


@dataclass
class CourseRecord:
    course_id: str
    completed_at: datetime
    score: int = 100


@dataclass
class ExerciseRecord:
    exercise_id: str
    completed_at: datetime
    attempts: int = 1
    best_score: int = 0


@dataclass
class CurrentCourse:
    course_id: str
    progress: int = 0
    last_accessed_at: datetime | None = None


@dataclass
class LearnerProfile:
    learner_id: int
    points: int = 0
    level: int = 1
    streak_days: int = 0
    last_active: date | None = None
    badges: list[EarnedBadge] = field(default_factory=list)
    completed_courses: dict[str, CourseRecord] = field(default_factory=dict)
    completed_exercises: dict[str, ExerciseRecord] = field(default_factory=dict)
    current_course: CurrentCourse | None = None
    comments_count: int = 0
    study_minutes: int = 0

    def has_badge(self, badge_id: str) -> bool:
        return any(b.badge_id == badge_id for b in self.badges)

    def badge_ids(self) -> list[str]:
        return [b.badge_id for b in self.badges]


# -----------------------------------------------------------------------------
# Badges
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    icon: str
    category: str
    rule: Callable[[LearnerProfile], bool]


BADGES = (
    Badge("first-100", "Beginner", "Earn your first 100 points", "🎯", "points",
          lambda p: p.points >= 100),
    Badge("scholar-1k", "Scholar", "Earn 1000 points", "📚", "points",
          lambda p: p.points >= 1000),
    Badge("first-course", "Course Finisher", "Complete your first course", "🎓", "courses",
          lambda p: len(p.completed_courses) >= 1),
    Badge("streak-7", "Persistent", "Study seven days in a row", "🔥", "habits",
          lambda p: p.streak_days >= 7),
    Badge("commenter", "Active Participant", "Post 10 comments", "💬", "social",
          lambda p: p.comments_count >= 10),
)

BADGES_BY_ID = {b.id: b for b in BADGES}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Core operations
# -----------------------------------------------------------------------------
def award_points(profile: LearnerProfile, amount: int, reason: str) -> int:
    """Add ``amount`` points and refresh the level. Returns the points awarded."""
    if amount <= 0:
        return 0
    profile.points += amount
    profile.level = level_for(profile.points)
    return amount


def adjust_points(profile: LearnerProfile, delta: int) -> int:
    """Admin correction. Points may go down (never below zero); badges stay."""
    profile.points = max(0, profile.points + delta)
    profile.level = level_for(profile.points)
    return profile.points


def check_badges(profile: LearnerProfile, now: datetime | None = None) -> list[str]:
    """Append every newly satisfied badge exactly once; return the new ids."""
    now = now or _utcnow()
    earned = []
    for badge in BADGES:
        if badge.rule(profile) and not profile.has_badge(badge.id):
            profile.badges.append(EarnedBadge(badge.id, now))
            earned.append(badge.id)
    return earned


def activity_day(now: datetime, tz: tzinfo) -> date:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def update_streak(profile: LearnerProfile, now: datetime, tz: tzinfo = timezone.utc) -> int:
    """Count consecutive calendar days of activity, as seen in ``tz``."""
    today = activity_day(now, tz)
    if profile.last_active == today:
        return profile.streak_days
    if profile.last_active == today - timedelta(days=1):
        profile.streak_days += 1
    else:
        profile.streak_days = 1
    profile.last_active = today
    return profile.streak_days


@dataclass
class ActivityResult:
    points_earned: int
    new_badges: list[str]


def record_activity(
    profile: LearnerProfile,
    amount: int,
    reason: str,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
) -> ActivityResult:
    """Streak, points and badges for one learner action."""
    now = now or _utcnow()
    update_streak(profile, now, tz)
    earned = award_points(profile, amount, reason)
    return ActivityResult(earned, check_badges(profile, now))


# -----------------------------------------------------------------------------
# Progress events
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class CourseStart:
    course_id: str


@dataclass(frozen=True)
class CourseComplete:
    course_id: str
    score: int | None = None


@dataclass(frozen=True)
class ExerciseComplete:
    exercise_id: str
    score: int | None = None


ProgressEvent = CourseStart | CourseComplete | ExerciseComplete


def _optional_int(value, name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be a number.") from None


def _required_str(payload: dict, key: str, action: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"{key} is required for {action}.")
    return value.strip()


def parse_event(payload: dict) -> ProgressEvent:
    """Build a progress event from a JSON request body."""
    action = payload.get("action")
    score = _optional_int(payload.get("score"), "score")
    if action == "course_start":
        return CourseStart(_required_str(payload, "courseId", action))
    if action == "course_complete":
        return CourseComplete(_required_str(payload, "courseId", action), score)
    if action == "exercise_complete":
        return ExerciseComplete(_required_str(payload, "exerciseId", action), score)
    raise InvalidRequest("action must be course_start, course_complete or exercise_complete.")


def apply_event(profile: LearnerProfile, event: ProgressEvent, now: datetime | None = None) -> int:
    """Record the event on the profile; return the points it is worth."""
    now = now or _utcnow()
    match event:
        case CourseStart(course_id=course_id):
            profile.current_course = CurrentCourse(course_id, 0, now)
            return POINTS["course_start"]

        case CourseComplete(course_id=course_id, score=score):
            if profile.current_course and profile.current_course.course_id == course_id:
                profile.current_course = None
            if course_id in profile.completed_courses:
                return POINTS["course_repeat"]
            profile.completed_courses[course_id] = CourseRecord(
                course_id, now, score if score is not None else 100
            )
            return POINTS["course_complete"]

        case ExerciseComplete(exercise_id=exercise_id, score=score):
            record = profile.completed_exercises.get(exercise_id)
            if record is None:
                profile.completed_exercises[exercise_id] = ExerciseRecord(
                    exercise_id, now, 1, score or 0
                )
                return POINTS["exercise_complete"]
            record.attempts += 1
            if score is not None and score > record.best_score:
                record.best_score = score
                return POINTS["exercise_improved"]
            return POINTS["exercise_retry"]

    raise InvalidRequest(f"Unsupported progress event: {event!r}")


def next_level_target(points: int) -> int:
    """Points at which the current level ends."""
    for limit, _level in LEVEL_THRESHOLDS:
        if points < limit:
            return limit
    return (points // 1000 + 1) * 1000


def level_progress(points: int) -> float:
    """Percentage of the way from the current level's floor to the next one."""
    floor = 0
    for limit, _level in LEVEL_THRESHOLDS:
        if points < limit:
            return round((points - floor) / (limit - floor) * 100, 1)
        floor = limit
    return round((points % 1000) / 1000 * 100, 1)
