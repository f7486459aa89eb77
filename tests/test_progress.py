from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from academy.errors import InvalidRequest
from academy.progress import (
    POINTS,
    CourseComplete,
    CourseStart,
    ExerciseComplete,
    LearnerProfile,
    adjust_points,
    apply_event,
    award_points,
    check_badges,
    level_for,
    level_progress,
    next_level_target,
    parse_event,
    record_activity,
    update_streak,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "points,level",
    [(0, 1), (99, 1), (100, 2), (499, 2), (500, 3), (1499, 3), (1500, 4),
     (2999, 4), (3000, 5), (4999, 5), (5000, 10), (6500, 11)],
)
def test_level_table(points, level):
    assert level_for(points) == level


def test_crossing_100_levels_up_and_badges_once():
    profile = LearnerProfile(learner_id=1, points=99)
    assert award_points(profile, 1, "ai_chat") == 1
    assert profile.points == 100
    assert profile.level == 2

    assert check_badges(profile, NOW) == ["first-100"]
    assert check_badges(profile, NOW) == []
    assert profile.badge_ids().count("first-100") == 1


@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_award_is_a_no_op(amount):
    profile = LearnerProfile(learner_id=1, points=40)
    assert award_points(profile, amount, "noop") == 0
    assert profile.points == 40


def test_adjust_points_clamps_and_keeps_badges():
    profile = LearnerProfile(learner_id=1, points=120)
    check_badges(profile, NOW)
    assert adjust_points(profile, -500) == 0
    assert profile.level == 1
    assert profile.has_badge("first-100")


def test_streak_counts_consecutive_days():
    profile = LearnerProfile(learner_id=1)
    assert update_streak(profile, NOW) == 1
    assert update_streak(profile, NOW + timedelta(hours=3)) == 1
    assert update_streak(profile, NOW + timedelta(days=1)) == 2
    assert update_streak(profile, NOW + timedelta(days=4)) == 1
    assert profile.last_active == date(2026, 3, 5)


def test_streak_day_follows_timezone():
    late = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
    utc_profile = LearnerProfile(learner_id=1, streak_days=1, last_active=date(2026, 3, 1))
    assert update_streak(utc_profile, late) == 1

    # already March 2nd in Shanghai
    sh_profile = LearnerProfile(learner_id=2, streak_days=1, last_active=date(2026, 3, 1))
    assert update_streak(sh_profile, late, ZoneInfo("Asia/Shanghai")) == 2


def test_seven_day_streak_unlocks_badge():
    profile = LearnerProfile(learner_id=1)
    for day in range(7):
        result = record_activity(profile, 2, "ai_chat", now=NOW + timedelta(days=day))
    assert profile.streak_days == 7
    assert "streak-7" in result.new_badges


def test_course_events():
    profile = LearnerProfile(learner_id=1)
    assert apply_event(profile, CourseStart("cryptography"), NOW) == POINTS["course_start"]
    assert profile.current_course.course_id == "cryptography"

    assert apply_event(profile, CourseComplete("cryptography", 90), NOW) == POINTS["course_complete"]
    assert profile.current_course is None
    assert profile.completed_courses["cryptography"].score == 90

    assert apply_event(profile, CourseComplete("cryptography"), NOW) == POINTS["course_repeat"]
    assert len(profile.completed_courses) == 1
    assert "first-course" in check_badges(profile, NOW)


def test_exercise_completion_is_idempotent_per_id():
    profile = LearnerProfile(learner_id=1)
    assert apply_event(profile, ExerciseComplete("caesar-cipher", 60), NOW) == POINTS["exercise_complete"]
    assert apply_event(profile, ExerciseComplete("caesar-cipher", 80), NOW) == POINTS["exercise_improved"]
    assert apply_event(profile, ExerciseComplete("caesar-cipher", 70), NOW) == POINTS["exercise_retry"]

    record = profile.completed_exercises["caesar-cipher"]
    assert len(profile.completed_exercises) == 1
    assert record.attempts == 3
    assert record.best_score == 80


def test_parse_event():
    assert parse_event({"action": "course_start", "courseId": "sql-injection"}) == CourseStart("sql-injection")
    assert parse_event({"action": "exercise_complete", "exerciseId": "brute-force", "score": "75"}) == \
        ExerciseComplete("brute-force", 75)

    with pytest.raises(InvalidRequest):
        parse_event({"action": "teleport"})
    with pytest.raises(InvalidRequest):
        parse_event({"action": "course_complete"})
    with pytest.raises(InvalidRequest):
        parse_event({"action": "course_complete", "courseId": "x", "score": "lots"})


def test_level_progress():
    assert next_level_target(50) == 100
    assert level_progress(50) == 50.0
    assert next_level_target(5500) == 6000
    assert level_progress(5500) == 50.0
