import logging
import threading
from datetime import date
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from academy.errors import DependencyUnavailable, NotFound
from academy.models import EarnedBadge, User
from academy.progress import ExerciseComplete, apply_event
from academy.store import LogNotifier, ProfileStore


@pytest.fixture
def learner(db_session):
    user = User(username="dana", email="dana@example.com", password_hash="x")
    db_session.session.add(user)
    db_session.session.commit()
    return user


def test_load_unknown_learner(db_session):
    with pytest.raises(NotFound):
        ProfileStore().load(4242)


def test_editing_persists_profile(db_session, learner):
    store = ProfileStore("Europe/Berlin")
    with store.editing(learner.id) as profile:
        profile.points = 150
        profile.level = 2
        profile.last_active = date(2026, 1, 5)
        apply_event(profile, ExerciseComplete("port-scanning", 70))

    reloaded = store.load(learner.id)
    assert reloaded.points == 150
    assert reloaded.last_active == date(2026, 1, 5)
    assert reloaded.completed_exercises["port-scanning"].best_score == 70
    assert reloaded.completed_exercises["port-scanning"].completed_at.tzinfo is not None


def test_record_awards_and_badges(db_session, learner):
    store = ProfileStore()
    profile, result = store.record(learner.id, 120, "course_complete")
    assert result.points_earned == 120
    assert result.new_badges == ["first-100"]
    assert store.load(learner.id).badge_ids() == ["first-100"]

    _profile, again = store.record(learner.id, 1, "ai_chat")
    assert again.new_badges == []
    assert len(learner.badges) == 1


def test_failed_save_is_retryable(db_session, learner):
    store = ProfileStore()
    profile = store.load(learner.id)
    profile.points = 10
    failure = OperationalError("UPDATE users", {}, Exception("database is locked"))
    with mock.patch.object(db_session.session, "commit", side_effect=failure):
        with pytest.raises(DependencyUnavailable) as excinfo:
            store.save(profile)
    assert excinfo.value.retryable
    assert store.load(learner.id).points == 0


def test_concurrent_records_for_one_learner(app_instance, db_session, learner):
    store = app_instance.extensions["academy"]["profiles"]
    learner_id = learner.id
    rounds = 60
    errors = []

    def worker():
        for _ in range(rounds):
            # each call gets its own context and session, like separate requests
            with app_instance.app_context():
                try:
                    store.record(learner_id, 1, "ai_chat")
                except Exception as exc:
                    errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    db_session.session.expire_all()
    assert db_session.session.get(User, learner_id).points == 2 * rounds
    assert EarnedBadge.query.filter_by(user_id=learner_id, badge_id="first-100").count() == 1


def test_notifier_logs(caplog):
    with caplog.at_level(logging.INFO, logger="academy.notify"):
        LogNotifier().notify("Correct! +100 points!", "success")
        LogNotifier().notify("Not quite, try again!", "error")
    levels = [r.levelno for r in caplog.records if r.name == "academy.notify"]
    assert levels == [logging.INFO, logging.ERROR]
