import os
import tempfile

import pytest

from academy import create_app
from academy.models import db

from support import FakeTutor, ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def app_instance(scheduler):
    # file-based sqlite so data survives across request contexts
    db_fd, db_path = tempfile.mkstemp()
    app = create_app({
        "TESTING": True,
        "WTF_CSRF_ENABLED": False,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "SCHEDULER": scheduler,
        "TUTOR_CLIENT": FakeTutor(),
    })
    ctx = app.app_context()
    ctx.push()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()
        os.close(db_fd)
        os.unlink(db_path)


@pytest.fixture
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture
def db_session(app_instance):
    return db
