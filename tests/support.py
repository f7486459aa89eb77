import os
import tempfile
import unittest

from werkzeug.security import generate_password_hash

from academy import create_app
from academy.errors import DependencyUnavailable
from academy.models import User, db
from academy.scheduling import TaskHandle


class ManualScheduler:
    """Scheduler stand-in that only runs callbacks when told to."""

    def __init__(self):
        self.tasks = []

    def call_later(self, delay, fn, *args):
        handle = TaskHandle()
        self.tasks.append((delay, handle, fn, args))
        return handle

    def pending(self):
        return sum(1 for _delay, handle, _fn, _args in self.tasks if not handle.cancelled)

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        ran = 0
        for _delay, handle, fn, args in tasks:
            if not handle.cancelled:
                fn(*args)
                ran += 1
        return ran

    def shutdown(self):
        for _delay, handle, _fn, _args in self.tasks:
            handle.cancel()
        self.tasks = []


class FakeTutor:
    available = True

    def __init__(self, reply="Use parameterised queries."):
        self.reply = reply
        self.calls = []
        self.fail = False

    def complete(self, messages, temperature=0.7, max_tokens=1500):
        self.calls.append(messages)
        if self.fail:
            raise DependencyUnavailable("The AI tutor is busy, please try again shortly.")
        return self.reply


class AcademyTestCase(unittest.TestCase):
    password = "secret123"

    def setUp(self):
        self.db_fd, self.db_path = tempfile.mkstemp()
        self.scheduler = ManualScheduler()
        self.tutor = FakeTutor()
        self.app = create_app({
            "TESTING": True,
            "WTF_CSRF_ENABLED": False,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{self.db_path}",
            "SCHEDULER": self.scheduler,
            "TUTOR_CLIENT": self.tutor,
        })
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.client = self.app.test_client()

    def tearDown(self):
        self.scheduler.shutdown()
        db.session.remove()
        db.drop_all()
        self.app_context.pop()
        os.close(self.db_fd)
        os.unlink(self.db_path)

    def make_user(self, username, is_admin=False, **fields):
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=generate_password_hash(self.password),
            is_admin=is_admin,
            **fields,
        )
        db.session.add(user)
        db.session.commit()
        return user

    def login(self, username, client=None):
        client = client or self.client
        resp = client.post("/api/auth/login", json={"username": username, "password": self.password})
        self.assertEqual(resp.status_code, 200, resp.get_json())
        return resp

    def register(self, username="alice", client=None):
        client = client or self.client
        resp = client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@example.com", "password": self.password},
        )
        self.assertEqual(resp.status_code, 201, resp.get_json())
        return resp.get_json()["data"]["user"]
