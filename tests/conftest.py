import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Must be set before models / groq_handler are imported.
os.environ["STUDY_DB_URL"] = "sqlite://"
os.environ["GROQ_API_KEY"] = ""

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def db():
    from models import Base, SessionLocal, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db, monkeypatch):
    import app as app_module

    monkeypatch.setattr(app_module, "_now", lambda: datetime(2025, 1, 10, 12, 0))
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


class Recorder:
    """Collects engine effects instead of hitting a database."""

    def __init__(self, fail_on=()):
        self.tasks = []
        self.reminders = []
        self.notes = []
        self.fail_on = set(fail_on)

    def create_task(self, title):
        self.tasks.append(title)
        return len(self.tasks)

    def create_reminder(self, title, when, description=None):
        if when.date() in self.fail_on:
            raise RuntimeError(f"store rejected {when.date()}")
        self.reminders.append((title, when))
        return len(self.reminders)

    def create_note(self, content):
        self.notes.append(content)
        return len(self.notes)


@pytest.fixture
def recorder():
    return Recorder()
