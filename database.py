# database.py
"""Session plumbing shared by app.py and scripts/."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from models import SessionLocal, init_db

init_db()


def get_db() -> Session:
    """A new session; close it yourself or use db_session()."""
    return SessionLocal()


@contextmanager
def db_session() -> Iterator[Session]:
    session = get_db()
    try:
        yield session
    finally:
        session.close()
