from datetime import date, time

import crud
from scripts.add_default_reminders import DEFAULT_REMINDERS, add_default_reminders


def test_adds_exam_reminders_once(db):
    assert add_default_reminders(db) == len(DEFAULT_REMINDERS)
    assert add_default_reminders(db) == 0

    rows = crud.list_reminders(db)
    assert [(r.title, r.date, r.time) for r in rows] == [
        ("UPSC Prelims Exam", date(2026, 5, 24), time(9, 0)),
        ("UPSC Mains Exam", date(2026, 8, 21), time(9, 0)),
    ]


def test_skips_when_one_already_exists(db):
    crud.create_reminder(db, date_=date(2026, 5, 24), time_=time(9, 0), title="UPSC Prelims Exam")
    assert add_default_reminders(db) == 0
    assert len(crud.list_reminders(db)) == 1
