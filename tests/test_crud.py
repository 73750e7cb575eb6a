from datetime import date, time

import pytest
from sqlalchemy.exc import IntegrityError

import crud


def test_failed_insert_leaves_session_usable(db):
    with pytest.raises(IntegrityError):
        crud.create_reminder(db, date_=None, time_=time(18, 0), title="Physics")

    r = crud.create_reminder(db, date_=date(2025, 1, 16), time_=time(18, 0), title="Physics")
    assert r.id is not None
    assert [x.date for x in crud.list_reminders(db)] == [date(2025, 1, 16)]


def test_settings_row_is_created_once(db):
    first = crud.get_settings(db)
    crud.update_settings(db, daily_goal=45)
    assert crud.get_settings(db).id == first.id == 1
    assert crud.get_settings(db).daily_goal == 45
