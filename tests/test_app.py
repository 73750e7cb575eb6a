from datetime import date

import crud
import groq_handler
from groq_handler import OracleError


def chat(client, message, history=None):
    return client.post("/chat", json={"message": message, "history": history or []})


def follow_up(first_message, reply):
    return [
        {"role": "user", "content": first_message},
        {"role": "assistant", "content": reply},
    ]


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json()["ok"] is True


# ---------- chat ----------
def test_chat_requires_message(client):
    assert client.post("/chat", json={"message": "  "}).status_code == 400
    assert client.post("/chat", json={}).status_code == 400


def test_chat_range_reminder_flow(client, monkeypatch):
    monkeypatch.setattr(
        groq_handler, "complete",
        lambda system, history, message: "CONFIRM: REMINDER | Physics | DATE_RANGE: 15-19 jan | TIME: 6 pm",
    )
    first = chat(client, "remind me to do physics 15-19 jan at 6pm").get_json()
    assert "createdReminder" not in first
    assert client.get("/reminders").get_json()["reminders"] == []

    second = chat(client, "yes", follow_up("remind me to do physics 15-19 jan at 6pm", first["response"]))
    body = second.get_json()
    assert second.status_code == 200
    assert body["createdReminder"] is True
    assert body["reminderCount"] == 5

    stored = client.get("/reminders").get_json()["reminders"]
    assert [r["date"] for r in stored] == [f"2025-01-{d}" for d in range(15, 20)]
    assert {r["time"] for r in stored} == {"18:00:00"}


def test_chat_task_flow_with_local_oracle(client):
    first = chat(client, "add task read chapter 1").get_json()
    assert 'create the task "read chapter 1"' in first["response"]

    body = chat(client, "yes", follow_up("add task read chapter 1", first["response"])).get_json()
    assert body["createdTask"] is True
    assert [t["title"] for t in client.get("/tasks").get_json()["tasks"]] == ["read chapter 1"]


def test_chat_note_is_saved(client):
    body = chat(client, "note: review formulas before bed").get_json()
    assert body["createdNote"] is True
    assert client.get("/notes").get_json()["notes"][0]["content"] == "review formulas before bed"


def test_affirmation_with_nothing_pending(client):
    res = chat(client, "yes")
    assert res.status_code == 200
    assert set(res.get_json()) == {"response"}
    assert client.get("/tasks").get_json()["tasks"] == []
    assert client.get("/reminders").get_json()["reminders"] == []


def test_range_commit_keeps_going_after_a_failed_insert(db, monkeypatch):
    import app as app_module

    insert = crud.create_reminder

    def insert_failing_on_17th(session, *, date_, **kwargs):
        if date_ == date(2025, 1, 17):
            date_ = None  # NOT NULL violation inside the shared session
        return insert(session, date_=date_, **kwargs)

    monkeypatch.setattr(crud, "create_reminder", insert_failing_on_17th)
    envelope = "<!-- CONFIRM: REMINDER | Physics | DATE_RANGE: 2025-01-15 to 2025-01-19 | TIME: 18:00 -->"
    result = app_module._engine_for(db).handle("yes", follow_up("remind me", envelope))

    assert result.reminder_count == 4
    assert result.failed_dates == [date(2025, 1, 17)]
    assert [r.date for r in crud.list_reminders(db)] == [
        date(2025, 1, 15), date(2025, 1, 16), date(2025, 1, 18), date(2025, 1, 19),
    ]


def test_chat_oracle_failure_is_502(client, monkeypatch):
    def down(*args):
        raise OracleError("timeout")

    monkeypatch.setattr(groq_handler, "complete", down)
    res = chat(client, "what should I study today?")
    assert res.status_code == 502
    assert res.get_json() == {"error": "Failed to get AI response"}


# ---------- timer & stats ----------
def test_timer_start_validates_category(client):
    bad = client.post("/timer/start", json={"category": "gaming"})
    assert bad.status_code == 400
    assert bad.get_json()["allowed"] == ["revision", "self-study", "class", "others"]

    ok = client.post("/timer/start", json={"category": "revision"}).get_json()
    assert ok["success"] is True
    assert ok["startedAt"] == "2025-01-10T12:00:00"


def test_timer_stop_rejects_bad_sessions(client):
    res = client.post("/timer/stop", json={
        "category": "class",
        "startTime": "2025-01-10T10:00:00",
        "endTime": "2025-01-10T09:00:00",
        "duration": 3600,
    })
    assert res.status_code == 400


def log_session(client, start, end, seconds, category="revision"):
    res = client.post("/timer/stop", json={
        "category": category, "startTime": start, "endTime": end, "duration": seconds,
    })
    assert res.status_code == 200
    return res.get_json()["session"]


def test_stats_daily_with_goal(client):
    log_session(client, "2025-01-10T09:00:00", "2025-01-10T10:00:00", 3600)
    log_session(client, "2025-01-09T09:00:00", "2025-01-09T09:30:00", 1800)

    out = client.get("/stats?type=daily").get_json()
    assert out["type"] == "daily"
    assert out["totalMinutes"] == 60
    assert out["dailyGoal"] == 120
    assert out["goalProgress"] == 50.0
    assert len(out["sessions"]) == 1

    week = client.get("/stats?type=weekly").get_json()
    assert week["totalMinutes"] == 90
    assert len(week["graphData"]) == 7


def test_stats_rejects_unknown_type(client):
    assert client.get("/stats?type=yearly").status_code == 400


def test_day_offset_moves_early_sessions(client):
    assert client.patch("/settings", json={"dayOffsetMinutes": 300}).status_code == 200
    log_session(client, "2025-01-10T03:00:00", "2025-01-10T04:00:00", 3600)

    assert client.get("/stats?type=daily").get_json()["totalSeconds"] == 0
    week = client.get("/stats?type=weekly").get_json()
    graph = {row["date"]: row["minutes"] for row in week["graphData"]}
    assert graph["2025-01-09"] == 60


# ---------- settings ----------
def test_settings_roundtrip_and_validation(client):
    assert client.get("/settings").get_json() == {"dayOffsetMinutes": 0, "dailyGoal": 120}

    res = client.patch("/settings", json={"dailyGoal": 90})
    assert res.get_json()["dailyGoal"] == 90
    assert res.get_json()["dayOffsetMinutes"] == 0

    assert client.patch("/settings", json={"dayOffsetMinutes": 1440}).status_code == 400
    assert client.patch("/settings", json={"dailyGoal": 2000}).status_code == 400
    assert client.get("/settings").get_json() == {"dayOffsetMinutes": 0, "dailyGoal": 90}


# ---------- reminders & tasks ----------
def test_reminders_filtered_by_period(client):
    for when in ("2025-01-10T18:00:00", "2025-01-11T08:00:00", "2025-01-20T08:00:00"):
        res = client.post("/reminders", json={"title": "Revise", "date": when})
        assert res.status_code == 201

    daily = client.get("/reminders?period=daily").get_json()
    assert [r["date"] for r in daily["reminders"]] == ["2025-01-10"]

    weekly = client.get("/reminders?period=weekly").get_json()
    assert [r["date"] for r in weekly["reminders"]] == ["2025-01-10", "2025-01-11"]
    assert weekly["window"]["start"] == "2025-01-06T00:00:00"

    assert len(client.get("/reminders").get_json()["reminders"]) == 3
    assert client.get("/reminders?period=hourly").status_code == 400


def test_tasks_api(client):
    assert client.post("/tasks", json={"title": " "}).status_code == 400
    res = client.post("/tasks", json={"title": "Past papers", "description": "2019 set"})
    assert res.status_code == 201
    assert res.get_json()["task"]["status"] == "todo"
    assert len(client.get("/tasks?status=todo").get_json()["tasks"]) == 1
    assert client.get("/tasks?status=done").get_json()["tasks"] == []
