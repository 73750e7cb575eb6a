# app.py - Study dashboard API

from flask import Flask, request, jsonify
from flask_cors import CORS
from typing import Any, Dict
from datetime import datetime as _dt

from pydantic import ValidationError

import crud
import groq_handler
from database import db_session
from groq_handler import OracleError
from intent_engine import IntentEngine
from scheduler.windows import GRANULARITIES, window_for
from schemas import (
    ChatRequest,
    ReminderCreate,
    Reminder as ReminderSchema,
    SettingsUpdate,
    TaskCreate,
    TimerStart,
    TimerStop,
    TIMER_CATEGORIES,
)
from stats import compute_stats

app = Flask(__name__)
CORS(app)


# ---------- helpers ----------
def _now() -> _dt:
    return _dt.now()


def _validation_error(e: ValidationError):
    details = [err.get("msg") for err in e.errors()]
    return jsonify({"error": details[0] if details else "Invalid request", "details": details}), 400


def _serialize_reminder(r) -> Dict[str, Any]:
    try:
        return ReminderSchema.model_validate(r).model_dump(mode="json")
    except ValidationError as e:
        print("SERIALIZE_WARNING:", getattr(r, "id", None), e)
        return r.to_dict()


def _engine_for(db) -> IntentEngine:
    """Bind the engine's abstract effects to this request's DB session."""

    def create_task(title: str) -> int:
        return crud.create_task(db, title=title).id

    def create_reminder(title: str, when: _dt, description=None) -> int:
        r = crud.create_reminder(
            db,
            date_=when.date(),
            time_=when.time().replace(second=0, microsecond=0),
            title=title,
            description=description,
        )
        return r.id

    def create_note(content: str) -> int:
        return crud.create_note(db, content=content).id

    return IntentEngine(
        oracle=groq_handler.complete,
        create_task=create_task,
        create_reminder=create_reminder,
        create_note=create_note,
        now=_now,
    )


def _granularity(param: str) -> str:
    g = (request.args.get(param) or "daily").strip().lower()
    if g not in GRANULARITIES:
        raise ValueError(f"{param} must be one of {', '.join(GRANULARITIES)}")
    return g


@app.get('/health')
def health():
    return jsonify({'ok': True, 'service': 'study-dashboard', 'time': _now().isoformat()})


# Tiny root route for manual pings
@app.get('/')
def root():
    return jsonify({'status': 'running'})


# JSON/error handler for bad JSON bodies
@app.errorhandler(400)
def handle_400(err):
    return jsonify({'error': 'Bad Request', 'details': str(err)}), 400


# ---------- chat ----------
@app.route('/chat', methods=['POST', 'OPTIONS'])
def chat():
    if request.method == 'OPTIONS':
        return ('', 204)
    try:
        req = ChatRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    with db_session() as db:
        try:
            result = _engine_for(db).handle(req.message, req.history)
        except OracleError as e:
            print("[chat] oracle unavailable:", e)
            return jsonify({'error': 'Failed to get AI response'}), 502
        except Exception as e:
            print("[chat] error in AI chat:", e)
            return jsonify({'error': 'Failed to get AI response'}), 500
    return jsonify(result.to_json())


# ---------- stats ----------
@app.get('/stats')
def stats():
    try:
        granularity = _granularity('type')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    with db_session() as db:
        settings = crud.get_settings(db)
        offset = settings.day_offset_minutes
        window = window_for(_now(), granularity, offset)
        sessions = crud.get_sessions_starting_between(db, window.start, window.exclusive_end)
        out = compute_stats(sessions, window, offset, settings.daily_goal)
        out['type'] = granularity
        out['sessions'] = [s.to_dict() for s in sessions]
    return jsonify(out)


# ---------- reminders ----------
@app.get('/reminders')
def get_reminders():
    period = request.args.get('period')
    with db_session() as db:
        if not period:
            return jsonify({'reminders': [_serialize_reminder(r) for r in crud.list_reminders(db)]})
        try:
            granularity = _granularity('period')
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        window = window_for(_now(), granularity, crud.get_settings(db).day_offset_minutes)
        rows = crud.list_reminders(db, start_date=window.start.date(), end_date=window.exclusive_end.date())
        picked = [r for r in rows if window.contains(r.when)]
        return jsonify({
            'period': granularity,
            'window': window.to_dict(),
            'reminders': [_serialize_reminder(r) for r in picked],
        })


@app.post('/reminders')
def post_reminder():
    try:
        body = ReminderCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)
    with db_session() as db:
        r = crud.create_reminder(
            db,
            date_=body.date.date(),
            time_=body.date.time().replace(microsecond=0),
            title=body.title,
            description=body.description,
        )
        return jsonify({'reminder': _serialize_reminder(r)}), 201


# ---------- tasks / notes ----------
@app.get('/tasks')
def get_tasks():
    with db_session() as db:
        rows = crud.list_tasks(db, status=request.args.get('status'))
        return jsonify({'tasks': [t.to_dict() for t in rows]})


@app.post('/tasks')
def post_task():
    try:
        body = TaskCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)
    with db_session() as db:
        t = crud.create_task(db, title=body.title, description=body.description)
        return jsonify({'task': t.to_dict()}), 201


@app.get('/notes')
def get_notes():
    with db_session() as db:
        return jsonify({'notes': [n.to_dict() for n in crud.list_notes(db)]})


# ---------- timer ----------
@app.post('/timer/start')
def timer_start():
    try:
        TimerStart.model_validate(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({'error': 'Invalid category', 'allowed': list(TIMER_CATEGORIES)}), 400
    return jsonify({'success': True, 'startedAt': _now().isoformat()})


@app.post('/timer/stop')
def timer_stop():
    try:
        body = TimerStop.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)
    with db_session() as db:
        s = crud.create_study_session(
            db,
            category=body.category,
            start_time=body.start_time,
            end_time=body.end_time,
            duration=body.duration,
        )
        return jsonify({'success': True, 'session': s.to_dict()})


# ---------- settings ----------
@app.get('/settings')
def get_settings():
    with db_session() as db:
        return jsonify(crud.get_settings(db).to_dict())


@app.patch('/settings')
def patch_settings():
    try:
        body = SettingsUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)
    with db_session() as db:
        s = crud.update_settings(
            db,
            day_offset_minutes=body.day_offset_minutes,
            daily_goal=body.daily_goal,
        )
        return jsonify({'message': 'Settings updated successfully', **s.to_dict()})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
