from datetime import date, datetime

import pytest
import requests

import groq_handler
from groq_handler import OracleError, complete, naive_reply
from intent_engine import (
    AbsoluteDate,
    ActionType,
    DateRange,
    Direct,
    PendingProposal,
    Propose,
    decode_oracle_reply,
    resolve_action,
)

FRIDAY = datetime(2025, 1, 10, 12, 0)


class FakeResponse:
    def __init__(self, payload=None, status_error=None):
        self.payload = payload
        self.status_error = status_error

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def json(self):
        return self.payload


def _proposal(reply):
    outcome = decode_oracle_reply(reply)
    assert isinstance(outcome, Propose)
    return resolve_action(outcome.action, FRIDAY)


# ---------- naive local oracle ----------
def test_naive_note():
    assert naive_reply("Note: photosynthesis needs light.") == "NOTE: photosynthesis needs light"


def test_naive_single_reminder():
    reply = naive_reply("remind me to revise algebra on 14th dec at 2pm")
    assert reply.startswith("CONFIRM: REMINDER | revise algebra | DATE: ")
    assert _proposal(reply) == PendingProposal(
        ActionType.REMINDER, "revise algebra", AbsoluteDate(2025, 12, 14), "14:00"
    )


def test_naive_range_reminder():
    reply = naive_reply("remind me to study physics 15-19 jan at 6pm")
    assert "DATE_RANGE:" in reply
    p = _proposal(reply)
    assert p.title == "study physics"
    assert p.when == DateRange(date(2025, 1, 15), date(2025, 1, 19))
    assert p.time == "18:00"


def test_naive_weekday_range_uses_given_clock():
    reply = naive_reply("remind me to go to the gym monday to friday at 7am", now=FRIDAY)
    assert "DATE_RANGE: monday to friday" in reply
    p = _proposal(reply)
    assert p.title == "go to the gym"
    assert p.when == DateRange(date(2025, 1, 13), date(2025, 1, 17))
    assert p.time == "07:00"


def test_naive_reminder_defaults_to_today_at_nine():
    reply = naive_reply("remind me to call my friend")
    assert reply == "CONFIRM: REMINDER | call my friend | DATE: today | TIME: 09:00"


@pytest.mark.parametrize("msg", ["add task finish chapter 3", "Task: finish chapter 3", "I need to finish chapter 3."])
def test_naive_task(msg):
    assert naive_reply(msg) == "CONFIRM: TASK | finish chapter 3"


def test_naive_chit_chat_has_no_markers():
    assert isinstance(decode_oracle_reply(naive_reply("hello")), Direct)
    assert isinstance(decode_oracle_reply(naive_reply("how do I focus better?")), Direct)


# ---------- remote completion ----------
def test_complete_without_key_uses_naive_oracle(monkeypatch):
    monkeypatch.setattr(groq_handler, "GROQ_API_KEY", "")

    def boom(*a, **k):
        raise AssertionError("network should not be used")

    monkeypatch.setattr(groq_handler.requests, "post", boom)
    assert complete("sys", [], "task: read notes") == "CONFIRM: TASK | read notes"


def test_complete_sends_prompt_history_and_message(monkeypatch):
    monkeypatch.setattr(groq_handler, "GROQ_API_KEY", "test-key")
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(url=url, headers=headers, json=json, timeout=timeout)
        return FakeResponse({"choices": [{"message": {"content": "  Keep it up!  "}}]})

    monkeypatch.setattr(groq_handler.requests, "post", fake_post)
    history = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "system", "content": "ignored"},
        {"role": "user"},
    ]
    assert complete("SYSTEM", history, "how am I doing?") == "Keep it up!"

    assert seen["url"] == groq_handler.GROQ_API_URL
    assert seen["headers"]["Authorization"] == "Bearer test-key"
    assert seen["json"]["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "how am I doing?"},
    ]
    assert seen["timeout"] == groq_handler.GROQ_TIMEOUT


@pytest.mark.parametrize("response", [
    FakeResponse(status_error=requests.HTTPError("503 Service Unavailable")),
    FakeResponse({"choices": []}),
    FakeResponse({"error": "bad"}),
])
def test_complete_failures_raise_oracle_error(monkeypatch, response):
    monkeypatch.setattr(groq_handler, "GROQ_API_KEY", "test-key")
    monkeypatch.setattr(groq_handler.requests, "post", lambda *a, **k: response)
    with pytest.raises(OracleError):
        complete("SYSTEM", [], "hello")


def test_complete_transport_error_raises_oracle_error(monkeypatch):
    monkeypatch.setattr(groq_handler, "GROQ_API_KEY", "test-key")

    def fail(*a, **k):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(groq_handler.requests, "post", fail)
    with pytest.raises(OracleError):
        complete("SYSTEM", [], "hello")
