# groq_handler.py
import os
import re
import requests

from datetime import datetime
from typing import Any, Dict, List, Optional

from date_parser import has_explicit_date, parse_date_range

# Read API key from environment. (Do NOT paste secrets into code.)
GROQ_API_KEY = os.getenv("GROQ_API_KEY", "").strip()
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant").strip()
GROQ_TIMEOUT = float(os.getenv("GROQ_TIMEOUT", "25"))


class OracleError(RuntimeError):
    """The language model could not produce a reply (network, HTTP, or shape)."""


# ------------------------ utilities ------------------------
def _normalize_leading_tokens(s: str) -> str:
    """
    Remove leading list numbers/bullets like:
      '1. ', '2) ', '- ', '* ', '• ', '– '
    and collapse double spaces.
    """
    if not s:
        return s
    s = s.lstrip()
    s = re.sub(r"^\s*(?:\d+[\.\)]\s+|[-*•–]\s+)+", "", s)
    return re.sub(r"\s{2,}", " ", s).strip()


# Helper to trim trailing punctuation from titles
def _strip_trailing_punct(s: str) -> str:
    """Trim trailing sentence punctuation that LLMs often include in quoted titles."""
    if not s:
        return s
    return re.sub(r'[.,;:!?]+$', '', s).strip()


def _history_messages(history: Optional[List[Any]]) -> List[Dict[str, str]]:
    """Keep only well-formed user/assistant turns; accepts dicts or objects with role/content."""
    out: List[Dict[str, str]] = []
    for turn in history or []:
        role = turn.get("role") if isinstance(turn, dict) else getattr(turn, "role", None)
        content = turn.get("content") if isinstance(turn, dict) else getattr(turn, "content", None)
        if role in ("user", "assistant") and isinstance(content, str):
            out.append({"role": role, "content": content})
    return out


# ------------------------ naive local oracle ------------------------
# Everything after the title that looks like "when": dates, weekdays, times.
_MON = (
    r"(?:january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept?|oct|nov|dec)"
)
_WEEKDAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|mon|tues?|wed|thu(?:rs?)?|fri|sat|sun)"
_WHEN_SPLIT_RE = re.compile(
    r"\s+(?=(?:on|at|from|between|today|tonight|tomorrow|day\s+after)\b"
    r"|in\s+\d+\s+(?:day|week)"
    rf"|(?:this\s+|next\s+)?{_WEEKDAY}\b"
    r"|\d{1,2}(?:st|nd|rd|th)\b"
    r"|\d{1,2}\s*(?:[/-]|to\s)\s*\d"
    rf"|\d{{1,2}}\s+{_MON}\b"
    r"|\d{4}-\d{2}-\d{2}"
    rf"|{_MON}\s+\d)",
    re.I,
)


def _split_title_and_when(text: str) -> tuple[str, str]:
    parts = _WHEN_SPLIT_RE.split(text, maxsplit=1)
    title = _strip_trailing_punct(parts[0].strip().strip('"“”'))
    when = parts[1].strip() if len(parts) > 1 else ""
    return title, when


def naive_reply(message: str, history: Optional[List[Any]] = None, now: Optional[datetime] = None) -> str:
    """
    Very small rule-based stand-in used ONLY when the GROQ key is missing.
    Emits the same markers the real model is instructed to use.
    """
    t = _normalize_leading_tokens((message or "").strip())
    tl = t.lower()

    m = re.match(r"^(?:note|remember)\s*:\s*(.+)$", t, flags=re.I | re.S)
    if m:
        return f"NOTE: {_strip_trailing_punct(m.group(1).strip())}"

    m = re.search(r"\b(?:remind|notify|alert|ping)\s+me\s+(?:to\s+|about\s+)?(.+)$", t, flags=re.I)
    if m:
        title, when = _split_title_and_when(m.group(1))
        title = title or "Reminder"
        time_text = when or "09:00"
        if when and parse_date_range(when, now) is not None:
            return f"CONFIRM: REMINDER | {title} | DATE_RANGE: {when} | TIME: {time_text}"
        date_text = when if has_explicit_date(when, now) else "today"
        return f"CONFIRM: REMINDER | {title} | DATE: {date_text} | TIME: {time_text}"

    m = re.match(r"^(?:task\s*:\s*|add\s+(?:a\s+)?task\s+|i\s+(?:need|have)\s+to\s+)(.+)$", t, flags=re.I | re.S)
    if m:
        title = _strip_trailing_punct(m.group(1).strip().strip('"“”'))
        return f"CONFIRM: TASK | {title}"

    if tl in {"hi", "hello", "hey"}:
        return "Hi! Tell me what you're studying today, or ask me to add a task or a reminder."
    return (
        "Keep going! Break your study time into focused blocks, review what you covered "
        "at the end of each session, and tell me if you want a task or a reminder added."
    )


# ------------------------ GROQ completion ------------------------
def complete(system_prompt: str, history: Optional[List[Any]], user_message: str) -> str:
    """
    Send (system prompt, prior turns, current message) to the chat-completions
    endpoint and return the assistant text.

    Without GROQ_API_KEY the naive local oracle answers instead.
    Raises OracleError on transport, HTTP, or response-shape failures; no retry.
    """
    if not GROQ_API_KEY:
        print("[groq_handler] GROQ_API_KEY not set – using naive local oracle.")
        return naive_reply(user_message, history)

    headers = {
        "Authorization": f"Bearer {GROQ_API_KEY}",
        "Content-Type": "application/json",
    }
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(_history_messages(history))
    messages.append({"role": "user", "content": user_message})

    payload = {
        "model": GROQ_MODEL,
        "messages": messages,
        "temperature": 0.7,
        "max_tokens": 1024,
    }

    try:
        resp = requests.post(GROQ_API_URL, headers=headers, json=payload, timeout=GROQ_TIMEOUT)
        resp.raise_for_status()
        result = resp.json()
        text = result["choices"][0]["message"]["content"] or ""
    except requests.RequestException as e:
        print("[groq_handler] request failed:", e)
        raise OracleError(f"Groq request failed: {e}") from e
    except (KeyError, IndexError, TypeError, ValueError) as e:
        print("[groq_handler] unexpected response shape:", e)
        raise OracleError(f"Unexpected Groq response: {e}") from e

    print("GROQ LLM RESPONSE:\n", text)
    return text.strip()
