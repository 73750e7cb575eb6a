# intent_engine.py
"""
Conversational scheduling: chat text -> task / reminder / note.

Flow for one chat turn (no server-side state; everything needed is in the
history the client sends back):

  1. If the previous assistant turn asked for confirmation and the user now
     says "yes" (or another whitelisted affirmation), decode the proposal
     embedded in that assistant turn and commit it. The model is not called.
  2. Otherwise ask the model. Its reply is decoded exactly once into
     Direct(text), Propose(action) or Commit(action).
       - Propose -> resolve dates/times, reply with a confirmation question
         that carries a canonical hidden envelope for step 1.
       - Commit  -> resolve and commit immediately, unless the user said
                    "yes" to no proposal at all; then it is proposed instead.
       - Direct  -> pass the text through (minus any stray envelope).

Envelope formats (the only thing step 1 accepts):
  <!-- CONFIRM: TASK | <title> -->
  <!-- CONFIRM: REMINDER | <title> | DATE: YYYY-MM-DD | TIME: HH:MM -->
  <!-- CONFIRM: REMINDER | <title> | DATE_RANGE: YYYY-MM-DD to YYYY-MM-DD | TIME: HH:MM -->
The HTML comment wrapper is optional when decoding.

A proposal lives for exactly one turn: only the latest assistant message is
inspected, and replies to a non-affirming turn never re-embed it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as _date, datetime as _dt, time as _time
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from date_parser import format_range, parse_date_range, parse_time, resolve_date, resolve_time
from scheduler.recurrence import expand_daily_until
from schemas import ChatResponse

AFFIRMATIONS = frozenset({
    "yes", "y", "sure", "ok", "okay", "confirm", "proceed", "go ahead",
    "do it", "create it", "add it", "yeah", "yep", "alright",
})

# Phrases our own confirmation prompts always contain; the envelope itself
# may have been stripped by whatever rendered the transcript.
CONFIRMATION_FINGERPRINTS = (
    "would you like me to",
    'reply "yes" to confirm',
    "reply yes to confirm",
)


class ActionType(str, Enum):
    TASK = "TASK"
    REMINDER = "REMINDER"
    NOTE = "NOTE"


# ------------------------ value objects ------------------------
@dataclass(frozen=True)
class AbsoluteDate:
    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, d: _date) -> "AbsoluteDate":
        return cls(d.year, d.month, d.day)

    def to_date(self) -> _date:
        return _date(self.year, self.month, self.day)


@dataclass(frozen=True)
class DateRange:
    start: _date
    end: _date

    def days(self) -> List[_date]:
        return expand_daily_until(self.start, self.end)


ParsedDateSpec = Union[AbsoluteDate, DateRange]


@dataclass(frozen=True)
class PendingProposal:
    """A resolved, not-yet-committed action. `time` is 24h 'HH:MM'."""
    action_type: ActionType
    title: str
    when: Optional[ParsedDateSpec] = None
    time: Optional[str] = None

    @property
    def payload(self) -> str:
        title = _clean_title(self.title)
        if self.action_type is not ActionType.REMINDER:
            return title
        if isinstance(self.when, DateRange):
            return (f"{title} | DATE_RANGE: {self.when.start.isoformat()} to "
                    f"{self.when.end.isoformat()} | TIME: {self.time}")
        return f"{title} | DATE: {self.when.to_date().isoformat()} | TIME: {self.time}"

    def envelope(self) -> str:
        return f"<!-- CONFIRM: {self.action_type.value} | {self.payload} -->"


@dataclass(frozen=True)
class RawAction:
    """An action as the model wrote it: date/time fields are still free text."""
    action_type: ActionType
    title: str
    date_text: Optional[str] = None
    range_text: Optional[str] = None
    time_text: Optional[str] = None


@dataclass(frozen=True)
class Direct:
    text: str


@dataclass(frozen=True)
class Propose:
    action: RawAction


@dataclass(frozen=True)
class Commit:
    action: RawAction


OracleOutcome = Union[Direct, Propose, Commit]


class UnparseableRange(ValueError):
    """A DATE_RANGE that does not resolve to start <= end."""


# ------------------------ envelope codec ------------------------
def _clean_title(title: str) -> str:
    t = re.sub(r"\s+", " ", (title or "").replace("|", "/").replace("-->", ""))
    return t.strip().strip('"“”').strip()


_ENVELOPE_RE = re.compile(r"(?:<!--\s*)?\bCONFIRM:[ \t]*(?P<body>[^\n]*?)[ \t]*(?:-->|$)", re.M)
_TASK_BODY_RE = re.compile(r"TASK\s*\|\s*(?P<title>[^|]+?)")
_REMINDER_BODY_RE = re.compile(
    r"REMINDER\s*\|\s*(?P<title>[^|]+?)\s*\|\s*"
    r"(?:DATE:\s*(?P<date>\d{4}-\d{2}-\d{2})"
    r"|DATE_RANGE:\s*(?P<start>\d{4}-\d{2}-\d{2})\s+to\s+(?P<end>\d{4}-\d{2}-\d{2}))"
    r"\s*\|\s*TIME:\s*(?P<time>\d{2}:\d{2})"
)


def _decode_body(body: str) -> Optional[PendingProposal]:
    m = _TASK_BODY_RE.fullmatch(body)
    if m:
        title = _clean_title(m.group("title"))
        return PendingProposal(ActionType.TASK, title) if title else None

    m = _REMINDER_BODY_RE.fullmatch(body)
    if not m:
        return None
    title = _clean_title(m.group("title"))
    hh, mm = (int(x) for x in m.group("time").split(":"))
    if not title or hh > 23 or mm > 59:
        return None

    # Already canonical, so the parser just passes the ISO dates through.
    if m.group("date"):
        try:
            _date.fromisoformat(m.group("date"))
        except ValueError:
            return None
        when: ParsedDateSpec = AbsoluteDate.from_date(resolve_date(m.group("date")))
    else:
        rng = parse_date_range(f"{m.group('start')} to {m.group('end')}")
        if rng is None:
            return None
        when = DateRange(*rng)
    return PendingProposal(ActionType.REMINDER, title, when, parse_time(m.group("time")))


def decode_proposal(text: Optional[str]) -> Optional[PendingProposal]:
    """
    Strictly decode the last CONFIRM envelope in `text`.
    Anything that is not exactly one of the canonical forms gives None.
    """
    if not text:
        return None
    bodies = [m.group("body") for m in _ENVELOPE_RE.finditer(text)]
    if not bodies:
        return None
    return _decode_body(bodies[-1].strip())


def strip_envelopes(text: str) -> str:
    """Remove hidden proposal envelopes (wrapped or bare) from display text."""
    out = re.sub(r"<!--\s*CONFIRM:.*?-->", "", text or "", flags=re.S)
    out = re.sub(r"(?m)^[ \t]*CONFIRM:.*$\n?", "", out)
    return out.strip()


def is_affirmation(message: Optional[str]) -> bool:
    return re.sub(r"\s+", " ", (message or "").strip().lower()) in AFFIRMATIONS


def looks_like_confirmation(text: Optional[str]) -> bool:
    tl = (text or "").lower()
    return "confirm:" in tl or any(fp in tl for fp in CONFIRMATION_FINGERPRINTS)


def _turn_field(turn: Any, name: str) -> Any:
    return turn.get(name) if isinstance(turn, dict) else getattr(turn, name, None)


def last_assistant_message(history: Optional[List[Any]]) -> Optional[str]:
    for turn in reversed(history or []):
        if _turn_field(turn, "role") == "assistant":
            content = _turn_field(turn, "content")
            return content if isinstance(content, str) else None
    return None


# ------------------------ model reply decoding ------------------------
_CONFIRM_LINE_RE = re.compile(r"CONFIRM:\s*(TASK|REMINDER)\s*\|\s*([^\n]+?)\s*(?:-->|$)", re.M)
_COMMIT_LINE_RE = re.compile(r"^[ \t*>-]*(TASK|REMINDER|NOTE):\s*(.+?)\s*$", re.M)


def _raw_action(kind: str, payload: str) -> RawAction:
    """Split a loose 'title | DATE: … | TIME: …' payload."""
    action_type = ActionType(kind.upper())
    parts = [p.strip() for p in payload.split("|")]
    title = parts[0].strip().strip('"“”')
    date_text = range_text = time_text = None
    for part in parts[1:]:
        key, _, value = part.partition(":")
        key = key.strip().upper().replace(" ", "_")
        if key == "DATE_RANGE":
            range_text = value.strip()
        elif key == "DATE":
            date_text = value.strip()
        elif key == "TIME":
            time_text = value.strip()
    return RawAction(action_type, title, date_text, range_text, time_text)


def decode_oracle_reply(text: Optional[str]) -> OracleOutcome:
    """Classify a model reply once; nothing downstream re-scans the raw text."""
    text = text or ""
    m = _CONFIRM_LINE_RE.search(text)
    if m:
        return Propose(_raw_action(m.group(1), m.group(2)))
    m = _COMMIT_LINE_RE.search(text)
    if m and m.group(2).strip():
        return Commit(_raw_action(m.group(1), m.group(2)))
    return Direct(strip_envelopes(text))


def resolve_action(raw: RawAction, now: Optional[_dt] = None) -> PendingProposal:
    """Turn free-text date/time fields into a canonical proposal."""
    if raw.action_type is not ActionType.REMINDER:
        return PendingProposal(raw.action_type, raw.title)
    time_str = parse_time(raw.time_text)
    if raw.range_text is not None:
        rng = parse_date_range(raw.range_text, now)
        if rng is None:
            raise UnparseableRange(raw.range_text)
        return PendingProposal(ActionType.REMINDER, raw.title, DateRange(*rng), time_str)
    when = AbsoluteDate.from_date(resolve_date(raw.date_text, now))
    return PendingProposal(ActionType.REMINDER, raw.title, when, time_str)


# ------------------------ human-readable text ------------------------
def _fmt_time(hhmm: str) -> str:
    t = resolve_time(hhmm)
    return _time(t.hour, t.minute).strftime("%I:%M %p").lstrip("0")


def _fmt_day(d: _date) -> str:
    return f"{d.strftime('%a, %b')} {d.day}, {d.year}"


def confirmation_prompt(p: PendingProposal) -> str:
    if p.action_type is ActionType.TASK:
        question = f'Would you like me to create the task "{p.title}"?'
    elif isinstance(p.when, DateRange):
        n = len(p.when.days())
        question = (f'Would you like me to set a daily reminder "{p.title}" at {_fmt_time(p.time)} '
                    f'for {n} days ({format_range(p.when.start, p.when.end)})?')
    else:
        question = (f'Would you like me to set a reminder "{p.title}" for '
                    f'{_fmt_day(p.when.to_date())} at {_fmt_time(p.time)}?')
    return f'{question} Reply "yes" to confirm.\n\n{p.envelope()}'


SYSTEM_PROMPT = """You are a helpful study assistant inside a study-tracking dashboard.
Today is {today} ({weekday}).

When the user asks to add a task or set a reminder, do NOT create it yourself. Reply with ONE line:
  CONFIRM: TASK | <task title>
  CONFIRM: REMINDER | <title> | DATE: <date as the user said it> | TIME: <time as the user said it>
  CONFIRM: REMINDER | <title> | DATE_RANGE: <start> to <end> | TIME: <time>
Use DATE_RANGE whenever the user gives a span of days (e.g. "15-19 jan", "from Monday to Friday").

If the previous assistant message asked for confirmation and the user has now confirmed, reply with ONE line:
  TASK: <task title>
  REMINDER: <title> | DATE: <date> | TIME: <time>
  REMINDER: <title> | DATE_RANGE: <start> to <end> | TIME: <time>

When the user wants to save a note ("Note: X", "Remember: Y"), reply with ONE line:
  NOTE: <note content>

Otherwise give concise, encouraging study advice and never use these markers."""


def build_system_prompt(now: Optional[_dt] = None) -> str:
    now = now or _dt.now()
    return SYSTEM_PROMPT.format(today=now.date().isoformat(), weekday=now.strftime("%A"))


# ------------------------ engine ------------------------
Oracle = Callable[[str, List[Any], str], str]


class IntentEngine:
    """
    One instance per process is fine: nothing is stored between calls.

    oracle(system_prompt, history, message) -> reply text
    create_task(title) -> id
    create_reminder(title, when, description=None) -> id
    create_note(content) -> id            (optional)
    now() -> datetime                     (optional, for tests)
    """

    def __init__(
        self,
        oracle: Oracle,
        create_task: Callable[[str], Any],
        create_reminder: Callable[..., Any],
        create_note: Optional[Callable[[str], Any]] = None,
        now: Optional[Callable[[], _dt]] = None,
    ):
        self.oracle = oracle
        self.create_task = create_task
        self.create_reminder = create_reminder
        self.create_note = create_note
        self.now = now or _dt.now

    # -- entry point --
    def handle(self, message: str, history: Optional[List[Any]] = None) -> ChatResponse:
        message = (message or "").strip()
        if not message:
            raise ValueError("Message is required")
        history = list(history or [])
        now = self.now()

        previous = last_assistant_message(history)
        awaiting = looks_like_confirmation(previous)
        # "yes" to something that was never proposed, e.g. "Want some tips?"
        unprompted_yes = False

        if is_affirmation(message):
            pending = decode_proposal(previous) if awaiting else None
            if pending is not None:
                print("[chat] committing confirmed proposal:", pending.envelope())
                return self.commit(pending)
            # Prompt present but the envelope was lost in rendering: let the
            # model see the transcript and answer with a commit line.
            unprompted_yes = not awaiting

        reply = self.oracle(build_system_prompt(now), history, message)
        outcome = decode_oracle_reply(reply)

        if isinstance(outcome, Direct):
            return ChatResponse(response=outcome.text or "I'm here to help with your studies!")

        if unprompted_yes and isinstance(outcome, Commit):
            if outcome.action.action_type is ActionType.NOTE:
                return ChatResponse(response='Tell me what to save, e.g. "Note: ...".')
            # Nothing was confirmed, so ask first.
            outcome = Propose(outcome.action)

        try:
            proposal = resolve_action(outcome.action, now)
        except UnparseableRange as e:
            print("[chat] unparseable date range:", e)
            return ChatResponse(
                response="Sorry, I couldn't parse the date range. "
                         "Try something like \"15-19 Jan\" or \"2025-01-15 to 2025-01-19\"."
            )

        if isinstance(outcome, Propose):
            return ChatResponse(response=confirmation_prompt(proposal))
        return self.commit(proposal)

    # -- effects --
    def commit(self, p: PendingProposal) -> ChatResponse:
        if p.action_type is ActionType.TASK:
            self.create_task(p.title)
            return ChatResponse(response=f'I\'ve created a task: "{p.title}"', created_task=True)

        if p.action_type is ActionType.NOTE:
            if self.create_note is None:
                return ChatResponse(response="Saving notes isn't available here.")
            self.create_note(p.title)
            return ChatResponse(response=f'I\'ve saved a note: "{p.title}"', created_note=True)

        t = resolve_time(p.time)
        if isinstance(p.when, DateRange):
            return self._commit_range(p, p.when, t)

        d = p.when.to_date()
        self.create_reminder(p.title, _dt.combine(d, t))
        return ChatResponse(
            response=f'I\'ve set a reminder "{p.title}" for {_fmt_day(d)} at {_fmt_time(p.time)}.',
            created_reminder=True,
            reminder_count=1,
        )

    def _commit_range(self, p: PendingProposal, rng: DateRange, t: _time) -> ChatResponse:
        """One reminder per day, ascending; a failing day does not undo earlier ones."""
        created = 0
        failed: List[_date] = []
        for d in rng.days():
            try:
                self.create_reminder(p.title, _dt.combine(d, t))
                created += 1
            except Exception as e:
                print(f"[chat] reminder for {d.isoformat()} failed:", e)
                failed.append(d)

        span = format_range(rng.start, rng.end)
        when = _fmt_time(p.time)
        if not failed:
            text = f'I\'ve set {created} daily reminders "{p.title}" at {when} ({span}).'
        elif created:
            text = (f'I set {created} of {created + len(failed)} daily reminders "{p.title}" at {when} '
                    f'({span}); these days failed: {", ".join(d.isoformat() for d in failed)}.')
        else:
            text = f'Sorry, I couldn\'t create any of the reminders "{p.title}" ({span}).'
        return ChatResponse(
            response=text,
            created_reminder=created > 0,
            reminder_count=created,
            failed_dates=failed or None,
        )
