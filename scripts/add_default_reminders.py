# scripts/add_default_reminders.py
import sys
from pathlib import Path
# Ensure project root is importable when running from scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from datetime import date, time

from crud import create_reminder, find_reminders_by_titles
from models import SessionLocal, init_db

DEFAULT_REMINDERS = [
    ("UPSC Prelims Exam", "UPSC Civil Services Preliminary Examination", date(2026, 5, 24), time(9, 0)),
    ("UPSC Mains Exam", "UPSC Civil Services Main Examination", date(2026, 8, 21), time(9, 0)),
]


def add_default_reminders(db) -> int:
    """Create the default exam reminders unless any of them already exist. Returns how many were added."""
    titles = [title for title, _, _, _ in DEFAULT_REMINDERS]
    if find_reminders_by_titles(db, titles):
        return 0
    for title, description, d, t in DEFAULT_REMINDERS:
        create_reminder(db, date_=d, time_=t, title=title, description=description)
    return len(DEFAULT_REMINDERS)


def main():
    # Ensure tables exist
    init_db()

    db = SessionLocal()
    try:
        print("Adding default exam reminders…")
        added = add_default_reminders(db)
        if added:
            print(f"✓ Added {added} reminders")
        else:
            print("⊘ Skipped (reminders already exist)")
    finally:
        db.close()


if __name__ == "__main__":
    main()
