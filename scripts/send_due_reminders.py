#!/usr/bin/env python3
"""
One-off script to run a reminder pass outside the web app's scheduler.

Finds meetings inside the reminder window and issues leader reminders for
the ones that have not had one yet.

Usage:
    python scripts/send_due_reminders.py [--dry-run]

Options:
    --dry-run    Show which meetings would get a reminder without issuing tokens
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from sqlmodel import Session

from groupmeet.core.database import create_db_and_tables, engine
from groupmeet.reminders.dispatch import LoggingNotifier, generate_reminders
from groupmeet.reminders.tokens import ReminderTokenService
from groupmeet.reminders.window import find_meetings_in_window, reminder_window


def main(dry_run: bool = False):
    """Run one reminder pass, or list what it would do."""
    create_db_and_tables()

    with Session(engine) as session:
        start, end = reminder_window()
        print(f"Reminder window: {start.isoformat()} to {end.isoformat()}\n")

        if dry_run:
            meetings = find_meetings_in_window(session)
            if not meetings:
                print("No meetings in the reminder window.")
                return

            service = ReminderTokenService(session)
            for meeting in meetings:
                existing = service.get_for_meeting(meeting.id)
                sent = existing is not None and existing.reminder_sent_at is not None
                marker = "already sent" if sent else "would send"
                print(f"  [{marker}] {meeting.title} at {meeting.date.isoformat()}")
            print("\n[DRY RUN] No changes made.")
            return

        stats = generate_reminders(session, LoggingNotifier())

    print(f"Processed: {stats['processed']}")
    print(f"Skipped:   {stats['skipped']}")
    if stats["errors"]:
        print(f"Errors ({len(stats['errors'])}):")
        for error in stats["errors"]:
            print(f"  - {error}")
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    dry_run = "--dry-run" in sys.argv
    main(dry_run=dry_run)
