"""Background job scheduler for meeting reminders."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from groupmeet.core.config import settings
from groupmeet.core.database import engine
from groupmeet.reminders.dispatch import LoggingNotifier, ReminderNotifier, generate_reminders

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def reminder_job(notifier: ReminderNotifier):
    """Background reminder pass."""
    try:
        with Session(engine) as session:
            stats = generate_reminders(session, notifier)
            logger.info(f"Background reminder pass completed: {stats}")
    except Exception as e:
        logger.error(f"Background reminder pass failed: {e}")


def start_scheduler(notifier: ReminderNotifier | None = None):
    """Start the background scheduler."""
    scheduler.add_job(
        reminder_job,
        trigger=IntervalTrigger(minutes=settings.reminder_poll_minutes),
        args=[notifier or LoggingNotifier()],
        id="meeting_reminders",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, checking reminders every {settings.reminder_poll_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
