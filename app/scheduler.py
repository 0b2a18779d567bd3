# app/scheduler.py
"""
Background task scheduler.

Uses APScheduler to run periodic housekeeping jobs:
- Purging expired one-time codes
- Purging GPS history past its retention window
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from app.background_tasks.cleanup_tasks import purge_expired_codes, purge_old_locations

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


def _on_job_missed(event):
    """Log when a scheduled job misses its execution window."""
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler():
    """
    Initialize the background scheduler with all periodic tasks.

    This is called once when the application starts up.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # Only one instance of each job at a time
            'misfire_grace_time': 60
        }
    )

    # Runs every 15 minutes
    scheduler.add_job(
        func=purge_expired_codes,
        trigger=IntervalTrigger(minutes=15),
        id='purge_expired_codes',
        name='Purge Expired One-Time Codes',
        replace_existing=True
    )
    logger.info("Scheduled job: purge_expired_codes (every 15 minutes)")

    # Runs daily at 3 AM UTC
    scheduler.add_job(
        func=purge_old_locations,
        trigger=CronTrigger(hour=3, minute=0),
        id='purge_old_locations',
        name='Purge Old GPS Locations',
        replace_existing=True
    )
    logger.info("Scheduled job: purge_old_locations (daily at 3 AM UTC)")

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    scheduler.start()
    logger.info("Background scheduler started successfully")

    return scheduler


def shutdown_scheduler():
    """
    Gracefully shutdown the scheduler.

    This is called when the application shuts down.
    """
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler shutdown complete")
        scheduler = None
