from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings
from django.core.management import call_command
from django.utils import timezone
import logging

from reminders import conf

logger = logging.getLogger(__name__)

# ============================================================
# GLOBAL SAFETY LOCK
# Prevents scheduler from starting more than once
# ============================================================
_scheduler = None


def configure_jobs(scheduler):
    """
    Register the two periodic jobs on ``scheduler``:

    - dispatcher tick   (process_due_reminders)
    - delivery drain    (drain_delivery_queue)

    Both are single-instance and coalesce missed runs, so a slow tick
    never overlaps itself.
    """
    scheduler.add_job(
        run_process_due_reminders,
        trigger="interval",
        minutes=conf.get("REMINDER_TICK_MINUTES"),
        id="process_due_reminders",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        run_drain_delivery_queue,
        trigger="interval",
        minutes=conf.get("DELIVERY_DRAIN_MINUTES"),
        id="drain_delivery_queue",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def start_scheduler():
    """
    Start APScheduler safely.

    - Respects ENABLE_SCHEDULER setting
    - Prevents double start (Django autoreload, imports)
    """
    global _scheduler

    if not conf.get("ENABLE_SCHEDULER"):
        logger.info("APScheduler disabled via settings (ENABLE_SCHEDULER=False)")
        return None

    if _scheduler is not None:
        logger.info("APScheduler already running, skipping initialization")
        return _scheduler

    logger.info("Starting APScheduler...")

    _scheduler = configure_jobs(BackgroundScheduler(timezone=settings.TIME_ZONE))
    _scheduler.start()

    logger.info(
        "APScheduler started: reminder tick every %s min, delivery drain every %s min",
        conf.get("REMINDER_TICK_MINUTES"),
        conf.get("DELIVERY_DRAIN_MINUTES"),
    )
    return _scheduler


def shutdown_scheduler():
    global _scheduler

    if _scheduler is None:
        return
    _scheduler.shutdown(wait=False)
    _scheduler = None


# ============================================================
# JOB WRAPPERS
# Keep all business logic in the management commands.
# ============================================================

def run_process_due_reminders():
    logger.info("Running reminder tick at %s", f"{timezone.now():%Y-%m-%d %H:%M:%S}")
    call_command("process_due_reminders")


def run_drain_delivery_queue():
    logger.info("Running delivery drain at %s", f"{timezone.now():%Y-%m-%d %H:%M:%S}")
    call_command("drain_delivery_queue")
