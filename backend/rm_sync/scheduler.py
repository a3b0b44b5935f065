"""APScheduler integration for periodic sync and stale-run recovery."""

import logging
from datetime import date, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from rm_sync.config import settings
from rm_sync.database import SessionLocal
from rm_sync.models.connection import RMConnection
from rm_sync.services.exceptions import RMSyncError
from rm_sync.services.sync_log import recover_stale_syncs
from rm_sync.services.sync_service import run_sync

log = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

SYNC_JOB_ID = "periodic_rm_sync_job"
SWEEP_JOB_ID = "stale_sync_sweep_job"


async def stale_sync_sweep_job():
    """Force RUNNING rows older than the configured lifetime to FAILED."""
    db = SessionLocal()
    try:
        recovered = recover_stale_syncs(db)
        if recovered:
            log.warning(f"Stale sync sweep recovered {recovered} run(s)")
    except Exception as e:
        log.error(f"Stale sync sweep failed: {e}", exc_info=True)
    finally:
        db.close()


async def scheduled_sync_job():
    """Sync the configured window for every connection with auto-sync enabled."""
    db = SessionLocal()
    try:
        user_ids = [
            row.user_id for row in db.query(RMConnection.user_id).filter(
                RMConnection.is_active == True,  # noqa: E712
                RMConnection.auto_sync_enabled == True  # noqa: E712
            ).all()
        ]
        if not user_ids:
            log.info("Scheduled sync skipped: no connections with auto-sync enabled")
            return

        end_d = date.today()
        start_d = end_d - timedelta(days=settings.sync_window_days - 1)
        log.info(f"Starting scheduled sync for {len(user_ids)} user(s), {start_d} to {end_d}")

        for user_id in user_ids:
            try:
                result = await run_sync(db, user_id, start_d, end_d, trigger_type='scheduled')
                log.info(f"Scheduled sync for user {user_id}: {result.model_dump(exclude={'errors'})}")
            except RMSyncError as e:
                log.warning(f"Scheduled sync for user {user_id} not run: {e.message}")
            except Exception as e:
                log.error(f"Scheduled sync for user {user_id} failed: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    """Register the jobs and start the scheduler."""
    scheduler.add_job(
        stale_sync_sweep_job,
        trigger=IntervalTrigger(minutes=settings.stale_sweep_minutes),
        id=SWEEP_JOB_ID,
        replace_existing=True
    )
    try:
        scheduler.add_job(
            scheduled_sync_job,
            trigger=CronTrigger.from_crontab(settings.sync_schedule_cron),
            id=SYNC_JOB_ID,
            replace_existing=True
        )
        log.info(f"Scheduled sync job registered: cron='{settings.sync_schedule_cron}'")
    except ValueError as e:
        log.error(f"Invalid sync schedule cron '{settings.sync_schedule_cron}': {e}")
        raise

    if not scheduler.running:
        scheduler.start()
        log.info("APScheduler started successfully")


def shutdown_scheduler():
    """Shutdown the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        log.info("APScheduler shut down successfully")
