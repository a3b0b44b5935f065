"""
Sync log lifecycle: one RMSyncLog row per run.

A partial unique index on (connection_id) WHERE status = 'RUNNING' guarantees
at most one running sync per connection across every process. ``start_sync``
inserts the RUNNING row unconditionally and treats a constraint violation as
"another sync is in progress". Rows left RUNNING by a crashed process are only
cleared by an explicit sweep (``recover_stale_syncs``).
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rm_sync.config import settings
from rm_sync.models.connection import RMConnection
from rm_sync.models.sync_log import RMSyncLog, RMSyncStatus
from rm_sync.schemas.sync import SyncResult
from rm_sync.services.exceptions import InvalidSyncStateError, SyncInProgressError

log = logging.getLogger(__name__)

STUCK_REASON = "stuck in RUNNING state"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def start_sync(
    db: Session,
    connection: RMConnection,
    trigger_type: str = 'manual',
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> RMSyncLog:
    """
    Create the RUNNING log row for a new run.

    Raises:
        SyncInProgressError: another RUNNING row exists for this connection
    """
    sync_log = RMSyncLog(
        user_id=connection.user_id,
        connection_id=connection.id,
        trigger_type=trigger_type,
        status=RMSyncStatus.RUNNING.value,
        started_at=_now(),
        range_start=start_date.isoformat() if start_date else None,
        range_end=end_date.isoformat() if end_date else None,
    )
    db.add(sync_log)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        running = get_running_sync(db, connection.id)
        hint = ""
        if running is not None:
            hint = f" (sync #{running.id} started at {running.started_at})"
        log.warning(f"Sync already running for connection {connection.id}{hint}")
        raise SyncInProgressError(
            "A sync operation is already in progress for this connection. "
            f"Please wait for it to complete{hint}."
        )

    db.refresh(sync_log)
    log.info(f"Started sync #{sync_log.id} for connection {connection.id} ({trigger_type})")
    return sync_log


def record_failed_start(
    db: Session,
    user_id: str,
    error_message: str,
    trigger_type: str = 'manual',
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> RMSyncLog:
    """Write a terminal FAILED row for a run that could not even start (no connection)."""
    now = _now()
    sync_log = RMSyncLog(
        user_id=user_id,
        connection_id=None,
        trigger_type=trigger_type,
        status=RMSyncStatus.FAILED.value,
        started_at=now,
        completed_at=now,
        range_start=start_date.isoformat() if start_date else None,
        range_end=end_date.isoformat() if end_date else None,
        error_message=error_message,
    )
    db.add(sync_log)
    db.commit()
    db.refresh(sync_log)
    return sync_log


def complete_sync(
    db: Session,
    sync_log: RMSyncLog,
    status: RMSyncStatus,
    result: SyncResult,
    error_message: Optional[str] = None,
) -> RMSyncLog:
    """
    Close a run with its terminal status and counts.

    Raises:
        InvalidSyncStateError: ``status`` is not terminal
    """
    if status == RMSyncStatus.RUNNING:
        raise InvalidSyncStateError(f"Invalid completion status: {status.value}. Must be SUCCEEDED or FAILED")

    now = _now()
    sync_log.status = status.value
    sync_log.completed_at = now
    sync_log.entries_created = result.created
    sync_log.entries_updated = result.updated
    sync_log.entries_deleted = result.deleted
    sync_log.entries_skipped = result.skipped
    sync_log.entries_failed = result.failed
    sync_log.error_message = error_message
    sync_log.error_details = [e.model_dump() for e in result.errors] or None

    if sync_log.connection is not None:
        sync_log.connection.last_sync_at = now
    db.commit()

    result.status = status.value
    log.info(
        f"Completed sync #{sync_log.id} with status {status.value}: "
        f"{result.created} created, {result.updated} updated, {result.deleted} deleted, "
        f"{result.skipped} skipped, {result.failed} failed"
    )
    return sync_log


def get_running_sync(db: Session, connection_id: int) -> Optional[RMSyncLog]:
    return db.query(RMSyncLog).filter(
        RMSyncLog.connection_id == connection_id,
        RMSyncLog.status == RMSyncStatus.RUNNING.value
    ).order_by(RMSyncLog.started_at.desc()).first()


def get_sync_history(db: Session, connection_id: int, limit: int = 10) -> List[RMSyncLog]:
    """Newest runs first."""
    return db.query(RMSyncLog).filter(
        RMSyncLog.connection_id == connection_id
    ).order_by(RMSyncLog.started_at.desc(), RMSyncLog.id.desc()).limit(limit).all()


def count_recent_syncs(db: Session, connection_id: int, within: timedelta = timedelta(minutes=1)) -> int:
    cutoff = _now() - within
    return db.query(RMSyncLog).filter(
        RMSyncLog.connection_id == connection_id,
        RMSyncLog.started_at >= cutoff
    ).count()


def cancel_stuck_sync(db: Session, sync_log_id: int, reason: str) -> RMSyncLog:
    """
    Force a single RUNNING run to FAILED.
    Only for runs that are genuinely stuck (e.g. the process crashed).
    """
    sync_log = db.get(RMSyncLog, sync_log_id)
    if sync_log is None:
        raise InvalidSyncStateError(f"Sync log {sync_log_id} not found")
    if sync_log.status != RMSyncStatus.RUNNING.value:
        raise InvalidSyncStateError(f"Sync {sync_log_id} is {sync_log.status}, not RUNNING")

    sync_log.status = RMSyncStatus.FAILED.value
    sync_log.error_message = f"Sync cancelled: {reason}"
    sync_log.completed_at = _now()
    db.commit()

    log.warning(f"Cancelled stuck sync #{sync_log_id}: {reason}")
    return sync_log


def recover_stale_syncs(
    db: Session,
    older_than: Optional[timedelta] = None,
    connection_id: Optional[int] = None,
) -> int:
    """
    Sweep RUNNING rows that started longer ago than ``older_than`` to FAILED.

    Defaults to ``settings.sync_stale_after_minutes``; pass ``timedelta(0)`` to
    clear every RUNNING row. Returns the number of rows recovered.
    """
    if older_than is None:
        older_than = timedelta(minutes=settings.sync_stale_after_minutes)
    cutoff = _now() - older_than

    q = db.query(RMSyncLog).filter(
        RMSyncLog.status == RMSyncStatus.RUNNING.value,
        RMSyncLog.started_at <= cutoff
    )
    if connection_id is not None:
        q = q.filter(RMSyncLog.connection_id == connection_id)

    recovered = q.update(
        {
            RMSyncLog.status: RMSyncStatus.FAILED.value,
            RMSyncLog.error_message: f"Sync cancelled: {STUCK_REASON}",
            RMSyncLog.completed_at: _now(),
        },
        synchronize_session=False
    )
    db.commit()

    if recovered:
        log.warning(f"Recovered {recovered} stale RUNNING sync(s) older than {older_than}")
    return recovered
