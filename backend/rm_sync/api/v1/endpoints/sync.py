from typing import Annotated, List
from datetime import date, timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from rm_sync.api.v1.endpoints.connections import require_connection
from rm_sync.auth import get_current_user_id
from rm_sync.config import settings
from rm_sync.database import get_db
from rm_sync.models.mapping import RMProjectMapping
from rm_sync.models.sync_log import RMSyncLog
from rm_sync.models.synced_entry import RMSyncedEntry
from rm_sync.schemas.sync import (
    RecoverResponse,
    SyncLogResponse,
    SyncRequest,
    SyncResult,
    SyncStatusResponse,
)
from rm_sync.services.connection import get_connection
from rm_sync.services.exceptions import InvalidSyncStateError, SyncConfigurationError, SyncInProgressError
from rm_sync.services.sync_log import (
    cancel_stuck_sync,
    count_recent_syncs,
    get_running_sync,
    get_sync_history,
    recover_stale_syncs,
)
from rm_sync.services.sync_service import run_sync as run_sync_service

log = logging.getLogger(__name__)
router = APIRouter()


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} must be a YYYY-MM-DD date"
        )


def _serialize_log(sync_log: RMSyncLog) -> SyncLogResponse:
    return SyncLogResponse(
        id=sync_log.id,
        trigger_type=sync_log.trigger_type,
        status=sync_log.status,
        started_at=sync_log.started_at.isoformat() if sync_log.started_at else None,
        completed_at=sync_log.completed_at.isoformat() if sync_log.completed_at else None,
        range_start=sync_log.range_start,
        range_end=sync_log.range_end,
        entries_created=sync_log.entries_created,
        entries_updated=sync_log.entries_updated,
        entries_deleted=sync_log.entries_deleted,
        entries_skipped=sync_log.entries_skipped,
        entries_failed=sync_log.entries_failed,
        error_message=sync_log.error_message,
        error_details=sync_log.error_details,
    )


@router.post("/run", response_model=SyncResult)
async def run_sync(
    request: SyncRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Trigger a manual sync with an optional date range (defaults to the configured window)."""
    end_d = _parse_date(request.end_date, "end_date") if request.end_date else date.today()
    if request.start_date:
        start_d = _parse_date(request.start_date, "start_date")
    else:
        start_d = end_d - timedelta(days=settings.sync_window_days - 1)
    if start_d > end_d:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date"
        )

    connection = get_connection(db, user_id)
    if connection is not None:
        recent = count_recent_syncs(db, connection.id)
        if recent >= settings.sync_rate_limit_per_minute:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Please wait before syncing again (max {settings.sync_rate_limit_per_minute} syncs per minute)"
            )

    log.info(f"Sync request received from user {user_id} for {start_d} to {end_d}")
    try:
        return await run_sync_service(db, user_id, start_d, end_d, trigger_type='manual')
    except SyncInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except SyncConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.get("/runs", response_model=List[SyncLogResponse])
async def get_sync_runs(
    user_id: Annotated[str, Depends(get_current_user_id)],
    limit: int = 10,
    db: Session = Depends(get_db),
):
    """Recent sync runs for the caller's connection, newest first."""
    limit = max(1, min(limit, 50))
    connection = get_connection(db, user_id)
    if connection is None:
        return []
    return [_serialize_log(sl) for sl in get_sync_history(db, connection.id, limit)]


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    connection = require_connection(db, user_id)

    synced_count = db.query(RMSyncedEntry).join(RMProjectMapping).filter(
        RMProjectMapping.connection_id == connection.id
    ).count()
    return SyncStatusResponse(
        running=get_running_sync(db, connection.id) is not None,
        last_sync_at=connection.last_sync_at.isoformat() if connection.last_sync_at else None,
        synced_count=synced_count,
    )


@router.post("/recover", response_model=RecoverResponse)
async def recover_stuck_syncs(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Force the caller's stale RUNNING syncs to FAILED so a new run can start."""
    connection = require_connection(db, user_id)
    return RecoverResponse(recovered=recover_stale_syncs(db, connection_id=connection.id))


@router.post("/runs/{sync_log_id}/cancel", response_model=SyncLogResponse)
async def cancel_sync_run(
    sync_log_id: int,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Force one RUNNING run of the caller to FAILED, regardless of its age."""
    connection = require_connection(db, user_id)
    sync_log = db.get(RMSyncLog, sync_log_id)
    if sync_log is None or sync_log.connection_id != connection.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sync run not found")
    try:
        sync_log = cancel_stuck_sync(db, sync_log_id, f"cancelled by user {user_id}")
    except InvalidSyncStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return _serialize_log(sync_log)
