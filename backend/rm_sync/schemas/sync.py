from typing import Optional, List
from pydantic import BaseModel


class SyncRequest(BaseModel):
    start_date: Optional[str] = None  # YYYY-MM-DD, defaults to the configured sync window
    end_date: Optional[str] = None    # YYYY-MM-DD, use today if not provided


class SyncErrorItem(BaseModel):
    key: str  # "{project_id}|{YYYY-MM-DD}"
    message: str


class SyncResult(BaseModel):
    sync_log_id: int
    status: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[SyncErrorItem] = []


class SyncLogResponse(BaseModel):
    id: int
    trigger_type: str
    status: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    range_start: Optional[str] = None
    range_end: Optional[str] = None
    entries_created: int = 0
    entries_updated: int = 0
    entries_deleted: int = 0
    entries_skipped: int = 0
    entries_failed: int = 0
    error_message: Optional[str] = None
    error_details: Optional[List[SyncErrorItem]] = None


class SyncStatusResponse(BaseModel):
    running: bool
    last_sync_at: Optional[str] = None
    synced_count: int = 0


class RecoverResponse(BaseModel):
    recovered: int
