"""Database models."""

from rm_sync.models.connection import RMConnection
from rm_sync.models.mapping import RMProjectMapping
from rm_sync.models.timesheet_entry import TimesheetEntry
from rm_sync.models.synced_entry import RMSyncedEntry, RMSyncedEntryComponent
from rm_sync.models.sync_log import RMSyncLog, RMSyncStatus

__all__ = [
    "RMConnection",
    "RMProjectMapping",
    "TimesheetEntry",
    "RMSyncedEntry",
    "RMSyncedEntryComponent",
    "RMSyncLog",
    "RMSyncStatus",
]
