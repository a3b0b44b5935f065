import asyncio
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rm_sync.connectors.rm_connector import RMApiError, RMConnector, RMNotFoundError
from rm_sync.models.mapping import RMProjectMapping
from rm_sync.models.sync_log import RMSyncLog, RMSyncStatus
from rm_sync.models.synced_entry import RMSyncedEntry, RMSyncedEntryComponent
from rm_sync.models.timesheet_entry import TimesheetEntry
from rm_sync.schemas.rm import RMTimeEntryPayload
from rm_sync.schemas.sync import SyncErrorItem, SyncResult
from rm_sync.services.aggregator import AggregatedEntry, aggregate_entries_by_project_day, aggregate_key
from rm_sync.services.change_detector import ChangeDetectionService, ClassifiedAggregate
from rm_sync.services.connection import build_connector, get_active_mappings, get_connection
from rm_sync.services.exceptions import NoConnectionError, NoMappingsError, RMSyncError
from rm_sync.services.sync_log import complete_sync, record_failed_start, start_sync
from rm_sync.services.task_mapping import map_billable_to_task

log = logging.getLogger(__name__)


def build_time_entry_payload(aggregate: AggregatedEntry, mapping: RMProjectMapping) -> RMTimeEntryPayload:
    return RMTimeEntryPayload(
        assignable_id=mapping.rm_project_id,
        date=aggregate.date.isoformat(),
        hours=aggregate.total_hours,
        task=map_billable_to_task(aggregate.is_billable),
        notes=aggregate.notes or None,
    )


class SyncService:
    """
    Orchestrates one push of a user's timesheet to RM.

    INIT -> FETCHING -> AGGREGATING -> RECONCILING -> SUCCEEDED | FAILED

    Each aggregate is reconciled on its own: the RM call and the synced-record
    and junction writes for that aggregate are committed together, and a failure
    is recorded without stopping the run. Only missing preconditions (no
    connection, no active mappings, unreadable credentials) fail the run.
    """

    def __init__(
        self,
        db: Session,
        connector_factory: Optional[Callable] = None,
        change_detector: Optional[ChangeDetectionService] = None,
    ):
        self.db = db
        self.connector_factory = connector_factory or build_connector
        self.change_detector = change_detector or ChangeDetectionService()

    async def run_sync(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        trigger_type: str = 'manual',
    ) -> SyncResult:
        """
        Sync the user's entries dated ``start_date``..``end_date`` (inclusive).

        Raises:
            NoConnectionError / NoMappingsError: precondition missing, run logged FAILED
            SyncInProgressError: another run holds this connection
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")

        # INIT
        connection = get_connection(self.db, user_id)
        if connection is None or not connection.is_active:
            message = "No RM connection found - please connect your RM account first"
            record_failed_start(self.db, user_id, message, trigger_type, start_date, end_date)
            log.error(f"Sync failed for user {user_id}: {message}")
            raise NoConnectionError(message)

        sync_log = start_sync(self.db, connection, trigger_type, start_date, end_date)
        result = SyncResult(sync_log_id=sync_log.id, status=RMSyncStatus.RUNNING.value)

        try:
            # FETCHING
            mappings = get_active_mappings(self.db, connection.id)
            if not mappings:
                raise NoMappingsError("No active RM project mappings - map at least one project before syncing")
            connector = self.connector_factory(connection)

            try:
                entries = self._load_entries(user_id, start_date, end_date, mappings)
                synced_by_key = self._load_synced_entries(mappings, start_date, end_date)
                log.info(
                    f"Sync #{sync_log.id}: {len(entries)} entries, {len(mappings)} mappings, "
                    f"{len(synced_by_key)} previously synced project-days"
                )

                # AGGREGATING
                aggregates = aggregate_entries_by_project_day(entries)
                pushable = {}
                for key, aggregate in aggregates.items():
                    if aggregate.total_hours > 0:
                        pushable[key] = aggregate
                    elif key not in synced_by_key:
                        # Never pushed and nothing to push
                        log.warning(f"Skipping zero-hour aggregate {key}")
                        result.skipped += 1
                changes = self.change_detector.detect_changes(pushable, synced_by_key)

                # RECONCILING
                mappings_by_project = {m.project_id: m for m in mappings}
                for item in changes.new:
                    await self._create(connector, item, mappings_by_project[item.aggregate.project_id], result)
                for item in changes.changed:
                    await self._update(connector, item, mappings_by_project[item.aggregate.project_id], result)
                for item in changes.orphaned:
                    await self._delete(connector, item, result)
                result.skipped += len(changes.unchanged)
            finally:
                await connector.close()

        except RMSyncError as e:
            self.db.rollback()
            self._fail(sync_log, result, e.message)
            raise
        except asyncio.CancelledError:
            self.db.rollback()
            self._fail(sync_log, result, "Sync cancelled")
            raise
        except Exception as e:
            self.db.rollback()
            self._fail(sync_log, result, f"Sync error: {e}")
            raise

        complete_sync(self.db, sync_log, RMSyncStatus.SUCCEEDED, result)
        return result

    def _fail(self, sync_log: RMSyncLog, result: SyncResult, message: str) -> None:
        log.error(f"Sync #{sync_log.id} failed: {message}")
        complete_sync(self.db, sync_log, RMSyncStatus.FAILED, result, error_message=message)

    def _load_entries(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        mappings: List[RMProjectMapping],
    ) -> List[TimesheetEntry]:
        project_ids = [m.project_id for m in mappings]
        return self.db.query(TimesheetEntry).filter(
            TimesheetEntry.user_id == user_id,
            TimesheetEntry.date >= start_date,
            TimesheetEntry.date <= end_date,
            TimesheetEntry.is_skipped == False,  # noqa: E712
            TimesheetEntry.project_id.in_(project_ids)
        ).order_by(TimesheetEntry.date, TimesheetEntry.created_at, TimesheetEntry.id).all()

    def _load_synced_entries(
        self,
        mappings: List[RMProjectMapping],
        start_date: date,
        end_date: date,
    ) -> Dict[str, RMSyncedEntry]:
        """Previously synced project-days for the active mappings, keyed like aggregates."""
        project_by_mapping = {m.id: m.project_id for m in mappings}
        synced = self.db.query(RMSyncedEntry).filter(
            RMSyncedEntry.mapping_id.in_(project_by_mapping.keys()),
            RMSyncedEntry.aggregation_date >= start_date,
            RMSyncedEntry.aggregation_date <= end_date
        ).all()
        return {
            aggregate_key(project_by_mapping[s.mapping_id], s.aggregation_date): s
            for s in synced
        }

    def _replace_components(self, synced: RMSyncedEntry, aggregate: AggregatedEntry) -> None:
        """Delete every junction row of ``synced`` and recreate one per current contributor."""
        if synced.id is None:
            self.db.flush()
        else:
            self.db.query(RMSyncedEntryComponent).filter(
                RMSyncedEntryComponent.rm_synced_entry_id == synced.id
            ).delete()
        self.db.add_all([
            RMSyncedEntryComponent(
                rm_synced_entry_id=synced.id,
                timesheet_entry_id=c.entry_id,
                duration_minutes=c.duration_minutes,
                is_billable=c.is_billable,
                notes=c.notes,
            )
            for c in aggregate.contributing_entries
        ])

    def _record_failure(self, result: SyncResult, key: str, message: str) -> None:
        log.error(f"Failed to sync {key}: {message}")
        result.failed += 1
        result.errors.append(SyncErrorItem(key=key, message=message))

    async def _create(
        self,
        connector: RMConnector,
        item: ClassifiedAggregate,
        mapping: RMProjectMapping,
        result: SyncResult,
    ) -> None:
        aggregate = item.aggregate
        payload = build_time_entry_payload(aggregate, mapping)
        try:
            remote_id = await connector.create_time_entry(payload)
        except RMApiError as e:
            self._record_failure(result, item.key, str(e))
            return

        now = datetime.now(timezone.utc)
        try:
            synced = RMSyncedEntry(
                mapping_id=mapping.id,
                remote_entry_id=remote_id,
                aggregation_date=aggregate.date,
                last_synced_hash=aggregate.aggregate_hash,
                sync_version=1,
                last_synced_at=now,
            )
            self.db.add(synced)
            self._replace_components(synced, aggregate)
            mapping.last_synced_at = now
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._record_failure(result, item.key, f"RM entry {remote_id} created but not recorded: {e}")
            return

        result.created += 1
        log.info(f"Created RM entry {remote_id} for {item.key} ({aggregate.total_hours}h)")

    async def _update(
        self,
        connector: RMConnector,
        item: ClassifiedAggregate,
        mapping: RMProjectMapping,
        result: SyncResult,
    ) -> None:
        aggregate = item.aggregate
        synced: RMSyncedEntry = item.synced
        remote_id = synced.remote_entry_id
        payload = build_time_entry_payload(aggregate, mapping)
        try:
            await connector.update_time_entry(remote_id, payload)
        except RMNotFoundError:
            log.warning(f"RM entry {remote_id} for {item.key} no longer exists, recreating")
            try:
                remote_id = await connector.create_time_entry(payload)
            except RMApiError as e:
                self._record_failure(result, item.key, str(e))
                return
        except RMApiError as e:
            self._record_failure(result, item.key, str(e))
            return

        now = datetime.now(timezone.utc)
        try:
            synced.remote_entry_id = remote_id
            synced.last_synced_hash = aggregate.aggregate_hash
            synced.sync_version += 1
            synced.last_synced_at = now
            self._replace_components(synced, aggregate)
            mapping.last_synced_at = now
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._record_failure(result, item.key, f"RM entry {remote_id} updated but not recorded: {e}")
            return

        result.updated += 1
        log.info(f"Updated RM entry {remote_id} for {item.key} to {aggregate.total_hours}h (v{synced.sync_version})")

    async def _delete(self, connector: RMConnector, item: ClassifiedAggregate, result: SyncResult) -> None:
        synced: RMSyncedEntry = item.synced
        remote_id = synced.remote_entry_id
        try:
            await connector.delete_time_entry(remote_id)
        except RMNotFoundError:
            log.info(f"RM entry {remote_id} for {item.key} already deleted")
        except RMApiError as e:
            self._record_failure(result, item.key, str(e))
            return

        try:
            self.db.delete(synced)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._record_failure(result, item.key, f"RM entry {remote_id} deleted but not recorded: {e}")
            return

        result.deleted += 1
        log.info(f"Deleted RM entry {remote_id} for orphaned {item.key}")


async def run_sync(
    db: Session,
    user_id: str,
    start_date: date,
    end_date: date,
    trigger_type: str = 'manual',
) -> SyncResult:
    """Entry point used by the HTTP layer and the scheduler."""
    return await SyncService(db).run_sync(user_id, start_date, end_date, trigger_type)
