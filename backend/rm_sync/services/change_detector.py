from typing import Any, Dict, List, Mapping, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from rm_sync.services.aggregator import AggregatedEntry
import logging

log = logging.getLogger(__name__)


class ChangeStatus(str, Enum):
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    ORPHANED = "orphaned"  # Synced before, no current aggregate


class ClassifiedAggregate(BaseModel):
    """One aggregate key with its classification and the records on either side."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    status: ChangeStatus
    aggregate: Optional[AggregatedEntry] = None
    synced: Optional[Any] = None  # RMSyncedEntry or any object exposing last_synced_hash


class ChangeSet(BaseModel):
    new: List[ClassifiedAggregate] = Field(default_factory=list)
    changed: List[ClassifiedAggregate] = Field(default_factory=list)
    unchanged: List[ClassifiedAggregate] = Field(default_factory=list)
    orphaned: List[ClassifiedAggregate] = Field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "new": len(self.new),
            "changed": len(self.changed),
            "unchanged": len(self.unchanged),
            "orphaned": len(self.orphaned),
        }


class ChangeDetectionService:
    """
    Classifies current aggregates against previously synced state.
    Every current aggregate lands in exactly one of NEW, CHANGED or UNCHANGED;
    synced records without a current aggregate are reported as ORPHANED.
    """

    def classify(self, aggregate: AggregatedEntry, synced: Optional[Any]) -> ChangeStatus:
        if synced is None:
            return ChangeStatus.NEW
        if aggregate.aggregate_hash != synced.last_synced_hash:
            return ChangeStatus.CHANGED
        return ChangeStatus.UNCHANGED

    def detect_changes(
        self,
        aggregates: Mapping[str, AggregatedEntry],
        synced_by_key: Mapping[str, Any],
    ) -> ChangeSet:
        changes = ChangeSet()
        buckets = {
            ChangeStatus.NEW: changes.new,
            ChangeStatus.CHANGED: changes.changed,
            ChangeStatus.UNCHANGED: changes.unchanged,
        }

        for key, aggregate in aggregates.items():
            synced = synced_by_key.get(key)
            status = self.classify(aggregate, synced)
            buckets[status].append(ClassifiedAggregate(key=key, status=status, aggregate=aggregate, synced=synced))
            log.debug(f"{key}: {status.value}")

        for key, synced in synced_by_key.items():
            if key not in aggregates:
                changes.orphaned.append(ClassifiedAggregate(key=key, status=ChangeStatus.ORPHANED, synced=synced))
                log.debug(f"{key}: orphaned")

        log.info(f"Change detection: {changes.counts}")
        return changes
