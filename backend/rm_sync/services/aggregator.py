"""Groups timesheet entries into one aggregate per project and day."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from rm_sync.services.hashing import calculate_aggregate_hash

log = logging.getLogger(__name__)

NOTES_SEPARATOR = "; "


class ContributingEntry(BaseModel):
    """Snapshot of one entry's contribution to an aggregate."""
    entry_id: int
    duration_minutes: int
    is_billable: bool
    notes: Optional[str] = None


class AggregatedEntry(BaseModel):
    """All of one user's time on one project for one calendar day."""
    project_id: str
    date: date
    total_minutes: int = 0
    total_hours: float = 0.0
    is_billable: bool = False
    notes: Optional[str] = None
    contributing_entry_ids: List[int] = Field(default_factory=list)
    contributing_entries: List[ContributingEntry] = Field(default_factory=list)
    aggregate_hash: str = ""

    @property
    def key(self) -> str:
        return aggregate_key(self.project_id, self.date)


def aggregate_key(project_id: str, entry_date: date) -> str:
    return f"{project_id}|{entry_date.isoformat()}"


def minutes_to_decimal_hours(minutes: int) -> float:
    """Convert minutes to decimal hours rounded to 2 places."""
    return round(minutes / 60, 2)


def merge_notes(notes: Iterable[Optional[str]]) -> Optional[str]:
    """Distinct non-empty notes, sorted so the result does not depend on entry order."""
    distinct = sorted({n.strip() for n in notes if n and n.strip()})
    return NOTES_SEPARATOR.join(distinct) if distinct else None


def aggregate_entries_by_project_day(entries: Iterable) -> Dict[str, AggregatedEntry]:
    """
    Aggregate timesheet entries by project and day.

    Entries without a project are dropped. Zero-duration entries stay in as
    contributors. Contributors are merged with two order-independent rules:
    the aggregate is billable if any contributor is billable, and its notes
    are the sorted distinct contributor notes joined with ``"; "``.

    Returns a dict keyed by ``"{project_id}|{YYYY-MM-DD}"``.
    """
    aggregates: Dict[str, AggregatedEntry] = {}
    mixed_billable = set()

    for entry in entries:
        if not entry.project_id:
            continue

        key = aggregate_key(entry.project_id, entry.date)
        aggregate = aggregates.get(key)
        if aggregate is None:
            aggregate = AggregatedEntry(
                project_id=entry.project_id,
                date=entry.date,
                is_billable=bool(entry.is_billable),
            )
            aggregates[key] = aggregate
        elif aggregate.is_billable != bool(entry.is_billable):
            mixed_billable.add(key)
            aggregate.is_billable = True

        aggregate.total_minutes += entry.duration
        aggregate.contributing_entry_ids.append(entry.id)
        aggregate.contributing_entries.append(ContributingEntry(
            entry_id=entry.id,
            duration_minutes=entry.duration,
            is_billable=bool(entry.is_billable),
            notes=entry.notes,
        ))

    for key, aggregate in aggregates.items():
        if key in mixed_billable:
            log.warning(f"Mixed billable status for {key}; aggregate marked billable")
        aggregate.total_hours = minutes_to_decimal_hours(aggregate.total_minutes)
        aggregate.notes = merge_notes(c.notes for c in aggregate.contributing_entries)
        aggregate.aggregate_hash = calculate_aggregate_hash(aggregate)

    log.debug(f"Aggregated entries into {len(aggregates)} project-day aggregates")
    return aggregates
