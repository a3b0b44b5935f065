"""Content fingerprint of an aggregate's RM-relevant fields."""

import hashlib
from datetime import date
from typing import Optional, Protocol


class HashableAggregate(Protocol):
    date: date
    total_hours: float
    is_billable: bool
    notes: Optional[str]


def canonical_string(aggregate: HashableAggregate) -> str:
    """
    Build the canonical form: ``YYYY-MM-DD|hours|billable|notes``.

    Hours are formatted to two decimals rather than raw minutes, so totals that
    round to the same RM value hash identically. The project is not part of the
    string; the aggregate key already carries it.
    """
    notes = (aggregate.notes or "").strip()
    billable = "true" if aggregate.is_billable else "false"
    return f"{aggregate.date.isoformat()}|{aggregate.total_hours:.2f}|{billable}|{notes}"


def calculate_aggregate_hash(aggregate: HashableAggregate) -> str:
    """SHA-256 hex digest of the canonical string."""
    return hashlib.sha256(canonical_string(aggregate).encode("utf-8")).hexdigest()
