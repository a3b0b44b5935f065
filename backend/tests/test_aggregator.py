from datetime import date
from types import SimpleNamespace

import pytest

from rm_sync.services.aggregator import (
    aggregate_entries_by_project_day,
    merge_notes,
    minutes_to_decimal_hours,
)
from rm_sync.services.task_mapping import map_billable_to_task

D1 = date(2026, 10, 12)
D2 = date(2026, 10, 13)


def entry(id, project_id="P1", entry_date=D1, duration=60, is_billable=True, notes=None):
    return SimpleNamespace(
        id=id, project_id=project_id, date=entry_date,
        duration=duration, is_billable=is_billable, notes=notes,
    )


def test_two_halves_make_one_billable_day():
    aggregates = aggregate_entries_by_project_day([
        entry(1, duration=240),
        entry(2, duration=240),
    ])

    assert list(aggregates) == ["P1|2026-10-12"]
    agg = aggregates["P1|2026-10-12"]
    assert agg.total_minutes == 480
    assert agg.total_hours == 8.0
    assert map_billable_to_task(agg.is_billable) == "Billable"
    assert agg.contributing_entry_ids == [1, 2]


def test_entries_without_project_are_dropped():
    aggregates = aggregate_entries_by_project_day([
        entry(1, project_id=None),
        entry(2, project_id=""),
        entry(3),
    ])

    assert list(aggregates) == ["P1|2026-10-12"]
    assert aggregates["P1|2026-10-12"].contributing_entry_ids == [3]


def test_one_aggregate_per_distinct_project_day():
    entries = [
        entry(1, "P1", D1), entry(2, "P1", D1),
        entry(3, "P1", D2),
        entry(4, "P2", D1), entry(5, "P2", D2), entry(6, "P2", D2),
    ]

    aggregates = aggregate_entries_by_project_day(entries)

    assert set(aggregates) == {"P1|2026-10-12", "P1|2026-10-13", "P2|2026-10-12", "P2|2026-10-13"}
    for agg in aggregates.values():
        assert agg.total_minutes == sum(c.duration_minutes for c in agg.contributing_entries)


@pytest.mark.parametrize("minutes,hours", [
    (0, 0.0),
    (1, 0.02),
    (20, 0.33),
    (40, 0.67),
    (90, 1.5),
    (487, 8.12),
])
def test_minutes_to_decimal_hours(minutes, hours):
    assert minutes_to_decimal_hours(minutes) == hours


def test_mixed_billable_is_billable_regardless_of_order():
    forward = aggregate_entries_by_project_day([
        entry(1, is_billable=False, notes="research"),
        entry(2, is_billable=True, notes="client call"),
    ])["P1|2026-10-12"]
    backward = aggregate_entries_by_project_day([
        entry(2, is_billable=True, notes="client call"),
        entry(1, is_billable=False, notes="research"),
    ])["P1|2026-10-12"]

    assert forward.is_billable is True
    assert backward.is_billable is True
    assert forward.notes == backward.notes == "client call; research"
    assert forward.aggregate_hash == backward.aggregate_hash


def test_all_non_billable_stays_non_billable():
    agg = aggregate_entries_by_project_day([
        entry(1, is_billable=False),
        entry(2, is_billable=False),
    ])["P1|2026-10-12"]

    assert agg.is_billable is False
    assert map_billable_to_task(agg.is_billable) == "Business Development"


def test_zero_duration_entry_is_still_a_contributor():
    agg = aggregate_entries_by_project_day([
        entry(1, duration=0),
        entry(2, duration=30),
    ])["P1|2026-10-12"]

    assert agg.contributing_entry_ids == [1, 2]
    assert agg.total_hours == 0.5


def test_merge_notes_drops_blanks_and_duplicates():
    assert merge_notes([" standup ", None, "", "standup", "review"]) == "review; standup"
    assert merge_notes([None, "  "]) is None
