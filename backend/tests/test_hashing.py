from datetime import date
from types import SimpleNamespace

from rm_sync.services.hashing import calculate_aggregate_hash, canonical_string
from rm_sync.services.task_mapping import (
    BILLABLE_TASK,
    NON_BILLABLE_TASK,
    map_billable_to_task,
)


def aggregate(**overrides):
    fields = dict(date=date(2026, 10, 12), total_hours=8.0, is_billable=True, notes="client work")
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestAggregateHash:
    def test_canonical_form(self):
        assert canonical_string(aggregate()) == "2026-10-12|8.00|true|client work"
        assert canonical_string(aggregate(is_billable=False, notes=None)) == "2026-10-12|8.00|false|"

    def test_deterministic(self):
        h = calculate_aggregate_hash(aggregate())
        assert h == calculate_aggregate_hash(aggregate())
        assert len(h) == 64
        int(h, 16)

    def test_each_field_changes_the_hash(self):
        base = calculate_aggregate_hash(aggregate())
        assert calculate_aggregate_hash(aggregate(date=date(2026, 10, 13))) != base
        assert calculate_aggregate_hash(aggregate(total_hours=7.0)) != base
        assert calculate_aggregate_hash(aggregate(is_billable=False)) != base
        assert calculate_aggregate_hash(aggregate(notes="other work")) != base

    def test_surrounding_whitespace_in_notes_is_ignored(self):
        assert calculate_aggregate_hash(aggregate(notes="  client work ")) == calculate_aggregate_hash(aggregate())

    def test_missing_and_empty_notes_hash_alike(self):
        assert calculate_aggregate_hash(aggregate(notes=None)) == calculate_aggregate_hash(aggregate(notes=""))


class TestTaskMapping:
    def test_billable_to_task(self):
        assert map_billable_to_task(True) == BILLABLE_TASK == "Billable"
        assert map_billable_to_task(False) == NON_BILLABLE_TASK == "Business Development"

