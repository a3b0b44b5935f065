from datetime import date
from types import SimpleNamespace

from rm_sync.services.aggregator import aggregate_entries_by_project_day
from rm_sync.services.change_detector import ChangeDetectionService, ChangeStatus

D1 = date(2026, 10, 12)


def entry(id, project_id="P1", entry_date=D1, duration=240, is_billable=True, notes=None):
    return SimpleNamespace(
        id=id, project_id=project_id, date=entry_date,
        duration=duration, is_billable=is_billable, notes=notes,
    )


def synced(last_synced_hash):
    return SimpleNamespace(last_synced_hash=last_synced_hash, remote_entry_id=9001)


class TestChangeDetectionService:
    def setup_method(self):
        self.detector = ChangeDetectionService()

    def test_new_when_never_synced(self):
        aggregates = aggregate_entries_by_project_day([entry(1), entry(2)])

        changes = self.detector.detect_changes(aggregates, {})

        assert [c.key for c in changes.new] == ["P1|2026-10-12"]
        assert changes.new[0].status == ChangeStatus.NEW
        assert changes.counts == {"new": 1, "changed": 0, "unchanged": 0, "orphaned": 0}

    def test_unchanged_when_hash_matches(self):
        aggregates = aggregate_entries_by_project_day([entry(1), entry(2)])
        h = aggregates["P1|2026-10-12"].aggregate_hash

        changes = self.detector.detect_changes(aggregates, {"P1|2026-10-12": synced(h)})

        assert len(changes.unchanged) == 1
        assert not changes.new and not changes.changed and not changes.orphaned

    def test_changed_when_hours_differ(self):
        before = aggregate_entries_by_project_day([entry(1), entry(2)])["P1|2026-10-12"]
        after = aggregate_entries_by_project_day([entry(1), entry(2, duration=180)])

        changes = self.detector.detect_changes(after, {"P1|2026-10-12": synced(before.aggregate_hash)})

        assert [c.key for c in changes.changed] == ["P1|2026-10-12"]
        assert changes.changed[0].aggregate.total_hours == 7.0

    def test_orphaned_when_aggregate_disappears(self):
        record = synced("f" * 64)

        changes = self.detector.detect_changes({}, {"P1|2026-10-12": record})

        assert len(changes.orphaned) == 1
        assert changes.orphaned[0].aggregate is None
        assert changes.orphaned[0].synced is record

    def test_every_aggregate_is_classified_once(self):
        aggregates = aggregate_entries_by_project_day([
            entry(1, "P1"), entry(2, "P2"), entry(3, "P3"),
        ])
        synced_by_key = {
            "P2|2026-10-12": synced(aggregates["P2|2026-10-12"].aggregate_hash),
            "P3|2026-10-12": synced("0" * 64),
            "P4|2026-10-12": synced("1" * 64),
        }

        changes = self.detector.detect_changes(aggregates, synced_by_key)

        classified = [c.key for c in changes.new + changes.changed + changes.unchanged]
        assert sorted(classified) == sorted(aggregates)
        assert [c.key for c in changes.orphaned] == ["P4|2026-10-12"]
