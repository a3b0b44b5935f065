from unittest.mock import patch

import pytest

from rm_sync.models import RMSyncLog
from rm_sync.services.sync_log import start_sync
from scripts.cleanup_stuck_sync import main


@pytest.fixture
def script_db(db):
    with patch("scripts.cleanup_stuck_sync.SessionLocal", lambda: db), \
         patch("scripts.cleanup_stuck_sync.configure_logging"):
        yield db


def test_cancel_single_run(script_db, connection, capsys):
    sync_log_id = start_sync(script_db, connection).id

    assert main(["--sync-id", str(sync_log_id)]) == 0

    sync_log = script_db.get(RMSyncLog, sync_log_id)
    assert sync_log.status == "FAILED"
    assert sync_log.error_message == "Sync cancelled: cleared by operator"
    assert "marked FAILED" in capsys.readouterr().out


def test_cancel_finished_run_fails(script_db, connection, capsys):
    sync_log_id = start_sync(script_db, connection).id
    main(["--sync-id", str(sync_log_id)])

    assert main(["--sync-id", str(sync_log_id)]) == 1
    assert "not RUNNING" in capsys.readouterr().out


def test_clear_user_ignores_stale_threshold(script_db, connection):
    sync_log_id = start_sync(script_db, connection).id

    assert main(["user-1"]) == 0

    assert script_db.get(RMSyncLog, sync_log_id).status == "FAILED"


def test_unknown_user(script_db):
    assert main(["nobody"]) == 1
