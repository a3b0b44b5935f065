#!/usr/bin/env python
"""
Force RUNNING RM syncs to FAILED so a new sync can start.
Run with: cd backend; python scripts/cleanup_stuck_sync.py <user_id>
      or: cd backend; python scripts/cleanup_stuck_sync.py --all
      or: cd backend; python scripts/cleanup_stuck_sync.py --sync-id <id>
Requires DATABASE_URL and ENCRYPTION_KEY in .env.
"""

import argparse
import os
import sys

# Add rm_sync to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rm_sync.database import SessionLocal
from rm_sync.logging_config import configure_logging
from rm_sync.models.sync_log import RMSyncLog, RMSyncStatus
from rm_sync.services.connection import get_connection
from rm_sync.services.exceptions import InvalidSyncStateError
from rm_sync.services.sync_log import cancel_stuck_sync, recover_stale_syncs


def cleanup_user(db, user_id: str) -> int:
    connection = get_connection(db, user_id)
    if connection is None:
        print(f"No RM connection found for user {user_id}")
        return 1

    stuck = db.query(RMSyncLog).filter(
        RMSyncLog.connection_id == connection.id,
        RMSyncLog.status == RMSyncStatus.RUNNING.value
    ).all()
    if not stuck:
        print("No stuck syncs found")
        return 0

    print(f"Found {len(stuck)} stuck sync(s)")
    # The operator asked for it, so ignore the stale threshold
    for sync_log in stuck:
        print(f"   - Sync {sync_log.id} started at {sync_log.started_at}")
        cancel_stuck_sync(db, sync_log.id, "cleared by operator")
    print("Cleaned up stuck syncs - you can now sync again")
    return 0


def cleanup_one(db, sync_log_id: int) -> int:
    try:
        sync_log = cancel_stuck_sync(db, sync_log_id, "cleared by operator")
    except InvalidSyncStateError as e:
        print(e.message)
        return 1
    print(f"Sync {sync_log.id} marked FAILED")
    return 0


def cleanup_all(db) -> int:
    recovered = recover_stale_syncs(db)
    print(f"Recovered {recovered} stale sync(s) across all connections")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("user_id", nargs="?", help="User whose RUNNING syncs should be cleared")
    group.add_argument("--all", action="store_true", help="Sweep stale RUNNING syncs for every connection")
    group.add_argument("--sync-id", type=int, help="Cancel one RUNNING sync by its log ID")
    args = parser.parse_args(argv)

    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    db = SessionLocal()
    try:
        if args.sync_id is not None:
            return cleanup_one(db, args.sync_id)
        if args.all:
            return cleanup_all(db)
        return cleanup_user(db, args.user_id)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
