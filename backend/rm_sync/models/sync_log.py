"""Sync log model for tracking synchronization runs."""

from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from rm_sync.database import Base, JSONType


class RMSyncStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class RMSyncLog(Base):
    """Append-only run record for one sync attempt."""

    __tablename__ = "rm_sync_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    # Null only for runs that failed because the user has no connection
    connection_id = Column(Integer, ForeignKey("rm_connections.id", ondelete="CASCADE"), nullable=True)

    # Execution details
    trigger_type = Column(String(50), nullable=False, default='manual')  # 'scheduled', 'manual'
    status = Column(String(20), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    range_start = Column(String(10), nullable=True)  # YYYY-MM-DD
    range_end = Column(String(10), nullable=True)

    # Statistics
    entries_created = Column(Integer, default=0, nullable=False)
    entries_updated = Column(Integer, default=0, nullable=False)
    entries_deleted = Column(Integer, default=0, nullable=False)
    entries_skipped = Column(Integer, default=0, nullable=False)
    entries_failed = Column(Integer, default=0, nullable=False)

    # Error information
    error_message = Column(Text, nullable=True)
    error_details = Column(JSONType, nullable=True)  # [{"key": ..., "message": ...}]

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    connection = relationship("RMConnection", back_populates="sync_logs")

    __table_args__ = (
        # At most one RUNNING sync per connection, enforced by the database
        Index(
            'uq_rm_sync_logs_connection_running',
            'connection_id',
            unique=True,
            postgresql_where=text("status = 'RUNNING'"),
            sqlite_where=text("status = 'RUNNING'"),
        ),
        Index('idx_rm_sync_logs_connection_started', 'connection_id', 'started_at'),
    )

    def __repr__(self):
        return f"<RMSyncLog(id={self.id}, trigger='{self.trigger_type}', status='{self.status}', created={self.entries_created})>"
