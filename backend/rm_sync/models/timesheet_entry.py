"""Timesheet entry model written by ingestion and manual entry, read by the sync engine."""

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Text, Index
from sqlalchemy.sql import func
from rm_sync.database import Base


class TimesheetEntry(Base):
    """A unit of local time for one user, optionally categorized by project."""

    __tablename__ = "timesheet_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    project_id = Column(String(100), nullable=True, index=True)  # None = uncategorized

    # Time tracking
    date = Column(Date, nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # minutes
    is_billable = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    # Origin
    is_manual = Column(Boolean, default=False, nullable=False)
    is_skipped = Column(Boolean, default=False, nullable=False)
    event_id = Column(String(255), nullable=True)  # Calendar event this entry came from

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_timesheet_entries_user_date', 'user_id', 'date'),
    )

    def __repr__(self):
        return f"<TimesheetEntry(id={self.id}, project='{self.project_id}', date={self.date}, minutes={self.duration})>"
