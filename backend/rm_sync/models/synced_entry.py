"""Synced entry models: one row per pushed project-day plus its contributing entries."""

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from rm_sync.database import Base


class RMSyncedEntry(Base):
    """A remote RM time entry representing one project-day aggregate as of the last sync."""

    __tablename__ = "rm_synced_entries"

    id = Column(Integer, primary_key=True, index=True)
    mapping_id = Column(Integer, ForeignKey("rm_project_mappings.id", ondelete="CASCADE"), nullable=False)

    remote_entry_id = Column(Integer, nullable=False)
    aggregation_date = Column(Date, nullable=False)

    # Hash of aggregated data (date + total hours + billable + notes)
    last_synced_hash = Column(String(64), nullable=False)
    sync_version = Column(Integer, default=1, nullable=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    mapping = relationship("RMProjectMapping", back_populates="synced_entries")
    components = relationship(
        "RMSyncedEntryComponent",
        back_populates="synced_entry",
        cascade="all, delete-orphan",
        order_by="RMSyncedEntryComponent.timesheet_entry_id",
    )

    __table_args__ = (
        UniqueConstraint('mapping_id', 'aggregation_date', name='uq_rm_synced_entry_mapping_date'),
        Index('idx_rm_synced_entries_aggregation_date', 'aggregation_date'),
    )

    def __repr__(self):
        return f"<RMSyncedEntry(id={self.id}, remote={self.remote_entry_id}, date={self.aggregation_date}, v={self.sync_version})>"


class RMSyncedEntryComponent(Base):
    """Junction row: one timesheet entry's contribution to a synced entry."""

    __tablename__ = "rm_synced_entry_components"

    id = Column(Integer, primary_key=True, index=True)
    rm_synced_entry_id = Column(Integer, ForeignKey("rm_synced_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    timesheet_entry_id = Column(Integer, ForeignKey("timesheet_entries.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot of the contribution at sync time
    duration_minutes = Column(Integer, nullable=False)
    is_billable = Column(Boolean, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    synced_entry = relationship("RMSyncedEntry", back_populates="components")

    __table_args__ = (
        UniqueConstraint('rm_synced_entry_id', 'timesheet_entry_id', name='uq_rm_component_entry_pair'),
    )

    def __repr__(self):
        return f"<RMSyncedEntryComponent(synced={self.rm_synced_entry_id}, entry={self.timesheet_entry_id}, minutes={self.duration_minutes})>"
