"""Project mapping model linking local projects to RM projects."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from rm_sync.database import Base


class RMProjectMapping(Base):
    """Mapping between a local project and an RM project (assignable)."""

    __tablename__ = "rm_project_mappings"

    id = Column(Integer, primary_key=True, index=True)
    connection_id = Column(Integer, ForeignKey("rm_connections.id", ondelete="CASCADE"), nullable=False, index=True)

    # Local project
    project_id = Column(String(100), nullable=False)

    # RM project
    rm_project_id = Column(Integer, nullable=False)
    rm_project_name = Column(String(255), nullable=False)
    rm_project_code = Column(String(100), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    connection = relationship("RMConnection", back_populates="project_mappings")
    synced_entries = relationship("RMSyncedEntry", back_populates="mapping", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('connection_id', 'project_id', name='uq_rm_mapping_connection_project'),
        UniqueConstraint('connection_id', 'rm_project_id', name='uq_rm_mapping_connection_rm_project'),
    )

    def __repr__(self):
        return f"<RMProjectMapping(id={self.id}, project='{self.project_id}', rm_project={self.rm_project_id})>"
