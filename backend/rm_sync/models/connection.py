"""RM connection model holding a user's encrypted API credentials."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from rm_sync.database import Base


class RMConnection(Base):
    """One RM account link per user."""

    __tablename__ = "rm_connections"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), unique=True, nullable=False, index=True)

    # RM identity resolved when the token was validated
    rm_user_id = Column(Integer, nullable=False)
    rm_user_email = Column(String(255), nullable=True)
    rm_user_name = Column(String(255), nullable=True)

    api_token = Column(Text, nullable=False)  # Encrypted
    is_active = Column(Boolean, default=True, nullable=False)
    auto_sync_enabled = Column(Boolean, default=False, nullable=False)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    project_mappings = relationship("RMProjectMapping", back_populates="connection", cascade="all, delete-orphan")
    sync_logs = relationship("RMSyncLog", back_populates="connection", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<RMConnection(id={self.id}, user='{self.user_id}', rm_user={self.rm_user_id})>"
