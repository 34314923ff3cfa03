"""
Confession model for anonymous submissions awaiting moderation.
"""
from enum import IntEnum

from sqlalchemy import Column, Integer, String, DateTime, Text, Index, text
from datetime import datetime, timezone
from ..database import Base


class ConfessionStatus(IntEnum):
    PENDING = 0
    APPROVED = 1
    REJECTED = 2


class Confession(Base):
    __tablename__ = "confessions"
    __table_args__ = (
        # Public numbers are unique once assigned; 0 means "not approved"
        Index(
            "uq_confessions_cfs_id",
            "cfs_id",
            unique=True,
            sqlite_where=text("cfs_id > 0"),
            postgresql_where=text("cfs_id > 0"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    deleted_at = Column(DateTime, nullable=True, index=True)

    content = Column(Text, nullable=False)
    sender = Column(String(250), nullable=False, index=True)
    push_id = Column(String(250), nullable=False)
    status = Column(Integer, nullable=False, default=ConfessionStatus.PENDING, index=True)  # 0 pending, 1 approved, 2 rejected
    approver = Column(Integer, default=0)
    reason = Column(String(250), default="")
    cfs_id = Column(Integer, default=0)

    def __repr__(self):
        return f"<Confession id={self.id} status={self.status} cfs_id={self.cfs_id}>"
