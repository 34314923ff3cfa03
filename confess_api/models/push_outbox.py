"""
PushOutbox model for notifications queued by moderation transitions.

Rows are written in the same transaction as the status change and
delivered afterwards by the push notifier.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index
from datetime import datetime, timezone
from ..database import Base


class PushOutbox(Base):
    __tablename__ = "push_outbox"
    __table_args__ = (
        Index("idx_push_outbox_pending", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    confession_id = Column(Integer, nullable=False, index=True)
    event = Column(String(50), nullable=False)  # confession.approved, confession.rejected
    push_id = Column(String(250), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(String(20), default="pending")  # pending, sent, failed
    attempts = Column(Integer, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    delivered_at = Column(DateTime, nullable=True)

    EVENTS = [
        "confession.approved",
        "confession.rejected",
    ]
