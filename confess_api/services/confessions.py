"""
Confession workflow: lookups, listings and the moderation state machine.

    PENDING --approve--> APPROVED --rollback--> PENDING
    PENDING --reject---> REJECTED

Approve and reject are conditional updates guarded on ``status = PENDING``
so two moderators acting on the same row cannot both win. Each of them
queues a push notification in the outbox inside the same transaction.
"""
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..errors import InvalidState, NotFound, StoreError
from ..logging_config import db_logger
from ..models.confession import Confession, ConfessionStatus
from ..models.push_outbox import PushOutbox
from ..push import approval_notification, rejection_notification


class Overview(NamedTuple):
    total: int
    pending: int
    rejected: int


class ConfessionService:
    """Data access and moderation workflow for confessions."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def _active(self):
        """Query over rows that have not been soft-deleted."""
        return self.db.query(Confession).filter(Confession.deleted_at.is_(None))

    def _load(self, confession_id: int, for_update: bool = False) -> Confession:
        query = self._active().filter(Confession.id == confession_id)
        if for_update:
            query = query.with_for_update()
        confession = query.first()
        if not confession:
            raise NotFound("Could not find the confession")
        return confession

    def _commit(self, message: str, **context):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error(message, error=e, **context)
            raise StoreError(message) from e

    # ============================================================
    # CRUD
    # ============================================================

    def fetch_all(self, limit: int) -> List[Confession]:
        return self._active().order_by(Confession.id.desc()).limit(limit).all()

    def fetch_by_id(self, confession_id: int) -> Confession:
        return self._load(confession_id)

    def create(self, confession: Confession) -> Confession:
        """Insert a new submission. Always starts out pending."""
        if confession.id:
            raise InvalidState("New records can not have primary key id")

        confession.status = ConfessionStatus.PENDING
        confession.approver = 0
        confession.reason = ""
        confession.cfs_id = 0

        self.db.add(confession)
        self._commit("Could not create confession", sender=confession.sender)
        self.db.refresh(confession)
        db_logger.info("Confession submitted", confession_id=confession.id)
        return confession

    def save(self, confession: Confession) -> Confession:
        """Insert when the row has no key yet, otherwise write every field back."""
        if not confession.id:
            return self.create(confession)

        self.db.add(confession)
        self._commit("Could not update confession", confession_id=confession.id)
        self.db.refresh(confession)
        return confession

    def delete(self, confession_id: int) -> Confession:
        """Soft delete: the row stays, reads stop seeing it."""
        confession = self._load(confession_id)
        confession.deleted_at = datetime.now(timezone.utc)
        self.save(confession)
        db_logger.info("Confession deleted", confession_id=confession_id)
        return confession

    # ============================================================
    # LISTINGS
    # ============================================================

    def fetch_by_sender(self, sender: str, limit: int) -> List[Confession]:
        return self._active().filter(
            Confession.sender == sender
        ).order_by(Confession.id.desc()).limit(limit).all()

    def fetch_overview(self) -> Overview:
        total = self._active().count()
        pending = self._active().filter(Confession.status == ConfessionStatus.PENDING).count()
        rejected = self._active().filter(Confession.status == ConfessionStatus.REJECTED).count()
        return Overview(total, pending, rejected)

    def fetch_approved(self, limit: int) -> List[Confession]:
        return self._active().filter(
            Confession.status == ConfessionStatus.APPROVED
        ).order_by(Confession.id.desc()).limit(limit).all()

    def search(self, keyword: str) -> List[Confession]:
        """Approved confessions containing ``keyword``, newest first."""
        return self._active().filter(
            Confession.status == ConfessionStatus.APPROVED,
            Confession.content.contains(keyword, autoescape=True),
        ).order_by(Confession.id.desc()).limit(self.settings.search_limit).all()

    def get_next_confession_id(self) -> int:
        # Includes soft-deleted rows so a public number is never handed out twice
        current = self.db.query(func.max(Confession.cfs_id)).scalar()
        return (current or 0) + 1

    # ============================================================
    # MODERATION
    # ============================================================

    def _transition_from_pending(self, confession_id: int, values: dict) -> int:
        return self._active().filter(
            Confession.id == confession_id,
            Confession.status == ConfessionStatus.PENDING,
        ).update(values, synchronize_session=False)

    def _queue_push(self, confession: Confession, event: str, payload: dict) -> PushOutbox:
        outbox = PushOutbox(
            confession_id=confession.id,
            event=event,
            push_id=confession.push_id,
            payload=payload,
            status="pending",
        )
        self.db.add(outbox)
        return outbox

    def approve(self, confession_id: int, approver_id: int) -> Tuple[Confession, PushOutbox]:
        confession = self._load(confession_id, for_update=True)
        if confession.status != ConfessionStatus.PENDING:
            raise InvalidState("Status of confession must be pending to be approved")

        cfs_id = self.get_next_confession_id()
        try:
            updated = self._transition_from_pending(confession_id, {
                Confession.status: ConfessionStatus.APPROVED,
                Confession.approver: approver_id,
                Confession.cfs_id: cfs_id,
            })
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error("Unable to update approved confession", error=e, confession_id=confession_id)
            raise StoreError("Unable to update approved confession") from e
        if updated != 1:
            self.db.rollback()
            raise InvalidState("Status of confession must be pending to be approved")

        outbox = self._queue_push(
            confession, "confession.approved", approval_notification(confession.push_id, self.settings)
        )
        self._commit("Unable to update approved confession", confession_id=confession_id, cfs_id=cfs_id)
        self.db.refresh(confession)

        db_logger.info(
            "Confession approved",
            confession_id=confession_id,
            approver=approver_id,
            cfs_id=cfs_id,
        )
        return confession, outbox

    def rollback_approve(self, confession_id: int, approver_id: int) -> Confession:
        """Send a confession back to pending and release its public number."""
        confession = self._load(confession_id)
        if self.settings.strict_rollback and confession.status != ConfessionStatus.APPROVED:
            raise InvalidState("Status of confession must be approved to be rolled back")

        previous_status = confession.status
        confession.status = ConfessionStatus.PENDING
        confession.approver = 0
        confession.cfs_id = 0
        if previous_status == ConfessionStatus.REJECTED:
            confession.reason = ""
        self.save(confession)

        db_logger.info(
            "Confession approval rolled back",
            confession_id=confession_id,
            moderator=approver_id,
            previous_status=previous_status,
        )
        return confession

    def reject(self, confession_id: int, approver_id: int, reason: str) -> Tuple[Confession, PushOutbox]:
        confession = self._load(confession_id, for_update=True)
        if confession.status != ConfessionStatus.PENDING:
            raise InvalidState("Status of confession must be pending to be rejected")

        try:
            updated = self._transition_from_pending(confession_id, {
                Confession.status: ConfessionStatus.REJECTED,
                Confession.approver: approver_id,
                Confession.reason: reason,
            })
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error("Unable to update rejected confession", error=e, confession_id=confession_id)
            raise StoreError("Unable to update rejected confession") from e
        if updated != 1:
            self.db.rollback()
            raise InvalidState("Status of confession must be pending to be rejected")

        outbox = self._queue_push(
            confession, "confession.rejected", rejection_notification(confession.push_id, self.settings)
        )
        self._commit("Unable to update rejected confession", confession_id=confession_id)
        self.db.refresh(confession)

        db_logger.info("Confession rejected", confession_id=confession_id, approver=approver_id)
        return confession, outbox

    def sync_push_id(self, sender: str, push_id: str):
        """Point every confession from ``sender`` at a new device token."""
        try:
            updated = self._active().filter(
                Confession.sender == sender
            ).update({Confession.push_id: push_id}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.warning("Push id sync failed", sender=sender, error_message=str(e))
            return
        db_logger.debug("Push id synced", sender=sender, updated=updated)
