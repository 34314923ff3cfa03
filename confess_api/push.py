"""
Push Notification Delivery
==========================
Builds FCM notification payloads and delivers rows queued in the push outbox.

Delivery is fire-and-forget: a failed send is logged and recorded on the
outbox row, never raised to the moderation workflow, and never retried.
"""
from datetime import datetime, timezone
from typing import Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .database import SessionLocal
from .logging_config import push_logger, timed
from .models.push_outbox import PushOutbox


def build_notification(push_id: str, title: str, body: str, click_action: str, icon: str) -> dict:
    """FCM legacy message addressed to a single device token."""
    return {
        "notification": {
            "title": title,
            "body": body,
            "click_action": click_action,
            "icon": icon,
        },
        "to": push_id,
    }


def approval_notification(push_id: str, settings: Settings) -> dict:
    return build_notification(
        push_id,
        settings.approve_notification_title,
        settings.approve_notification_body,
        settings.notification_click_action,
        settings.notification_icon,
    )


def rejection_notification(push_id: str, settings: Settings) -> dict:
    return build_notification(
        push_id,
        settings.reject_notification_title,
        settings.reject_notification_body,
        settings.notification_click_action,
        settings.notification_icon,
    )


class PushNotifier:
    """Sends queued outbox notifications to the push endpoint."""

    def __init__(self, settings: Optional[Settings] = None, session_factory=SessionLocal):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.last_error: Optional[str] = None

    @property
    def headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"key={self.settings.push_server_key}",
        }

    @timed(push_logger)
    def send(self, payload: dict) -> bool:
        """POST one payload. Returns True on a 2xx response."""
        try:
            response = requests.post(
                self.settings.push_endpoint,
                json=payload,
                headers=self.headers,
                timeout=self.settings.push_timeout_seconds,
            )
        except requests.RequestException as e:
            push_logger.warning("Push request failed", to=payload.get("to"), error_message=str(e))
            self.last_error = str(e)
            return False

        if 200 <= response.status_code < 300:
            self.last_error = None
            return True

        self.last_error = f"status={response.status_code}"
        push_logger.warning("Push rejected", to=payload.get("to"), status_code=response.status_code)
        return False

    def _deliver_row(self, row: PushOutbox) -> bool:
        delivered = self.send(row.payload)
        row.attempts = (row.attempts or 0) + 1
        if delivered:
            row.status = "sent"
            row.delivered_at = datetime.now(timezone.utc)
            row.last_error = None
            push_logger.info("Push delivered", outbox_id=row.id, confession_id=row.confession_id, event=row.event)
        else:
            row.status = "failed"
            row.last_error = self.last_error
        return delivered

    def deliver(self, outbox_id: int) -> bool:
        """Deliver a single pending outbox row in its own session."""
        db = self.session_factory()
        try:
            row = db.query(PushOutbox).filter(
                PushOutbox.id == outbox_id,
                PushOutbox.status == "pending",
            ).first()
            if not row:
                return False
            delivered = self._deliver_row(row)
            db.commit()
            return delivered
        except SQLAlchemyError as e:
            db.rollback()
            push_logger.error("Could not record push outcome", error=e, outbox_id=outbox_id)
            return False
        finally:
            db.close()

    def deliver_pending(self, limit: int = 100) -> int:
        """Deliver up to ``limit`` pending rows, oldest first. Returns the number sent."""
        db = self.session_factory()
        sent = 0
        try:
            rows = db.query(PushOutbox).filter(
                PushOutbox.status == "pending"
            ).order_by(PushOutbox.id.asc()).limit(limit).all()
            for row in rows:
                if self._deliver_row(row):
                    sent += 1
                db.commit()
            push_logger.info("Push outbox drained", processed=len(rows), sent=sent)
            return sent
        except SQLAlchemyError as e:
            db.rollback()
            push_logger.error("Push outbox drain failed", error=e)
            return sent
        finally:
            db.close()


def get_notifier() -> PushNotifier:
    """FastAPI dependency returning a notifier bound to the app database."""
    return PushNotifier()
