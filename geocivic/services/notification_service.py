"""
Notification Service - fan-out of lifecycle events to user inboxes.

DESIGN NOTE:
- Clients poll their inbox; delivery is eventually visible
- send() retries transient write failures, then raises NotificationDeliveryFailed
- The lifecycle treats delivery as best-effort and never rolls back on failure
- Marking a notification read is idempotent
"""

from abc import ABC, abstractmethod
from geocivic.config.firebase import get_db
from geocivic.core.settings import settings
from geocivic.services.errors import NotificationDeliveryFailed
from geocivic.utils.firestore_helpers import where_filter, utc_now, snapshot_to_dict
from firebase_admin import firestore
from typing import Dict, List, Optional
import logging
import time

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """
    Contract consumed by the report lifecycle.

    - send(recipient_id, message) delivers or raises NotificationDeliveryFailed.
    - Retrying is the dispatcher's job, not the caller's.
    """

    @abstractmethod
    def send(self, recipient_id: str, message: str, report_id: Optional[str] = None) -> Dict:
        raise NotImplementedError


class FirestoreNotificationDispatcher(NotificationDispatcher):
    """Inbox stored in the notifications collection, polled by clients."""

    COLLECTION = "notifications"

    def __init__(self, db=None, max_attempts: Optional[int] = None, retry_delay: Optional[float] = None):
        self.db = db if db is not None else get_db()
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS
        self.retry_delay = settings.NOTIFICATION_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay

    def _deliver(self, doc_ref, data: Dict) -> Dict:
        doc_ref.set(data)
        return dict(data, id=doc_ref.id)

    def send(self, recipient_id: str, message: str, report_id: Optional[str] = None) -> Dict:
        """
        Write a notification to the recipient's inbox.

        Raises:
            NotificationDeliveryFailed: After max_attempts failed writes
        """
        # Same document id on every attempt
        doc_ref = self.db.collection(self.COLLECTION).document()
        data = {
            "recipient_id": recipient_id,
            "message": message,
            "report_id": report_id,
            "is_read": False,
            "created_at": utc_now(),
            "read_at": None,
        }

        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                notification = self._deliver(doc_ref, data)
                logger.info(f"Notification {notification['id']} sent to {recipient_id}")
                return notification
            except Exception as e:
                last_error = e
                logger.warning(f"⚠️ Notification to {recipient_id} failed (attempt {attempt}/{self.max_attempts}): {e}")
                if attempt < self.max_attempts and self.retry_delay:
                    time.sleep(self.retry_delay * attempt)

        raise NotificationDeliveryFailed(recipient_id, self.max_attempts, last_error)

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Dict]:
        """Inbox for a user, newest first."""
        query = where_filter(self.db.collection(self.COLLECTION), "recipient_id", "==", user_id)
        if unread_only:
            query = where_filter(query, "is_read", "==", False)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def get(self, notification_id: str) -> Optional[Dict]:
        doc = self.db.collection(self.COLLECTION).document(notification_id).get()
        return snapshot_to_dict(doc) if doc.exists else None

    def unread_count(self, user_id: str) -> int:
        return len(self.list_for_user(user_id, unread_only=True))

    def mark_read(self, notification_id: str) -> Optional[Dict]:
        """
        Acknowledge a notification.

        Returns:
            The notification dict, or None if it does not exist.
            Acknowledging an already-read notification changes nothing.
        """
        doc_ref = self.db.collection(self.COLLECTION).document(notification_id)
        doc = doc_ref.get()
        if not doc.exists:
            return None

        data = snapshot_to_dict(doc)
        if data.get("is_read"):
            return data

        read_at = utc_now()
        doc_ref.update({"is_read": True, "read_at": read_at})
        data.update({"is_read": True, "read_at": read_at})
        return data


# Global service instance
_notification_service = None


def get_notification_service() -> FirestoreNotificationDispatcher:
    """Get or create the notification dispatcher singleton."""
    global _notification_service
    if _notification_service is None:
        _notification_service = FirestoreNotificationDispatcher()
    return _notification_service
