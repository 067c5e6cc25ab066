import pytest

from geocivic.services.errors import NotificationDeliveryFailed
from geocivic.services.notification_service import FirestoreNotificationDispatcher


class FlakyDispatcher(FirestoreNotificationDispatcher):
    """Fails the first `failures` deliveries."""

    def __init__(self, db, failures, **kwargs):
        super().__init__(db=db, **kwargs)
        self.failures = failures
        self.calls = 0

    def _deliver(self, doc_ref, data):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("firestore unavailable")
        return super()._deliver(doc_ref, data)


class LostAckDispatcher(FirestoreNotificationDispatcher):
    """The first write lands but its acknowledgement times out."""

    def __init__(self, db, **kwargs):
        super().__init__(db=db, **kwargs)
        self.calls = 0

    def _deliver(self, doc_ref, data):
        self.calls += 1
        notification = super()._deliver(doc_ref, data)
        if self.calls == 1:
            raise TimeoutError("deadline exceeded")
        return notification


def test_send_and_list(db):
    dispatcher = FirestoreNotificationDispatcher(db=db)
    dispatcher.send("u1", "first", report_id="r1")
    dispatcher.send("u1", "second")
    dispatcher.send("u2", "other")

    inbox = dispatcher.list_for_user("u1")
    assert [n["message"] for n in inbox] == ["second", "first"]
    assert dispatcher.unread_count("u1") == 2


def test_transient_failures_are_retried(db):
    dispatcher = FlakyDispatcher(db, failures=2, max_attempts=3, retry_delay=0)

    notification = dispatcher.send("u1", "assigned")

    assert dispatcher.calls == 3
    assert notification["recipient_id"] == "u1"


def test_retry_after_lost_acknowledgement_does_not_duplicate(db):
    dispatcher = LostAckDispatcher(db, max_attempts=3, retry_delay=0)

    notification = dispatcher.send("u1", "assigned", report_id="r1")

    assert dispatcher.calls == 2
    inbox = dispatcher.list_for_user("u1")
    assert [n["id"] for n in inbox] == [notification["id"]]
    assert dispatcher.unread_count("u1") == 1


def test_gives_up_after_max_attempts(db):
    dispatcher = FlakyDispatcher(db, failures=5, max_attempts=3, retry_delay=0)

    with pytest.raises(NotificationDeliveryFailed) as exc_info:
        dispatcher.send("u1", "assigned")

    assert exc_info.value.attempts == 3
    assert dispatcher.list_for_user("u1") == []


def test_mark_read_is_idempotent(db):
    dispatcher = FirestoreNotificationDispatcher(db=db)
    notification = dispatcher.send("u1", "resolved")

    first = dispatcher.mark_read(notification["id"])
    second = dispatcher.mark_read(notification["id"])

    assert first["is_read"] and second["is_read"]
    assert first["read_at"] == second["read_at"]
    assert dispatcher.unread_count("u1") == 0
    assert dispatcher.list_for_user("u1", unread_only=True) == []
    assert dispatcher.mark_read("missing") is None
