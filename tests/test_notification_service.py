"""
Notifications: built during the decision, delivered after commit, failures
only logged.
"""
import json
import uuid

import pytest
import redis

from intake_engine.core import redis as redis_module
from intake_engine.models import Notification, NotificationStatus, UserRole
from intake_engine.notifications import in_app
from intake_engine.notifications.in_app import InAppNotificationSink
from intake_engine.services.notification_service import OutboundNotification, dispatch_notifications

from conftest import RecordingSink


def _outbound(recipient_id, **overrides) -> OutboundNotification:
    fields = {
        "recipient_id": recipient_id,
        "title": "Admission Approved",
        "message": "Admission for Ali Hassan (P2505001) has been approved.",
        "related_entity_type": "admission",
        "related_entity_id": uuid.uuid4(),
        "notification_type": "admission_approved",
    }
    fields.update(overrides)
    return OutboundNotification(**fields)


class TestDispatch:
    def test_sends_every_notification(self):
        sink = RecordingSink()
        recipients = [uuid.uuid4(), uuid.uuid4()]
        sent = dispatch_notifications(sink, [_outbound(r) for r in recipients])

        assert sent == 2
        assert [n["recipient_id"] for n in sink.sent] == recipients
        assert sink.sent[0]["notification_type"] == "admission_approved"

    def test_failures_are_logged_not_raised(self, caplog):
        sent = dispatch_notifications(RecordingSink(fail=True), [_outbound(uuid.uuid4())])
        assert sent == 0
        assert "[NOTIFICATION ERROR]" in caplog.text

    def test_one_failure_does_not_stop_the_rest(self):
        class FlakySink(RecordingSink):
            def send(self, recipient_id, *args, **kwargs):
                if recipient_id == bad:
                    raise RuntimeError("mailbox full")
                super().send(recipient_id, *args, **kwargs)

        bad, good = uuid.uuid4(), uuid.uuid4()
        sink = FlakySink()
        assert dispatch_notifications(sink, [_outbound(bad), _outbound(good)]) == 1
        assert [n["recipient_id"] for n in sink.sent] == [good]


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.lists = {}
        self.fail = fail

    def lpush(self, key, value):
        if self.fail:
            raise redis.ConnectionError("connection reset")
        self.lists.setdefault(key, []).insert(0, value)


class TestInAppSink:
    @pytest.fixture
    def recipient(self, make_user):
        return make_user(UserRole.DOCTOR)

    def _stored(self, db):
        db.expire_all()
        return db.query(Notification).all()

    def test_without_redis_row_stays_pending(self, db, session_factory, recipient, monkeypatch):
        monkeypatch.setattr(redis_module, "get_redis_client", lambda: None)
        sink = InAppNotificationSink(session_factory, queue_key="test:notifications")

        dispatch_notifications(sink, [_outbound(recipient.id)])

        rows = self._stored(db)
        assert len(rows) == 1
        assert rows[0].status == NotificationStatus.PENDING
        assert rows[0].recipient_id == recipient.id
        assert rows[0].is_read is False

    def test_with_redis_row_is_sent_and_queued(self, db, session_factory, recipient, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(redis_module, "get_redis_client", lambda: fake)
        sink = InAppNotificationSink(session_factory, queue_key="test:notifications")

        notification = _outbound(recipient.id)
        dispatch_notifications(sink, [notification])

        rows = self._stored(db)
        assert rows[0].status == NotificationStatus.SENT
        payload = json.loads(fake.lists["test:notifications"][0])
        assert payload["recipient_id"] == str(recipient.id)
        assert payload["related_entity_id"] == str(notification.related_entity_id)
        assert payload["id"] == str(rows[0].id)

    def test_redis_error_degrades_to_pending(self, db, session_factory, recipient, monkeypatch):
        monkeypatch.setattr(redis_module, "get_redis_client", lambda: FakeRedis(fail=True))
        sink = InAppNotificationSink(session_factory, queue_key="test:notifications")

        assert dispatch_notifications(sink, [_outbound(recipient.id)]) == 1
        assert self._stored(db)[0].status == NotificationStatus.PENDING

    def test_storage_failure_is_swallowed_by_dispatch(self, db, session_factory, monkeypatch, caplog):
        monkeypatch.setattr(in_app, "queue_push", lambda key, value: False)
        sink = InAppNotificationSink(session_factory)

        # Unknown recipient violates the foreign key.
        assert dispatch_notifications(sink, [_outbound(uuid.uuid4())]) == 0
        assert "[NOTIFICATION ERROR]" in caplog.text
        assert self._stored(db) == []

    def test_nothing_is_queued_when_the_row_is_not_stored(self, db, session_factory, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(redis_module, "get_redis_client", lambda: fake)
        sink = InAppNotificationSink(session_factory, queue_key="test:notifications")

        assert dispatch_notifications(sink, [_outbound(uuid.uuid4())]) == 0
        assert fake.lists == {}
        assert self._stored(db) == []

    def test_queued_copy_refers_to_a_committed_row(self, session_factory, recipient, monkeypatch):
        seen = []

        class CheckingRedis(FakeRedis):
            def lpush(self, key, value):
                # A consumer reading from its own connection must find the row.
                other = session_factory()
                try:
                    seen.append(other.query(Notification).filter(Notification.id == uuid.UUID(json.loads(value)["id"])).count())
                finally:
                    other.close()
                super().lpush(key, value)

        monkeypatch.setattr(redis_module, "get_redis_client", lambda: CheckingRedis())
        sink = InAppNotificationSink(session_factory, queue_key="test:notifications")

        assert dispatch_notifications(sink, [_outbound(recipient.id)]) == 1
        assert seen == [1]

    def test_long_messages_are_truncated(self, db, session_factory, recipient, monkeypatch):
        monkeypatch.setattr(in_app, "queue_push", lambda key, value: False)
        sink = InAppNotificationSink(session_factory)
        dispatch_notifications(sink, [_outbound(recipient.id, message="x" * 5000)])
        assert len(self._stored(db)[0].message) == 2000
