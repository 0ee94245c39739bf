"""
Tests for the row-change feed and subscription registry
"""

from theralink.models import Notification
from theralink.services.change_feed import (
    INSERT,
    TOAST,
    TOASTS_TABLE,
    UPDATE,
    ChangeEvent,
    ChangeFeed,
    SubscriptionRegistry,
    get_change_feed,
)


class TestChangeFeed:
    """Tests for ChangeFeed filtering and delivery"""

    def test_delivers_only_matching_rows(self):
        feed = ChangeFeed()
        received = []
        feed.subscribe("messages", "receiver_id", "u1", received.append)

        feed.publish(ChangeEvent("messages", INSERT, {"receiver_id": "u1", "content": "hi"}))
        feed.publish(ChangeEvent("messages", INSERT, {"receiver_id": "u2", "content": "no"}))
        feed.publish(ChangeEvent("notifications", INSERT, {"receiver_id": "u1"}))

        assert [e.record["content"] for e in received] == ["hi"]

    def test_event_type_filter(self):
        feed = ChangeFeed()
        received = []
        feed.subscribe("notifications", "user_id", "u1", received.append, {UPDATE})

        feed.publish(ChangeEvent("notifications", INSERT, {"user_id": "u1"}))
        feed.publish(ChangeEvent("notifications", UPDATE, {"user_id": "u1"}))

        assert [e.event_type for e in received] == [UPDATE]

    def test_failing_callback_does_not_block_others(self):
        feed = ChangeFeed()
        received = []

        def broken(change):
            raise RuntimeError("boom")

        feed.subscribe("messages", "receiver_id", "u1", broken)
        feed.subscribe("messages", "receiver_id", "u1", received.append)

        delivered = feed.publish(ChangeEvent("messages", INSERT, {"receiver_id": "u1"}))

        assert delivered == 1
        assert len(received) == 1

    def test_closed_subscription_stops_delivery(self):
        feed = ChangeFeed()
        received = []
        subscription = feed.subscribe("messages", "receiver_id", "u1", received.append)
        subscription.close()

        feed.publish(ChangeEvent("messages", INSERT, {"receiver_id": "u1"}))

        assert received == []
        assert feed.subscription_count() == 0

    def test_toast_reaches_user(self):
        feed = ChangeFeed()
        received = []
        feed.subscribe(TOASTS_TABLE, "user_id", "u1", received.append, {TOAST})

        feed.toast("u1", "New message from Ada", "Hello", "/therapist/messages")

        assert received[0].record["title"] == "New message from Ada"
        assert received[0].record["action_url"] == "/therapist/messages"


class TestSubscriptionRegistry:
    """Tests for one-subscription-per-key bookkeeping"""

    def test_reopen_replaces_previous_subscription(self):
        feed = ChangeFeed()
        registry = SubscriptionRegistry(feed)
        first, second = [], []

        registry.open("view-1", "notifications", "user_id", "u1", first.append)
        registry.open("view-1", "notifications", "user_id", "u1", second.append)
        feed.publish(ChangeEvent("notifications", INSERT, {"user_id": "u1"}))

        assert first == []
        assert len(second) == 1
        assert feed.subscription_count("notifications") == 1
        assert len(registry) == 1

    def test_close_user_drops_every_owner(self):
        feed = ChangeFeed()
        registry = SubscriptionRegistry(feed)
        registry.open("view-1", "notifications", "user_id", "u1", lambda e: None)
        registry.open("view-2", "messages", "receiver_id", "u1", lambda e: None)
        registry.open("view-3", "messages", "receiver_id", "u2", lambda e: None)

        assert registry.close_user("u1") == 2
        assert registry.active("view-1", "notifications", "u1") is None
        assert registry.active("view-3", "messages", "u2") is not None
        assert feed.subscription_count() == 1

    def test_close_owner(self):
        registry = SubscriptionRegistry(ChangeFeed())
        registry.open("view-1", "notifications", "user_id", "u1", lambda e: None)
        registry.open("view-1", TOASTS_TABLE, "user_id", "u1", lambda e: None)

        assert registry.close_owner("view-1") == 2
        assert len(registry) == 0
        assert registry.close("view-1", "notifications", "u1") is False

    def test_close_all(self):
        feed = ChangeFeed()
        registry = SubscriptionRegistry(feed)
        registry.open("view-1", "notifications", "user_id", "u1", lambda e: None)
        registry.open("view-2", "messages", "receiver_id", "u2", lambda e: None)

        assert registry.close_all() == 2
        assert feed.subscription_count() == 0


class TestSessionHooks:
    """Committed ORM changes are published, rolled back ones are not"""

    def test_publish_after_commit_only(self, db, make_profile):
        make_profile("u1")
        feed = get_change_feed()
        received = []
        subscription = feed.subscribe("notifications", "user_id", "u1", received.append)
        try:
            db.add(Notification(user_id="u1", title="Hi", message="Body", type="system"))
            db.flush()
            assert received == []

            db.commit()
            assert [e.event_type for e in received] == [INSERT]
            assert received[0].record["title"] == "Hi"
        finally:
            subscription.close()

    def test_rollback_discards_pending_events(self, db, make_profile):
        make_profile("u1")
        feed = get_change_feed()
        received = []
        subscription = feed.subscribe("notifications", "user_id", "u1", received.append)
        try:
            db.add(Notification(user_id="u1", title="Hi", message="Body", type="system"))
            db.flush()
            db.rollback()
            db.commit()
            assert received == []
        finally:
            subscription.close()

    def test_update_is_published(self, db, make_profile, add_notification):
        make_profile("u1")
        notification = add_notification("u1", "Hi")
        assert notification.title == "Hi"
        feed = get_change_feed()
        received = []
        subscription = feed.subscribe("notifications", "user_id", "u1", received.append)
        try:
            notification.is_read = True
            db.commit()
            assert [e.event_type for e in received] == [UPDATE]
            assert received[0].record["is_read"] is True
        finally:
            subscription.close()
