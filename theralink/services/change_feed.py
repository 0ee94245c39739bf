"""
Row-change feed

In-process push channel for committed table changes. Subscribers register a
(table, column == value) filter and a callback; committed INSERT/UPDATE/DELETE
rows are delivered to every matching subscription. TOAST events carry
presentation-only notifications for a user and never touch the database.

Delivery is at-least-once with no ordering guarantee across events; consumers
re-fetch on every event so duplicates and reordering are harmless.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..models import to_record, utcnow

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
TOAST = "TOAST"

TOASTS_TABLE = "toasts"

_PENDING_KEY = "pending_change_events"


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    record: dict
    old_record: Optional[dict] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    def get(self, column: str) -> Any:
        if column in self.record:
            return self.record[column]
        if self.old_record:
            return self.old_record.get(column)
        return None


class Subscription:
    """A (table, column == value) filter bound to a callback"""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        column: str,
        value: Any,
        callback: Callable[[ChangeEvent], None],
        event_types: Optional[set] = None,
    ):
        self.feed = feed
        self.table = table
        self.column = column
        self.value = value
        self.callback = callback
        self.event_types = event_types
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        if not self.active or change.table != self.table:
            return False
        if self.event_types and change.event_type not in self.event_types:
            return False
        return change.get(self.column) == self.value

    def close(self) -> None:
        if self.active:
            self.active = False
            self.feed._remove(self)

    def __repr__(self):
        return f"<Subscription {self.table}:{self.column}={self.value} active={self.active}>"


class ChangeFeed:
    """Fan-out of change events to filtered subscriptions"""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        table: str,
        column: str,
        value: Any,
        callback: Callable[[ChangeEvent], None],
        event_types: Optional[set] = None,
    ) -> Subscription:
        subscription = Subscription(self, table, column, value, callback, event_types)
        with self._lock:
            self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug(f"📡 Subscribed to {table} where {column}={value}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.table, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(subscription.table, None)
        logger.debug(f"🔌 Unsubscribed from {subscription.table} where {subscription.column}={subscription.value}")

    def subscription_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, change: ChangeEvent) -> int:
        """Deliver an event to every matching subscription; returns delivery count"""
        with self._lock:
            targets = [s for s in self._subscriptions.get(change.table, []) if s.matches(change)]

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(change)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"❌ Change callback failed for {change.table} {change.event_type}: {e}"
                )
        return delivered

    def toast(
        self, user_id: str, title: str, message: str, action_url: Optional[str] = None
    ) -> int:
        """Raise a presentation-only toast for a user"""
        return self.publish(
            ChangeEvent(
                table=TOASTS_TABLE,
                event_type=TOAST,
                record={
                    "user_id": user_id,
                    "title": title,
                    "message": message,
                    "action_url": action_url,
                },
            )
        )


class SubscriptionRegistry:
    """
    Keeps exactly one active subscription per (owner, table, value).

    An owner is one consumer instance (e.g. one open realtime stream). Opening a
    subscription for a key that is already held closes the previous one first.
    """

    def __init__(self, feed: ChangeFeed):
        self.feed = feed
        self._lock = threading.Lock()
        self._active: dict[tuple, Subscription] = {}

    def open(
        self,
        owner: str,
        table: str,
        column: str,
        value: Any,
        callback: Callable[[ChangeEvent], None],
        event_types: Optional[set] = None,
    ) -> Subscription:
        key = (owner, table, value)
        with self._lock:
            previous = self._active.pop(key, None)
        if previous is not None:
            previous.close()

        subscription = self.feed.subscribe(table, column, value, callback, event_types)
        with self._lock:
            self._active[key] = subscription
        return subscription

    def close(self, owner: str, table: str, value: Any) -> bool:
        with self._lock:
            subscription = self._active.pop((owner, table, value), None)
        if subscription is None:
            return False
        subscription.close()
        return True

    def close_owner(self, owner: str) -> int:
        with self._lock:
            keys = [k for k in self._active if k[0] == owner]
            subscriptions = [self._active.pop(k) for k in keys]
        for subscription in subscriptions:
            subscription.close()
        return len(subscriptions)

    def close_user(self, user_id: str) -> int:
        """Teardown on sign-out: drop every subscription filtered on this user"""
        with self._lock:
            keys = [k for k in self._active if k[2] == user_id]
            subscriptions = [self._active.pop(k) for k in keys]
        for subscription in subscriptions:
            subscription.close()
        if subscriptions:
            logger.info(f"🔌 Closed {len(subscriptions)} subscription(s) for user {user_id}")
        return len(subscriptions)

    def close_all(self) -> int:
        with self._lock:
            subscriptions = list(self._active.values())
            self._active.clear()
        for subscription in subscriptions:
            subscription.close()
        return len(subscriptions)

    def active(self, owner: str, table: str, value: Any) -> Optional[Subscription]:
        with self._lock:
            return self._active.get((owner, table, value))

    def __len__(self):
        with self._lock:
            return len(self._active)


# ============================================================================
# SESSION HOOKS - publish committed ORM changes
# ============================================================================


def _collect_changes(session: Session, _flush_context) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        pending.append(ChangeEvent(obj.__tablename__, INSERT, to_record(obj)))
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            pending.append(ChangeEvent(obj.__tablename__, UPDATE, to_record(obj)))
    for obj in session.deleted:
        record = to_record(obj)
        pending.append(ChangeEvent(obj.__tablename__, DELETE, record, old_record=record))


def install_session_hooks(session_factory, feed: ChangeFeed) -> None:
    """Publish changes to the feed only once their transaction commits"""

    def after_flush(session, flush_context):
        _collect_changes(session, flush_context)

    def after_commit(session):
        events = session.info.pop(_PENDING_KEY, [])
        for change in events:
            feed.publish(change)

    def after_rollback(session):
        discarded = session.info.pop(_PENDING_KEY, [])
        if discarded:
            logger.debug(f"Discarded {len(discarded)} uncommitted change event(s)")

    event.listen(session_factory, "after_flush", after_flush)
    event.listen(session_factory, "after_commit", after_commit)
    event.listen(session_factory, "after_rollback", after_rollback)


# Global feed instance
_change_feed: Optional[ChangeFeed] = None
_registry: Optional[SubscriptionRegistry] = None


def get_change_feed() -> ChangeFeed:
    """Get or create the process-wide change feed"""
    global _change_feed
    if _change_feed is None:
        from ..database import SessionLocal

        _change_feed = ChangeFeed()
        install_session_hooks(SessionLocal, _change_feed)
        logger.info("📡 Change feed initialized")
    return _change_feed


def get_subscription_registry() -> SubscriptionRegistry:
    global _registry
    if _registry is None:
        _registry = SubscriptionRegistry(get_change_feed())
    return _registry
