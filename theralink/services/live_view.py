"""
Live views

A live view couples a view-model loader (an aggregation) with a change-feed
subscription: it loads once when opened and re-loads on every matching change
event. Each load is tagged with a request sequence number by ViewState, so a
slow load that finishes after a newer one is discarded instead of overwriting
fresher data.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from .aggregator import AggregationError
from .change_feed import ChangeEvent, SubscriptionRegistry

logger = logging.getLogger(__name__)


class ViewState:
    """Loading flag, data and error of one view, guarded by a request sequence"""

    def __init__(self):
        self._lock = threading.Lock()
        self._seq = 0
        self.loading = False
        self.data: Any = None
        self.error: Optional[str] = None
        self.version = 0  # number of applied results

    def begin(self) -> int:
        """Start a request; returns its ticket"""
        with self._lock:
            self._seq += 1
            self.loading = True
            return self._seq

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._seq

    def resolve(self, ticket: int, data: Any) -> bool:
        """Apply a result if it belongs to the latest request"""
        with self._lock:
            if ticket != self._seq:
                logger.debug(f"Discarding stale result (ticket {ticket}, latest {self._seq})")
                return False
            self.data = data
            self.error = None
            self.loading = False
            self.version += 1
            return True

    def fail(self, ticket: int, message: str) -> bool:
        """Record an error if it belongs to the latest request; keeps the last good data"""
        with self._lock:
            if ticket != self._seq:
                return False
            self.error = message
            self.loading = False
            return True

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "loading": self.loading,
                "data": self.data,
                "error": self.error,
                "version": self.version,
            }


class LiveView:
    """A view model kept fresh by re-loading on change events"""

    def __init__(
        self,
        name: str,
        user_id: str,
        loader: Callable[[], Any],
        registry: SubscriptionRegistry,
        table: str,
        column: str,
        owner: Optional[str] = None,
        event_types: Optional[set] = None,
        extra_columns: tuple = (),
    ):
        self.name = name
        self.user_id = user_id
        self.loader = loader
        self.registry = registry
        self.table = table
        self.column = column
        self.owner = owner or f"{name}:{uuid.uuid4()}"
        self.event_types = event_types
        self.extra_columns = tuple(extra_columns)
        self.state = ViewState()
        self._listeners: list[Callable[[str, Any], None]] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set = set()
        self.closed = False

    def add_listener(self, listener: Callable[[str, Any], None]) -> None:
        """listener(event_name, payload) is called on the event loop"""
        self._listeners.append(listener)

    def _emit(self, event_name: str, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event_name, payload)
            except Exception as e:
                logger.error(f"❌ Live view '{self.name}' listener failed: {e}")

    def _extra_owner(self, column: str) -> str:
        # The registry holds one subscription per (owner, table, user)
        return f"{self.owner}:{column}"

    async def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self.registry.open(
            self.owner,
            self.table,
            self.column,
            self.user_id,
            self._on_change,
            self.event_types,
        )
        for column in self.extra_columns:
            self.registry.open(
                self._extra_owner(column),
                self.table,
                column,
                self.user_id,
                self._on_change,
                self.event_types,
            )
        logger.info(f"👀 Live view '{self.name}' opened for user {self.user_id}")
        await self.refresh()

    async def refresh(self) -> bool:
        """Load the view model; returns True when the result was applied"""
        ticket = self.state.begin()
        try:
            data = await run_in_threadpool(self.loader)
        except AggregationError as e:
            if self.state.fail(ticket, str(e)):
                self._emit("error", {"message": str(e)})
            return False
        except Exception as e:
            logger.error(f"❌ Live view '{self.name}' refresh failed: {e}")
            if self.state.fail(ticket, f"Failed to load {self.name}"):
                self._emit("error", {"message": f"Failed to load {self.name}"})
            return False

        if self.closed or not self.state.resolve(ticket, data):
            return False
        self._emit("snapshot", self.state.snapshot())
        return True

    def _schedule_refresh(self) -> None:
        if self.closed:
            return
        task = asyncio.ensure_future(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_change(self, change: ChangeEvent) -> None:
        # May run on any thread (wherever the commit happened)
        if self.closed or self._loop is None:
            return
        logger.debug(f"🔄 {change.table} {change.event_type} -> refreshing '{self.name}'")
        try:
            self._loop.call_soon_threadsafe(self._schedule_refresh)
        except RuntimeError:
            # Loop already closed; the stream is gone
            logger.debug(f"Live view '{self.name}' loop closed, dropping change")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.registry.close(self.owner, self.table, self.user_id)
        for column in self.extra_columns:
            self.registry.close(self._extra_owner(column), self.table, self.user_id)
        for task in list(self._tasks):
            task.cancel()
        self._listeners.clear()
        logger.info(f"👋 Live view '{self.name}' closed for user {self.user_id}")
