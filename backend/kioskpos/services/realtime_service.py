# Overview: Process-wide change feed; services record row changes, subscribers re-fetch.

"""
Realtime change feed.

Services call record_change() while they write. Events ride on the SQLAlchemy
session and are only dispatched after the transaction commits; a rollback
discards them. Subscribers never receive row payloads, only which table (and
kiosk) changed, so clients always re-query through the normal API and row
visibility rules keep applying.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, asdict
from typing import Iterable

from flask import current_app
from sqlalchemy import event
from sqlalchemy.orm import Session

_PENDING_KEY = "kioskpos.pending_changes"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

TABLES = (
    "profiles",
    "factory_inventory",
    "kiosk_inventory",
    "orders",
    "purchase_orders",
    "reports",
    "clock_logs",
    "wastage",
)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str
    row_id: str | None = None
    # None means the change is not owned by a single kiosk (factory rows, bulk deletes)
    kiosk_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class Subscription:
    """A bounded queue of change events matching a table/kiosk filter."""

    def __init__(self, bus: "ChangeBus", tables: Iterable[str] | None, kiosk_id: str | None, maxsize: int):
        self._bus = bus
        self.tables = frozenset(tables) if tables else None
        self.kiosk_id = kiosk_id
        self._queue: queue.Queue[ChangeEvent] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def matches(self, change: ChangeEvent) -> bool:
        if self.tables is not None and change.table not in self.tables:
            return False
        if self.kiosk_id is not None and change.kiosk_id not in (None, self.kiosk_id):
            return False
        return True

    def offer(self, change: ChangeEvent) -> None:
        try:
            self._queue.put_nowait(change)
        except queue.Full:
            # Slow consumer; it will still re-fetch on the next event it sees
            self.dropped += 1

    def drain(self, timeout: float = 15.0, debounce: float = 0.05) -> list[ChangeEvent]:
        """
        Block up to `timeout` for the first event, then keep collecting for
        `debounce` seconds. Returns the batch de-duplicated in arrival order;
        an empty list means the timeout expired.
        """
        try:
            first = self._queue.get(timeout=timeout)
        except queue.Empty:
            return []

        batch = [first]
        deadline = time.monotonic() + debounce
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=remaining))
            except queue.Empty:
                break

        seen = set()
        unique = []
        for change in batch:
            if change not in seen:
                seen.add(change)
                unique.append(change)
        return unique

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeBus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscription] = []

    def subscribe(self, tables: Iterable[str] | None = None, kiosk_id: str | None = None, maxsize: int = 1000) -> Subscription:
        if tables:
            unknown = set(tables) - set(TABLES)
            if unknown:
                raise ValueError(f"Unknown tables: {', '.join(sorted(unknown))}")
        sub = Subscription(self, tables, kiosk_id, maxsize)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def publish(self, changes: Iterable[ChangeEvent]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for change in changes:
            for sub in subscribers:
                if sub.matches(change):
                    sub.offer(change)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


bus = ChangeBus()


def record_change(session: Session, table: str, action: str, row_id: str | None = None, kiosk_id: str | None = None) -> None:
    """
    Queue a change on the session; dispatched when the session commits.

    Opens the transaction when none is active yet, so a rollback issued before
    any SQL still ends a transaction and discards the queue.
    """
    if not session.in_transaction():
        session.begin()
    session.info.setdefault(_PENDING_KEY, []).append(
        ChangeEvent(table=table, action=action, row_id=row_id, kiosk_id=kiosk_id)
    )


def subscribe(tables: Iterable[str] | None = None, kiosk_id: str | None = None) -> Subscription:
    return bus.subscribe(tables=tables, kiosk_id=kiosk_id)


@event.listens_for(Session, "after_commit")
def _dispatch_after_commit(session: Session) -> None:
    changes = session.info.pop(_PENDING_KEY, None)
    if not changes:
        return
    try:
        bus.publish(changes)
    except Exception:
        current_app.logger.exception("Failed to dispatch %d change events", len(changes))


@event.listens_for(Session, "after_transaction_end")
def _discard_on_transaction_end(session: Session, transaction) -> None:
    # after_commit has already taken the queue when the transaction committed
    if transaction.parent is None:
        session.info.pop(_PENDING_KEY, None)
