from __future__ import annotations

import itertools
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

from ..common.datetime_utils import now_local

logger = logging.getLogger(__name__)


def tenant_group(tenant_id: int) -> str:
    return f"tenant_{tenant_id}"


def trip_group(trip_id: int) -> str:
    return f"trip_{trip_id}"


@dataclass(frozen=True)
class HubEvent:
    event: str
    group: str
    payload: dict
    sent_at: datetime


@dataclass
class Subscription:
    subscription_id: int
    queue: "queue.Queue[HubEvent]"
    groups: set[str] = field(default_factory=set)

    def get(self, timeout: float | None = None) -> HubEvent | None:
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None


class NotificationHub:
    """In-process pub/sub grouped by tenant and trip.

    Each subscriber (an open SSE stream) owns a bounded queue; a slow subscriber
    loses events rather than blocking publishers.
    """

    def __init__(self, *, queue_size: int = 100, clock: Callable[[], datetime] = now_local):
        self._lock = threading.Lock()
        self._groups: dict[str, set[int]] = {}
        self._subs: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._queue_size = int(queue_size)
        self._clock = clock

    def subscribe(self, groups: Iterable[str] = ()) -> Subscription:
        sub = Subscription(subscription_id=next(self._ids), queue=queue.Queue(maxsize=self._queue_size))
        with self._lock:
            self._subs[sub.subscription_id] = sub
        for g in groups:
            self.join(sub, g)
        return sub

    def join(self, sub: Subscription, group: str) -> None:
        with self._lock:
            self._groups.setdefault(group, set()).add(sub.subscription_id)
            sub.groups.add(group)

    def leave(self, sub: Subscription, group: str) -> None:
        with self._lock:
            members = self._groups.get(group)
            if members is not None:
                members.discard(sub.subscription_id)
                if not members:
                    del self._groups[group]
            sub.groups.discard(group)

    def unsubscribe(self, sub: Subscription) -> None:
        for g in list(sub.groups):
            self.leave(sub, g)
        with self._lock:
            self._subs.pop(sub.subscription_id, None)

    def group_size(self, group: str) -> int:
        with self._lock:
            return len(self._groups.get(group, ()))

    def publish(self, group: str, event: str, payload: dict[str, Any]) -> int:
        """Deliver to every member of `group`; returns how many queues accepted it."""
        message = HubEvent(event=event, group=group, payload=payload, sent_at=self._clock())
        with self._lock:
            targets = [self._subs[i] for i in self._groups.get(group, ()) if i in self._subs]

        delivered = 0
        for sub in targets:
            try:
                sub.queue.put_nowait(message)
                delivered += 1
            except queue.Full:
                logger.warning("Dropping %s for subscriber %s (queue full)", event, sub.subscription_id)
        return delivered
