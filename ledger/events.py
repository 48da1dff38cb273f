from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, DefaultDict, List, NamedTuple, Optional
from uuid import uuid4

__all__ = [
    'EventBus', 'Event', 'Notification', 'NotificationCenter',
    'TRANSACTION_ADDED', 'BUDGET_ALERT', 'ACHIEVEMENT_UNLOCKED', 'STATS_UPDATED',
    'register_notification_handlers',
]

TRANSACTION_ADDED = "TRANSACTION_ADDED"
BUDGET_ALERT = "BUDGET_ALERT"
ACHIEVEMENT_UNLOCKED = "ACHIEVEMENT_UNLOCKED"
STATS_UPDATED = "STATS_UPDATED"

MAX_NOTIFICATIONS = 50


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], Any]


class EventBus:
    """Synchronous publish/subscribe. Handlers run in subscription order and
    their return values come back from ``publish``."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[Any]:
        handlers = list(self._handlers.get(name, ()))
        if not handlers:
            return []
        event = Event(name, self.clock().isoformat(), payload)
        return [handler(event, payload) for handler in handlers]


class Notification(NamedTuple):
    id: str
    title: str
    body: str
    read: bool
    ts: str


class NotificationCenter:
    """Newest-first inbox, capped at ``limit`` items."""

    def __init__(self, limit: int = MAX_NOTIFICATIONS):
        self.limit = limit
        self.items: List[Notification] = []

    def push(self, title: str, body: str = "", ts: Optional[str] = None) -> Notification:
        item = Notification(uuid4().hex, title, body, False, ts or datetime.now().isoformat())
        self.items = [item] + self.items[: self.limit - 1]
        return item

    def mark_read(self, notification_id: str) -> None:
        self.items = [n._replace(read=True) if n.id == notification_id else n for n in self.items]

    def mark_all_read(self) -> None:
        self.items = [n._replace(read=True) for n in self.items]

    def unread_count(self) -> int:
        return sum(1 for n in self.items if not n.read)

    def clear(self) -> None:
        self.items = []


def budget_alert_handler(event: Event, payload: dict) -> dict:
    category = payload.get("category", "")
    percentage = payload.get("percentage", 0)
    if payload.get("status") == "exceeded":
        title = f"Budget exceeded: {category}"
    else:
        title = f"Budget warning: {category}"
    return {
        "title": title,
        "body": f"{percentage:.0f}% of the {category} budget used this month",
    }


def achievement_handler(event: Event, payload: dict) -> dict:
    return {
        "title": f"Achievement unlocked: {payload.get('title', '')}",
        "body": f"+{payload.get('points', 0)} points",
    }


def register_notification_handlers(bus: EventBus, center: NotificationCenter) -> None:
    def _notify(build: Handler) -> Handler:
        def _handler(event: Event, payload: dict) -> dict:
            message = build(event, payload)
            center.push(message["title"], message["body"], event.ts)
            return message
        return _handler

    bus.subscribe(BUDGET_ALERT, _notify(budget_alert_handler))
    bus.subscribe(ACHIEVEMENT_UNLOCKED, _notify(achievement_handler))
