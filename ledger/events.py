from collections import defaultdict
from datetime import datetime
from typing import Callable, DefaultDict, List, NamedTuple

__all__ = [
    'Event', 'EventBus', 'Notification', 'NOTIFICATION',
    'SUCCESS', 'WARNING', 'ERROR',
]


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class Notification(NamedTuple):
    level: str          # 'success' | 'warning' | 'error'
    title: str
    description: str = ""


NOTIFICATION = "NOTIFICATION"

SUCCESS = "success"
WARNING = "warning"
ERROR = "error"

Handler = Callable[[Event, dict], object]


class EventBus:
    """Synchronous publish/subscribe, one instance per view session.

    Handlers run in subscription order on the publishing call. The
    NOTIFICATION topic carries the toasts raised by form submits.
    """

    def __init__(self):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[object]:
        handlers = list(self._handlers.get(name, ()))
        if not handlers:
            return []
        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in handlers]

    def notify(self, level: str, title: str, description: str = "") -> Notification:
        note = Notification(level=level, title=title, description=description)
        self.publish(NOTIFICATION, {"notification": note})
        return note

    def collect(self, sink: list) -> Handler:
        """Append every notification to sink; returns the handler for unsubscribe."""
        def handler(event: Event, payload: dict) -> None:
            sink.append(payload["notification"])

        self.subscribe(NOTIFICATION, handler)
        return handler
