"""Publish/subscribe channel for remote endpoint calls (developer overlay)."""

from dataclasses import dataclass, field
from typing import Any, Callable
import time
import uuid

from .app_logger import get_logger

logger = get_logger("endpoint_tracker")


@dataclass(frozen=True)
class EndpointCall:
    endpoint: str
    method: str
    data: Any = None
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def describe(self, limit: int = 100) -> str:
        if self.data is None:
            return "No data"
        return str(self.data)[:limit]


Listener = Callable[[EndpointCall], Any]


class EndpointTracker:
    """Owned by the application and passed to every component that needs it."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, endpoint: str, method: str, data: Any = None) -> EndpointCall | None:
        if not endpoint or not method:
            return None

        call = EndpointCall(endpoint=endpoint, method=method, data=data)
        for listener in list(self._listeners):
            try:
                listener(call)
            except Exception:
                logger.exception("Endpoint listener failed for %s %s", method, endpoint)
        return call
