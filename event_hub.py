"""In-memory buffer of mock invocation events with subscriber fan-out."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any

from mock_model import Response, Service

logger = logging.getLogger(__name__)

MOCK_INVOCATION = "mock.invocation"

Subscriber = Callable[[dict[str, Any]], None]


class EventHub:
    def __init__(self, *, buffer_size: int) -> None:
        self._buffer_size = max(100, buffer_size)
        self._lock = threading.Lock()
        self._events: deque[dict[str, Any]] = deque(maxlen=self._buffer_size)
        self._subscribers: list[Subscriber] = []
        self._next_id = 1

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def publish(
        self,
        *,
        event_type: str,
        source: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        with self._lock:
            event = {
                "id": self._next_id,
                "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                "type": event_type,
                "source": source,
                "payload": payload,
            }
            self._next_id += 1
            self._events.append(event)
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber(dict(event))
            except Exception:
                logger.warning("Event subscriber failed for %s", event_type, exc_info=True)
        return dict(event)

    def publish_mock_invocation(
        self,
        service: Service,
        response: Response,
        elapsed_ms: float,
    ) -> dict[str, Any]:
        return self.publish(
            event_type=MOCK_INVOCATION,
            source="mock_controller",
            payload={
                "service_name": service.name,
                "service_version": service.version,
                "response_name": response.name,
                "operation_id": response.operation_id,
                "invoked_at": time.time(),
                "duration_ms": round(elapsed_ms, 3),
            },
        )

    def snapshot(
        self,
        *,
        since_id: int,
        limit: int,
        topics: set[str] | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            events = list(self._events)
            latest_id = self._next_id - 1
            oldest_id = events[0]["id"] if events else latest_id + 1

        filtered = [
            event
            for event in events
            if event["id"] > since_id and (topics is None or event["type"] in topics)
        ]
        if limit > 0 and len(filtered) > limit:
            filtered = filtered[-limit:]

        return {
            "events": filtered,
            "latest_id": latest_id,
            "oldest_id": oldest_id,
            "overflowed": since_id < (oldest_id - 1),
        }
