import json
import logging
import queue
import threading
from typing import Dict, Optional
from uuid import uuid4


class Subscription:
    """A connected observer's bounded mailbox."""

    def __init__(self, maxsize: int):
        self.id = str(uuid4())
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, message: str) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except queue.Full:
            return False

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next message, or None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()


class OrderNotificationHub:
    """Best-effort broadcast of order events to live observers.

    ``publish`` never blocks: a subscriber whose mailbox is full is dropped
    instead of slowing down the publisher. Nothing is persisted or replayed.
    """

    def __init__(self, buffer_size: int = 16):
        self._buffer_size = buffer_size
        self._subscribers: Dict[str, Subscription] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def subscribe(self) -> Subscription:
        sub = Subscription(self._buffer_size)
        with self._lock:
            self._subscribers[sub.id] = sub
        self.logger.debug("order stream subscriber %s connected", sub.id)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(sub.id, None)
        sub.close()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, payload: dict) -> int:
        """Deliver to every subscriber; returns how many accepted the message."""
        message = json.dumps({"event": event, "data": payload}, ensure_ascii=False, default=str)
        with self._lock:
            subscribers = list(self._subscribers.values())
        delivered = 0
        for sub in subscribers:
            if sub.offer(message):
                delivered += 1
                continue
            self.logger.warning("dropping slow order stream subscriber %s", sub.id)
            self.unsubscribe(sub)
        return delivered
