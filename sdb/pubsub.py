"""Topic-based publish/subscribe with per-subscriber message queues."""

import queue
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Set, Union

__all__ = ["Message", "Subscription", "PubSub"]

_CLOSED = object()

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode()
    return bytes(value)


@dataclass(frozen=True)
class Message:
    topic: bytes
    payload: bytes


class Subscription:
    """Messages published to one topic, received in publishing order."""

    def __init__(self, hub: "PubSub", topic: bytes) -> None:
        self.topic = topic
        self._hub = hub
        self._queue: "queue.SimpleQueue[object]" = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, message: Message) -> None:
        with self._lock:
            if not self._closed:
                self._queue.put(message)

    def get(self, timeout: Optional[float] = None) -> Optional[Message]:
        """Next message; ``None`` on timeout or once the subscription is closed and drained."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        """Stop receiving; messages already queued can still be read."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)
        self._hub.unsubscribe(self)

    def __iter__(self) -> Iterator[Message]:
        while (message := self.get()) is not None:
            yield message

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class PubSub:
    """Delivers each published payload to every subscription of its topic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: Dict[bytes, Set[Subscription]] = {}

    def subscribe(self, topic: BytesLike) -> Subscription:
        """Start receiving messages published to ``topic``."""
        topic = _as_bytes(topic)
        subscription = Subscription(self, topic)
        with self._lock:
            self._subscriptions.setdefault(topic, set()).add(subscription)
        return subscription

    def publish(self, topic: BytesLike, payload: BytesLike) -> bool:
        """Send ``payload`` to the current subscribers of ``topic``."""
        message = Message(topic=_as_bytes(topic), payload=_as_bytes(payload))
        with self._lock:
            targets = list(self._subscriptions.get(message.topic, ()))
        for subscription in targets:
            subscription._deliver(message)
        return True

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove ``subscription`` and close it."""
        with self._lock:
            members = self._subscriptions.get(subscription.topic)
            if members is not None:
                members.discard(subscription)
                if not members:
                    del self._subscriptions[subscription.topic]
        subscription.close()