"""In-process fan-out of events to long-lived streaming connections.

Registry state is process-local and non-durable. Clients reconnect and
resubscribe after a restart.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

ADMIN_SCOPE = "admin"


class SinkClosed(Exception):
    """Raised by a sink that can no longer accept writes."""


class Sink(Protocol):
    def write(self, payload: Dict[str, Any]) -> None: ...


def scope_for_user(user_id) -> str:
    return str(user_id)


@dataclass
class BroadcastClient:
    connection_id: str
    scope: str
    sink: Sink


class QueueSink:
    """Bounded per-connection buffer read by the SSE response generator.

    A full buffer means the reader has stalled, so the write fails and the
    registry drops the client.
    """

    def __init__(self, maxsize: int = 100):
        self._q: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def write(self, payload: Dict[str, Any]) -> None:
        if self._closed.is_set():
            raise SinkClosed("sink closed")
        try:
            self._q.put_nowait(payload)
        except queue.Full:
            self.close()
            raise SinkClosed("sink buffer full")

    def read(self, timeout: float) -> Optional[Dict[str, Any]]:
        try:
            return self._q.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()


class BroadcastRegistry:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._clients: Dict[str, BroadcastClient] = {}
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def register(self, connection_id: str, scope: str, sink: Sink) -> BroadcastClient:
        client = BroadcastClient(connection_id=connection_id, scope=str(scope), sink=sink)
        with self._lock:
            # last write wins on a reused id
            self._clients[connection_id] = client
        self.logger.info("SSE client registered: %s scope=%s", connection_id, client.scope)
        return client

    def unregister(self, connection_id: str) -> bool:
        with self._lock:
            client = self._clients.pop(connection_id, None)
        if client is None:
            return False
        close = getattr(client.sink, "close", None)
        if callable(close):
            close()
        self.logger.info("SSE client unregistered: %s", connection_id)
        return True

    def is_registered(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def clients_for(self, scope: str) -> List[BroadcastClient]:
        with self._lock:
            return [c for c in self._clients.values() if c.scope == scope]

    def broadcast(self, target_scope: str, payload: Dict[str, Any]) -> int:
        """Deliver ``payload`` to every client whose scope equals ``target_scope``.

        Returns the number of successful deliveries. A client whose sink
        raises is unregistered; the remaining clients still receive the event.
        """
        targets = self.clients_for(str(target_scope))
        delivered = 0
        for client in targets:
            try:
                client.sink.write(payload)
                delivered += 1
            except Exception as e:
                self.logger.warning("Failed to send SSE to client %s: %s", client.connection_id, e)
                self.unregister(client.connection_id)
        return delivered


class NotificationDispatcher:
    """Non-blocking hand-off from request threads to the registry.

    ``publish`` never blocks: events go into a bounded queue drained by a
    daemon thread. When the queue is full the event is dropped and logged.
    """

    _STOP = object()

    def __init__(self, registry: BroadcastRegistry, maxsize: int = 1000, logger: Optional[logging.Logger] = None):
        self.registry = registry
        self.logger = logger or registry.logger
        self._q: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None

    def publish(self, target_scope: str, payload: Dict[str, Any]) -> bool:
        try:
            self._q.put_nowait((str(target_scope), payload))
            return True
        except queue.Full:
            self.logger.warning("Notification queue full; dropping event for scope=%s", target_scope)
            return False

    def drain(self) -> int:
        """Deliver every queued event on the calling thread."""
        handled = 0
        while True:
            try:
                item = self._q.get_nowait()
            except queue.Empty:
                return handled
            if item is self._STOP:
                continue
            self._deliver(item)
            handled += 1

    def _deliver(self, item) -> None:
        scope, payload = item
        try:
            self.registry.broadcast(scope, payload)
        except Exception:
            self.logger.exception("Broadcast failed for scope=%s", scope)

    def _run(self) -> None:
        while True:
            item = self._q.get()
            if item is self._STOP:
                return
            self._deliver(item)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name="notify-dispatcher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        if not self.running:
            return
        self._q.put(self._STOP)
        self._thread.join(timeout)
        self._thread = None


class Realtime:
    """Realtime components owned by one application instance."""

    def __init__(self, registry: BroadcastRegistry, dispatcher: NotificationDispatcher):
        self.registry = registry
        self.dispatcher = dispatcher
