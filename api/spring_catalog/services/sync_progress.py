"""Best-effort fan-out of sync progress events to live observers.

Observers are either callables (`add_listener`) or queue-backed subscriptions
(`subscribe`, used by the SSE endpoint). A failing observer is dropped; the
others and the sync itself are unaffected.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

from spring_catalog.models.sync import SyncProgressEvent

log = logging.getLogger(__name__)

Listener = Callable[[SyncProgressEvent], None]


class ProgressSubscription:
    """Queue-backed observer. `None` on the queue marks the end of the stream."""

    def __init__(self, tracker: "SyncProgressTracker", maxsize: int = 100) -> None:
        self._tracker = tracker
        self._queue: "queue.Queue[Optional[SyncProgressEvent]]" = queue.Queue(maxsize=maxsize)
        self.closed = False

    def deliver(self, event: SyncProgressEvent) -> None:
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            # Reader is far behind; drain one slot so it still sees the end marker.
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(None)

    def get(self, timeout: float) -> Optional[SyncProgressEvent]:
        """Next event, or None on timeout or end of stream. Check `closed` to tell them apart."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def unsubscribe(self) -> None:
        self._tracker.remove(self)


class SyncProgressTracker:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: list[ProgressSubscription | Listener] = []
        self._latest: Optional[SyncProgressEvent] = None

    def subscribe(self) -> ProgressSubscription:
        subscription = ProgressSubscription(self)
        with self._lock:
            self._observers.append(subscription)
            latest = self._latest
        if latest is not None and not latest.completed:
            subscription.deliver(latest)
        return subscription

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._observers.append(listener)

    def remove(self, observer: ProgressSubscription | Listener) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
        if isinstance(observer, ProgressSubscription):
            observer.close()

    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def publish(self, event: SyncProgressEvent) -> None:
        with self._lock:
            self._latest = event
            observers = list(self._observers)
        for observer in observers:
            try:
                if isinstance(observer, ProgressSubscription):
                    observer.deliver(event)
                else:
                    observer(event)
            except Exception:
                log.warning("Dropping progress observer after failed delivery", exc_info=True)
                self.remove(observer)
        if event.completed:
            for observer in observers:
                if isinstance(observer, ProgressSubscription):
                    self.remove(observer)

    def latest(self) -> Optional[SyncProgressEvent]:
        with self._lock:
            return self._latest

    def all_completed(self) -> bool:
        latest = self.latest()
        return latest is not None and latest.completed

    def clear(self) -> None:
        with self._lock:
            self._latest = None
