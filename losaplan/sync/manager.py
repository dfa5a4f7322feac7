"""Connection status and queue replay.

:class:`SyncContext` is owned by the top-level application and handed to
whatever needs to observe connectivity. It has an explicit ``start()`` /
``close()`` lifecycle and can be used as a context manager.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from losaplan.sync.queue import OfflineQueue, PendingMutation

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    SYNCING = "syncing"


@dataclass
class SyncResult:
    success: int = 0
    failed: int = 0


StatusListener = Callable[[ConnectionStatus, int], None]
Sender = Callable[[PendingMutation], bool]


class HttpSender:
    """POST each queued mutation to ``base_url + endpoint``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def __call__(self, mutation: PendingMutation) -> bool:
        response = self._client.post(mutation.endpoint, json=mutation.data)
        if not response.is_success:
            logger.warning(
                "Server rejected %s (%s): HTTP %d", mutation.id, mutation.endpoint, response.status_code
            )
        return response.is_success

    def close(self) -> None:
        self._client.close()


class SyncContext:
    """Replays an :class:`OfflineQueue` through a sender while online."""

    def __init__(
        self,
        queue: OfflineQueue,
        sender: Sender,
        online: bool = True,
        retention_days: int = 7,
    ) -> None:
        self.queue = queue
        self.sender = sender
        self.retention_days = retention_days
        self._online = online
        self._status = ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE
        self._listeners: list[StatusListener] = []
        self._sync_lock = threading.Lock()
        self._started = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> "SyncContext":
        if not self._started:
            self._started = True
            self._notify()
        return self

    def close(self) -> None:
        self._started = False
        self._listeners.clear()
        close = getattr(self.sender, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "SyncContext":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Status
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def started(self) -> bool:
        return self._started

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register *listener*, call it with the current status, return an unsubscribe."""
        self._listeners.append(listener)
        listener(self._status, self.queue.count())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        count = self.queue.count()
        for listener in list(self._listeners):
            listener(self._status, count)

    def set_online(self, online: bool) -> Optional[SyncResult]:
        """Record a connectivity change; coming online triggers a replay."""
        self._online = online
        self._status = ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE
        self._notify()
        if online and self._started:
            return self.sync_pending()
        return None

    # ------------------------------------------------------------------ #
    # Replay
    # ------------------------------------------------------------------ #

    def sync_pending(self) -> SyncResult:
        """Send every queued mutation once, oldest first."""
        if not self._started:
            raise RuntimeError("SyncContext.start() must be called before syncing")
        if not self._online:
            return SyncResult()
        if not self._sync_lock.acquire(blocking=False):
            logger.debug("Sync already in progress")
            return SyncResult()
        try:
            self._status = ConnectionStatus.SYNCING
            self._notify()
            result = SyncResult()
            for mutation in self.queue.pending():
                try:
                    accepted = self.sender(mutation)
                except httpx.HTTPError as exc:
                    logger.warning("Sync of %s failed: %s", mutation.id, exc)
                    accepted = False
                if accepted:
                    self.queue.remove(mutation.id)
                    result.success += 1
                else:
                    self.queue.bump_retry(mutation.id)
                    result.failed += 1
            self.queue.cleanup_synced_logs(self.retention_days)
        finally:
            self._status = ConnectionStatus.ONLINE if self._online else ConnectionStatus.OFFLINE
            self._sync_lock.release()
        self._notify()
        if result.success or result.failed:
            logger.info("Synced %d item(s), %d failed", result.success, result.failed)
        return result

    def run(self, stop: threading.Event, interval: float = 30.0) -> None:
        """Replay every *interval* seconds while items are pending, until *stop* is set."""
        while not stop.wait(interval):
            if self._online and self.queue.count() > 0:
                self.sync_pending()
