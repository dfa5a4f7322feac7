"""File-backed offline queue.

Records created without connectivity (calculations, site logs, tasks) are
appended to a JSON file and replayed in insertion order once the server is
reachable. Delivery is at-least-once: an item is only removed after the
server accepted it, so a crash between accept and remove re-sends it.
"""

from __future__ import annotations

import json
import logging
import random
import string
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class PendingMutation:
    id: str
    kind: str  # "calculation" | "log" | "task"
    action: str  # "create" | "update" | "delete"
    endpoint: str
    data: dict
    timestamp: int  # ms since epoch
    retry_count: int = 0


@dataclass
class OfflineLog:
    id: str
    project_id: int
    notes: Optional[str]
    photo_url: Optional[str]
    latitude: Optional[str]
    longitude: Optional[str]
    timestamp: str  # ISO-8601
    synced: bool = False
    server_id: Optional[int] = None


def generate_offline_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Return a locally unique id such as ``offline_1700000000000_k3j9x0a1b``."""
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    rng = rng or random.Random()
    token = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"offline_{ms}_{token}"


class OfflineQueue:
    """JSON-file store holding pending mutations and offline site logs."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Storage
    # ------------------------------------------------------------------ #

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        if not self.path.exists():
            return {"pending_mutations": [], "offline_logs": []}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        data.setdefault("pending_mutations", [])
        data.setdefault("offline_logs", [])
        return data

    def _write(self, data: dict[str, list[dict[str, Any]]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    # ------------------------------------------------------------------ #
    # Pending mutations
    # ------------------------------------------------------------------ #

    def add(self, kind: str, action: str, endpoint: str, data: dict) -> PendingMutation:
        item = PendingMutation(
            id=generate_offline_id(),
            kind=kind,
            action=action,
            endpoint=endpoint,
            data=data,
            timestamp=int(time.time() * 1000),
        )
        with self._lock:
            store = self._read()
            store["pending_mutations"].append(asdict(item))
            self._write(store)
        logger.debug("Queued %s %s → %s (%s)", action, kind, endpoint, item.id)
        return item

    def pending(self) -> list[PendingMutation]:
        with self._lock:
            return [PendingMutation(**m) for m in self._read()["pending_mutations"]]

    def count(self) -> int:
        with self._lock:
            return len(self._read()["pending_mutations"])

    def remove(self, mutation_id: str) -> bool:
        with self._lock:
            store = self._read()
            before = len(store["pending_mutations"])
            store["pending_mutations"] = [
                m for m in store["pending_mutations"] if m["id"] != mutation_id
            ]
            removed = len(store["pending_mutations"]) < before
            if removed:
                self._write(store)
        return removed

    def bump_retry(self, mutation_id: str) -> None:
        with self._lock:
            store = self._read()
            for m in store["pending_mutations"]:
                if m["id"] == mutation_id:
                    m["retry_count"] += 1
            self._write(store)

    # ------------------------------------------------------------------ #
    # Offline site logs
    # ------------------------------------------------------------------ #

    def save_log(
        self,
        project_id: int,
        notes: Optional[str] = None,
        photo_url: Optional[str] = None,
        latitude: Optional[str] = None,
        longitude: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> OfflineLog:
        log = OfflineLog(
            id=generate_offline_id(),
            project_id=project_id,
            notes=notes,
            photo_url=photo_url,
            latitude=latitude,
            longitude=longitude,
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            store = self._read()
            store["offline_logs"].append(asdict(log))
            self._write(store)
        return log

    def logs(self, project_id: int) -> list[OfflineLog]:
        with self._lock:
            return [
                OfflineLog(**entry)
                for entry in self._read()["offline_logs"]
                if entry["project_id"] == project_id
            ]

    def mark_log_synced(self, offline_id: str, server_id: int) -> None:
        with self._lock:
            store = self._read()
            for entry in store["offline_logs"]:
                if entry["id"] == offline_id:
                    entry["synced"] = True
                    entry["server_id"] = server_id
            self._write(store)

    def cleanup_synced_logs(
        self, retention_days: int = 7, now: Optional[datetime] = None
    ) -> int:
        """Drop synced logs older than *retention_days*; return how many."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        with self._lock:
            store = self._read()
            kept = []
            for entry in store["offline_logs"]:
                stamp = datetime.fromisoformat(entry["timestamp"])
                if stamp.tzinfo is None:
                    stamp = stamp.replace(tzinfo=timezone.utc)
                if entry["synced"] and stamp < cutoff:
                    continue
                kept.append(entry)
            removed = len(store["offline_logs"]) - len(kept)
            if removed:
                store["offline_logs"] = kept
                self._write(store)
        if removed:
            logger.debug("Removed %d synced offline logs", removed)
        return removed
