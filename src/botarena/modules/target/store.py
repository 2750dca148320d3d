"""Per-session append-only stores for request logs and detector results."""

import threading
from typing import Any, Generic, TypeVar

from botarena.modules.detector import DetectorResult, RequestLog

T = TypeVar("T")


class SessionKeyedLog(Generic[T]):
    """Append-only entries grouped by session id.

    Each session has its own lock; the map lock only guards creation of a
    session's slot, so concurrent sessions never contend on each other.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[T]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()

    def _slot(self, session_id: str) -> tuple[list[T], threading.Lock]:
        with self._map_lock:
            if session_id not in self._entries:
                self._entries[session_id] = []
                self._locks[session_id] = threading.Lock()
            return self._entries[session_id], self._locks[session_id]

    def append(self, session_id: str, entry: T) -> T:
        """Append one entry to a session's log."""
        entries, lock = self._slot(session_id)
        with lock:
            entries.append(entry)
        return entry

    def read_all(self, session_id: str) -> list[T]:
        """Return a snapshot of a session's entries (empty when unknown)."""
        with self._map_lock:
            entries = self._entries.get(session_id)
            lock = self._locks.get(session_id)
        if entries is None or lock is None:
            return []
        with lock:
            return list(entries)

    def session_ids(self) -> list[str]:
        with self._map_lock:
            return list(self._entries)

    def all_entries(self) -> list[T]:
        """Return every entry across sessions, grouped in session insertion order."""
        collected: list[T] = []
        for session_id in self.session_ids():
            collected.extend(self.read_all(session_id))
        return collected

    def clear(self) -> int:
        """Drop every session.  Returns the number of entries removed."""
        with self._map_lock:
            count = sum(len(entries) for entries in self._entries.values())
            self._entries.clear()
            self._locks.clear()
        return count

    def __len__(self) -> int:
        with self._map_lock:
            return sum(len(entries) for entries in self._entries.values())


class SessionLogStore(SessionKeyedLog[RequestLog]):
    """Request logs observed by the target service."""

    def export(self) -> list[dict[str, Any]]:
        return [log.to_dict() for log in self.all_entries()]


class DetectionStore(SessionKeyedLog[DetectorResult]):
    """Detector results produced for each scored request."""

    def export(self) -> list[dict[str, Any]]:
        return [result.to_dict() for result in self.all_entries()]
