"""Record store — holds the live snapshot of one record kind.

Readers take the shared side of a reader/writer lock just long enough to
pick up the current snapshot reference; since snapshots are immutable the
query itself runs without holding any lock. Replacement takes the exclusive
side, so a reader sees either the old snapshot or the new one in full.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from hub.registry.models import RecordKind, Snapshot


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer.

    Waiting writers block new readers so a steady stream of queries cannot
    starve a reload.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class RecordStore:
    """Thread-safe holder of the current :class:`Snapshot` for one kind."""

    def __init__(self, kind: RecordKind) -> None:
        self.kind = kind
        self._lock = ReadWriteLock()
        self._snapshot = Snapshot.empty()

    def replace_snapshot(self, snapshot: Snapshot) -> None:
        """Install ``snapshot`` as current, replacing the previous one whole."""
        with self._lock.write_locked():
            self._snapshot = snapshot

    def current_snapshot(self) -> Snapshot:
        """Return the live snapshot; safe to query after the call returns."""
        with self._lock.read_locked():
            return self._snapshot

    def last_load_time(self) -> Optional[datetime]:
        """Timestamp of the installed snapshot, ``None`` before the first load."""
        with self._lock.read_locked():
            return self._snapshot.loaded_at

    def __len__(self) -> int:
        return len(self.current_snapshot())
