"""In-memory list of confirmed counts, newest first."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

from models import InventoryRecord


class ConfirmedRecordsLog:
    def __init__(self) -> None:
        self._records: list[InventoryRecord] = []
        self._lock = threading.Lock()

    def prepend(self, record: InventoryRecord) -> None:
        if not isinstance(record, InventoryRecord):
            raise TypeError(f"expected InventoryRecord, got {type(record).__name__}")
        with self._lock:
            self._records.insert(0, record)

    @property
    def latest(self) -> Optional[InventoryRecord]:
        with self._lock:
            return self._records[0] if self._records else None

    def snapshot(self) -> tuple[InventoryRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __iter__(self) -> Iterator[InventoryRecord]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
