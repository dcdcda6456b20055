# SPDX-License-Identifier: Apache-2.0
"""Translation history hook."""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from batch_translator.engine.models import HistoryEntry

DEFAULT_HISTORY_SIZE = 100


@runtime_checkable
class HistoryStore(Protocol):
    """Persistence boundary for translation history."""

    def append(self, entry: HistoryEntry) -> None: ...

    def clear(self) -> None: ...


class InMemoryHistory:
    """Capped history list, newest entry first."""

    def __init__(self, max_entries: int = DEFAULT_HISTORY_SIZE) -> None:
        self._max_entries = max_entries
        self._entries: list[HistoryEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries = [entry, *self._entries][: self._max_entries]

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    @property
    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
