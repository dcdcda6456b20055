# SPDX-License-Identifier: Apache-2.0
"""Bounded in-memory translation cache."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field

from batch_translator.engine.models import TranslationMode

DEFAULT_CACHE_SIZE = 100

# Only this many characters of the text take part in the key.
KEY_TEXT_PREFIX = 100


@dataclass(frozen=True)
class CacheEntry:
    translated_text: str
    cached_at: float = field(default_factory=time.time)


def build_cache_key(
    provider: str,
    source_lang: str,
    target_lang: str,
    mode: TranslationMode,
    text: str,
) -> str:
    """Build a deterministic cache key.

    Only the first 100 characters of ``text`` participate, so two texts that
    share that prefix map to the same key. This trades exactness for hit rate.

    Args:
        provider: Provider id.
        source_lang: Source language code.
        target_lang: Target language code.
        mode: Request mode.
        text: Text being translated.

    Returns:
        Cache key string.
    """
    return f"{provider}:{source_lang}:{target_lang}:{mode.value}:{text[:KEY_TEXT_PREFIX]}"


class CacheStore:
    """Key to result memo with first-in-first-out eviction.

    Reads never refresh an entry's position; the entry inserted first is
    always the one evicted. Safe to share between concurrent requests.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            if key in self._entries:
                # Replace in place, insertion position unchanged
                self._entries[key] = entry
                return
            if len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
