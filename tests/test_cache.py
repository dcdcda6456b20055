# SPDX-License-Identifier: Apache-2.0
"""Tests for the translation cache."""

from __future__ import annotations

import pytest

from batch_translator.engine.cache import CacheEntry, CacheStore, build_cache_key
from batch_translator.engine.models import TranslationMode


class TestBuildCacheKey:
    """Tests for build_cache_key."""

    def test_deterministic(self) -> None:
        """Same inputs should always give the same key."""
        first = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, "Hello")
        second = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, "Hello")
        assert first == second

    def test_key_format(self) -> None:
        """Key should join provider, languages, mode and text."""
        key = build_cache_key("bing", "auto", "fa", TranslationMode.SELECTION, "Hi")
        assert key == "bing:auto:fa:selection:Hi"

    @pytest.mark.parametrize(
        "changed",
        [
            ("deepl", "en", "ja", TranslationMode.SIMPLE),
            ("google", "de", "ja", TranslationMode.SIMPLE),
            ("google", "en", "fr", TranslationMode.SIMPLE),
            ("google", "en", "ja", TranslationMode.DICTIONARY),
        ],
    )
    def test_each_field_participates(self, changed: tuple) -> None:
        """Changing any non-text field should change the key."""
        base = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, "Hello")
        assert build_cache_key(*changed, "Hello") != base

    def test_texts_sharing_first_100_chars_collide(self) -> None:
        """Only the first 100 characters of the text take part in the key."""
        prefix = "x" * 100
        first = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, prefix + "A")
        second = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, prefix + "B")
        assert first == second

    def test_texts_differing_within_100_chars_do_not_collide(self) -> None:
        first = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, "a" * 99 + "A")
        second = build_cache_key("google", "en", "ja", TranslationMode.SIMPLE, "a" * 99 + "B")
        assert first != second


class TestCacheStore:
    """Tests for CacheStore."""

    def test_get_missing_returns_none(self) -> None:
        cache = CacheStore()
        assert cache.get("missing") is None

    def test_put_and_get(self) -> None:
        cache = CacheStore()
        cache.put("k", CacheEntry("v"))
        entry = cache.get("k")
        assert entry is not None
        assert entry.translated_text == "v"
        assert entry.cached_at > 0

    def test_default_capacity_is_100(self) -> None:
        assert CacheStore().max_entries == 100

    def test_101st_insert_evicts_first_inserted(self) -> None:
        """Inserting past capacity should evict exactly the oldest entry."""
        cache = CacheStore()
        for i in range(100):
            cache.put(f"k{i}", CacheEntry(f"v{i}"))

        cache.put("k100", CacheEntry("v100"))

        assert len(cache) == 100
        assert "k0" not in cache
        assert "k1" in cache
        assert "k100" in cache

    def test_reads_do_not_refresh_position(self) -> None:
        """Eviction is by insertion order, not by recent use."""
        cache = CacheStore(max_entries=2)
        cache.put("a", CacheEntry("1"))
        cache.put("b", CacheEntry("2"))
        cache.get("a")

        cache.put("c", CacheEntry("3"))

        assert "a" not in cache
        assert "b" in cache
        assert "c" in cache

    def test_reput_replaces_value_without_eviction(self) -> None:
        cache = CacheStore(max_entries=2)
        cache.put("a", CacheEntry("1"))
        cache.put("b", CacheEntry("2"))

        cache.put("a", CacheEntry("updated"))

        assert len(cache) == 2
        assert cache.get("a").translated_text == "updated"  # type: ignore[union-attr]
        assert "b" in cache

    def test_clear(self) -> None:
        cache = CacheStore()
        cache.put("a", CacheEntry("1"))
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            CacheStore(max_entries=0)
