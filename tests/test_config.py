# SPDX-License-Identifier: Apache-2.0
"""Tests for configuration, language helpers and history."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from batch_translator.config import EngineConfig, Settings
from batch_translator.engine.history import HistoryStore, InMemoryHistory
from batch_translator.engine.models import HistoryEntry
from batch_translator.languages import (
    base_code,
    is_auto,
    normalize_language,
    same_language,
)


class TestEngineConfig:
    """Tests for EngineConfig defaults."""

    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.cache_size == 100
        assert config.history_size == 100
        assert config.max_text_length == 50_000
        assert config.max_structured_length == 500_000
        assert config.large_text_warning == 10_000
        assert config.detection_threshold == 0.8


class TestSettings:
    """Tests for Settings."""

    def test_from_env(self) -> None:
        env = {
            "TRANSLATOR_SOURCE_LANG": "de",
            "TRANSLATOR_TARGET_LANG": "fa",
            "DEEPL_API_KEY": "deepl-key",
            "OPENAI_API_KEY": "openai-key",
            "OPENAI_MODEL": "gpt-4o",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        assert settings.source_lang == "de"
        assert settings.target_lang == "fa"
        assert settings.credential("deepl", "api_key") == "deepl-key"
        assert settings.credential("deepl", "api_url") is None
        assert settings.credential("openai", "model") == "gpt-4o"

    def test_from_env_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()
        assert settings.source_lang == "auto"
        assert settings.target_lang == "en"
        assert settings.credentials == {}

    def test_unknown_provider_credential(self) -> None:
        assert Settings().credential("bing", "api_key") is None

    def test_to_engine_config(self) -> None:
        config = Settings(source_lang="ja", target_lang="en").to_engine_config()
        assert config.default_source_lang == "ja"
        assert config.default_target_lang == "en"


class TestLanguages:
    """Tests for language code helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Persian", "fa"),
            ("farsi", "fa"),
            ("English", "en"),
            ("auto-detect", "auto"),
            ("Auto", "auto"),
            ("", "auto"),
            (None, "auto"),
            ("EN", "en"),
            ("zh-CN", "zh-CN"),
            (" ja ", "ja"),
        ],
    )
    def test_normalize_language(self, value: str | None, expected: str) -> None:
        assert normalize_language(value) == expected

    def test_base_code(self) -> None:
        assert base_code("zh-CN") == "zh"
        assert base_code("Persian") == "fa"

    def test_is_auto(self) -> None:
        assert is_auto("auto")
        assert is_auto("detect")
        assert not is_auto("en")

    def test_same_language(self) -> None:
        assert same_language("en", "EN")
        assert same_language("English", "en")
        assert not same_language("auto", "en")
        assert not same_language("en", "fa")


class TestInMemoryHistory:
    """Tests for InMemoryHistory."""

    def entry(self, text: str) -> HistoryEntry:
        return HistoryEntry(text, f"<{text}>", "en", "ja")

    def test_implements_protocol(self) -> None:
        assert isinstance(InMemoryHistory(), HistoryStore)

    def test_newest_first(self) -> None:
        history = InMemoryHistory()
        history.append(self.entry("a"))
        history.append(self.entry("b"))
        assert [e.source_text for e in history.entries] == ["b", "a"]

    def test_capped(self) -> None:
        history = InMemoryHistory(max_entries=3)
        for text in "abcde":
            history.append(self.entry(text))
        assert [e.source_text for e in history.entries] == ["e", "d", "c"]

    def test_default_cap_is_100(self) -> None:
        history = InMemoryHistory()
        for i in range(150):
            history.append(self.entry(str(i)))
        assert len(history) == 100

    def test_clear(self) -> None:
        history = InMemoryHistory()
        history.append(self.entry("a"))
        history.clear()
        assert len(history) == 0
