# SPDX-License-Identifier: Apache-2.0
"""Shared test doubles for the translation engine."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from batch_translator.config import EngineConfig
from batch_translator.engine.orchestrator import BATCH_DELIMITER, TranslationEngine
from batch_translator.engine.swapper import LanguageSwapper
from batch_translator.translators.base import (
    ProviderCategory,
    ProviderDescriptor,
    ProviderTuning,
    TranslateOptions,
)
from batch_translator.translators.registry import ProviderRegistry

Handler = Callable[[str, str, str], "str | Awaitable[str]"]


def tag_translation(text: str, source_lang: str, target_lang: str) -> str:
    """Pretend translation: prefix every delimited part with the target code."""
    return BATCH_DELIMITER.join(
        f"<{target_lang}>{part}" for part in text.split(BATCH_DELIMITER)
    )


class FakeBackend:
    """In-memory backend recording every call it receives."""

    def __init__(
        self,
        provider_id: str = "fake",
        handler: Handler | None = None,
        *,
        reliable_json_mode: bool = False,
        supports_dictionary: bool = False,
        category: ProviderCategory = ProviderCategory.FREE,
        **tuning: Any,
    ) -> None:
        tuning.setdefault("retry_delay", 0.0)
        self._descriptor = ProviderDescriptor(
            id=provider_id,
            category=category,
            reliable_json_mode=reliable_json_mode,
            supports_dictionary=supports_dictionary,
            tuning=ProviderTuning(**tuning),
        )
        self._handler = handler or tag_translation
        self.calls: list[str] = []
        self.options: list[TranslateOptions | None] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._descriptor.id

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self._descriptor

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslateOptions | None = None,
    ) -> str:
        self.calls.append(text)
        self.options.append(options)
        result = self._handler(text, source_lang, target_lang)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def close(self) -> None:
        self.closed = True


def no_detection(text: str) -> None:
    return None


def make_engine(*backends: FakeBackend, **config: Any) -> TranslationEngine:
    """Engine over the given backends with language detection disabled."""
    registry = ProviderRegistry()
    for backend in backends:
        registry.register(backend.name, lambda b=backend: b)
    return TranslationEngine(
        registry=registry,
        config=EngineConfig(**config),
        swapper=LanguageSwapper(detector=no_detection),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def engine(backend: FakeBackend) -> TranslationEngine:
    return make_engine(backend)
