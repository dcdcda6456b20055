# SPDX-License-Identifier: Apache-2.0
"""Tests for the provider registry."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from batch_translator.config import Settings
from batch_translator.translators.base import ConfigurationError, UnknownProviderError
from batch_translator.translators.registry import ProviderRegistry, create_default_registry

from conftest import FakeBackend


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_backend_built_lazily_and_reused(self) -> None:
        factory = MagicMock(side_effect=lambda: FakeBackend())
        registry = ProviderRegistry()
        registry.register("fake", factory)

        assert registry.active_count == 0
        first = registry.resolve("fake")
        second = registry.resolve("fake")

        assert first is second
        factory.assert_called_once()
        assert registry.active_count == 1

    def test_unknown_provider(self) -> None:
        registry = ProviderRegistry()
        with pytest.raises(UnknownProviderError) as exc_info:
            registry.resolve("nope")
        assert exc_info.value.provider_id == "nope"

    def test_factory_error_is_not_cached(self) -> None:
        calls = 0

        def factory() -> FakeBackend:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ConfigurationError("missing key")
            return FakeBackend()

        registry = ProviderRegistry()
        registry.register("fake", factory)

        with pytest.raises(ConfigurationError):
            registry.resolve("fake")
        assert registry.resolve("fake").name == "fake"

    def test_register_replaces_instance(self) -> None:
        registry = ProviderRegistry()
        old = FakeBackend()
        new = FakeBackend()
        registry.register("fake", lambda: old)
        assert registry.resolve("fake") is old

        registry.register("fake", lambda: new)

        assert registry.resolve("fake") is new

    def test_provider_ids(self) -> None:
        registry = ProviderRegistry()
        registry.register("zeta", FakeBackend)
        registry.register("alpha", FakeBackend)
        assert registry.provider_ids == ["alpha", "zeta"]
        assert registry.is_registered("alpha")
        assert not registry.is_registered("beta")

    @pytest.mark.asyncio
    async def test_close_closes_built_backends(self) -> None:
        backend = FakeBackend()
        registry = ProviderRegistry()
        registry.register("fake", lambda: backend)
        registry.resolve("fake")

        await registry.close()

        assert backend.closed
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_close_accepts_sync_close(self) -> None:
        backend = MagicMock()
        registry = ProviderRegistry()
        registry.register("sync", lambda: backend)
        registry.resolve("sync")

        await registry.close()

        backend.close.assert_called_once()


class TestDefaultRegistry:
    """Tests for create_default_registry."""

    def test_bundled_providers(self) -> None:
        registry = create_default_registry(Settings())
        assert registry.provider_ids == ["bing", "deepl", "google", "openai"]
        assert registry.active_count == 0

    def test_free_providers_need_no_credentials(self) -> None:
        registry = create_default_registry(Settings())
        assert registry.resolve("google").name == "google"
        assert registry.resolve("bing").name == "bing"

    @pytest.mark.parametrize("provider_id", ["deepl", "openai"])
    def test_missing_key_fails_on_resolve(self, provider_id: str) -> None:
        registry = create_default_registry(Settings())
        with pytest.raises(ConfigurationError):
            registry.resolve(provider_id)

    def test_credentials_from_settings(self) -> None:
        settings = Settings(
            credentials={
                "deepl": {"api_key": "deepl-key", "api_url": "https://api.deepl.com/v2/translate"},
                "openai": {"api_key": "openai-key", "model": "gpt-4o"},
            }
        )
        registry = create_default_registry(settings)

        deepl = registry.resolve("deepl")
        openai = registry.resolve("openai")

        assert deepl._api_url == "https://api.deepl.com/v2/translate"  # type: ignore[attr-defined]
        assert openai.model == "gpt-4o"  # type: ignore[attr-defined]
