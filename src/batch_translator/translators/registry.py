# SPDX-License-Identifier: Apache-2.0
"""Provider registry: maps provider ids to lazily built backends."""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable

from batch_translator.config import Settings
from batch_translator.translators.base import TranslatorBackend, UnknownProviderError

logger = logging.getLogger(__name__)

BackendFactory = Callable[[], TranslatorBackend]


class ProviderRegistry:
    """Lazily constructs and caches one backend instance per provider id.

    Factories run on first ``resolve()`` and the instance is reused for the
    lifetime of the registry. Construction is guarded by a lock so that
    concurrent callers never build the same backend twice.
    """

    def __init__(self) -> None:
        self._factories: dict[str, BackendFactory] = {}
        self._instances: dict[str, TranslatorBackend] = {}
        self._lock = threading.Lock()

    def register(self, provider_id: str, factory: BackendFactory) -> None:
        """Register (or replace) the factory for ``provider_id``.

        Replacing a factory drops any instance built by the previous one.
        """
        with self._lock:
            self._factories[provider_id] = factory
            self._instances.pop(provider_id, None)

    def is_registered(self, provider_id: str) -> bool:
        return provider_id in self._factories

    @property
    def provider_ids(self) -> list[str]:
        return sorted(self._factories)

    @property
    def active_count(self) -> int:
        """Number of backends constructed so far."""
        return len(self._instances)

    def resolve(self, provider_id: str) -> TranslatorBackend:
        """Return the backend for ``provider_id``, building it on first use.

        Raises:
            UnknownProviderError: If no factory is registered.
            ConfigurationError: If the factory cannot build the backend.
        """
        with self._lock:
            instance = self._instances.get(provider_id)
            if instance is not None:
                return instance

            factory = self._factories.get(provider_id)
            if factory is None:
                raise UnknownProviderError(provider_id)

            logger.debug("Creating translation backend '%s'", provider_id)
            instance = factory()
            self._instances[provider_id] = instance
            return instance

    async def close(self) -> None:
        """Close every constructed backend that exposes ``close()``."""
        with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()

        for instance in instances:
            close = getattr(instance, "close", None)
            if close is None:
                continue
            result = close()
            if inspect.isawaitable(result):
                await result


def create_default_registry(settings: Settings | None = None) -> ProviderRegistry:
    """Build a registry with the bundled backends.

    Backends with optional credentials read them from ``settings`` when they
    are first resolved, so a missing key only fails requests for that
    provider.

    Args:
        settings: Credentials source (default: ``Settings.from_env()``).

    Returns:
        Registry with "google", "bing", "deepl" and "openai" registered.
    """
    settings = settings or Settings.from_env()
    registry = ProviderRegistry()

    def google() -> TranslatorBackend:
        from batch_translator.translators.google import GoogleTranslator

        return GoogleTranslator()

    def bing() -> TranslatorBackend:
        from batch_translator.translators.bing import BingTranslator

        return BingTranslator()

    def deepl() -> TranslatorBackend:
        from batch_translator.translators.deepl import DeepLTranslator

        return DeepLTranslator(
            api_key=settings.credential("deepl", "api_key") or "",
            api_url=settings.credential("deepl", "api_url"),
        )

    def openai() -> TranslatorBackend:
        from batch_translator.translators.openai import OpenAITranslator

        return OpenAITranslator(
            api_key=settings.credential("openai", "api_key") or "",
            model=settings.credential("openai", "model"),
        )

    registry.register("google", google)
    registry.register("bing", bing)
    registry.register("deepl", deepl)
    registry.register("openai", openai)
    return registry
