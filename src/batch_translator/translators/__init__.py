# SPDX-License-Identifier: Apache-2.0
"""Translation backend modules.

This module provides translation backends for Google Translate, Bing,
DeepL, and OpenAI, plus the registry the engine resolves them through.

Google Translate and Bing need no API key. DeepL and OpenAI read their
keys from ``Settings`` when first resolved.

Usage:
    from batch_translator.translators import create_default_registry
    registry = create_default_registry()
    translator = registry.resolve("google")
    result = await translator.translate("Hello", "en", "ja")
"""

from batch_translator.translators.base import (
    ArrayLengthMismatchError,
    CancellationToken,
    ConfigurationError,
    ErrorKind,
    LanguagePairUnsupportedError,
    ProviderCategory,
    ProviderDescriptor,
    ProviderTuning,
    QuotaExceededError,
    TranslateOptions,
    TranslationCancelledError,
    TranslationError,
    TranslatorBackend,
    TranslatorError,
    UnknownProviderError,
)
from batch_translator.translators.registry import ProviderRegistry, create_default_registry

__all__ = [
    # Protocol and descriptors
    "TranslatorBackend",
    "TranslateOptions",
    "CancellationToken",
    "ProviderCategory",
    "ProviderDescriptor",
    "ProviderTuning",
    # Exceptions
    "ErrorKind",
    "TranslatorError",
    "TranslationError",
    "ArrayLengthMismatchError",
    "ConfigurationError",
    "QuotaExceededError",
    "LanguagePairUnsupportedError",
    "TranslationCancelledError",
    "UnknownProviderError",
    # Registry
    "ProviderRegistry",
    "create_default_registry",
]
