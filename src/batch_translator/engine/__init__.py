# SPDX-License-Identifier: Apache-2.0
"""Batch translation engine package."""

from .cache import CacheEntry, CacheStore, build_cache_key
from .errors import EngineError, ProviderUnreachableError, ValidationError
from .history import HistoryStore, InMemoryHistory
from .models import (
    HistoryEntry,
    ResponseStatus,
    TranslationMode,
    TranslationRequest,
    TranslationResponse,
)
from .orchestrator import BATCH_DELIMITER, ProgressCallback, TranslationEngine
from .swapper import LanguagePair, LanguageSwapper

__all__ = [
    "BATCH_DELIMITER",
    "CacheEntry",
    "CacheStore",
    "EngineError",
    "HistoryEntry",
    "HistoryStore",
    "InMemoryHistory",
    "LanguagePair",
    "LanguageSwapper",
    "ProgressCallback",
    "ProviderUnreachableError",
    "ResponseStatus",
    "TranslationEngine",
    "TranslationMode",
    "TranslationRequest",
    "TranslationResponse",
    "ValidationError",
    "build_cache_key",
]
