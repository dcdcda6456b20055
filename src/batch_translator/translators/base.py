# SPDX-License-Identifier: Apache-2.0
"""Base classes and protocols for translation backends."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from batch_translator.engine.models import TranslationMode


class ErrorKind(Enum):
    """Closed set of failure kinds produced at the adapter boundary."""

    VALIDATION = "validation"
    LANGUAGE_PAIR_UNSUPPORTED = "language_pair_unsupported"
    USER_CANCELLED = "user_cancelled"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    AUTH = "auth"


class TranslatorError(Exception):
    """Base exception for translator module."""

    kind: ClassVar[ErrorKind] = ErrorKind.TRANSIENT


class TranslationError(TranslatorError):
    """Error during translation (API call failure, network error, etc.).

    This error type is potentially retryable.
    """

    kind = ErrorKind.TRANSIENT


class ArrayLengthMismatchError(TranslationError):
    """Backend returned a different number of translations than requested."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected} translations but got {actual}")
        self.expected = expected
        self.actual = actual


class ConfigurationError(TranslatorError):
    """Configuration error (missing API key, invalid credentials, etc.).

    This error type is NOT retryable - fix the configuration first.
    """

    kind = ErrorKind.AUTH


class QuotaExceededError(TranslatorError):
    """Provider rejected the call because of rate limits or quota."""

    kind = ErrorKind.RATE_LIMITED


class LanguagePairUnsupportedError(TranslatorError):
    """Provider cannot translate between the requested languages at all."""

    kind = ErrorKind.LANGUAGE_PAIR_UNSUPPORTED

    def __init__(self, source_lang: str, target_lang: str, provider: str = "") -> None:
        prefix = f"{provider}: " if provider else ""
        super().__init__(
            f"{prefix}Translation not available from '{source_lang}' to '{target_lang}'"
        )
        self.source_lang = source_lang
        self.target_lang = target_lang


class UnknownProviderError(TranslatorError):
    """No backend is registered under the requested provider id."""

    kind = ErrorKind.VALIDATION

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown translation provider '{provider_id}'")
        self.provider_id = provider_id


class TranslationCancelledError(TranslatorError):
    """Translation was cancelled by the user."""

    kind = ErrorKind.USER_CANCELLED

    def __init__(self, message: str = "Translation cancelled by user") -> None:
        super().__init__(message)


class CancellationToken:
    """Cooperative cancellation signal handed to backends.

    The engine owns the token; backends may poll ``cancelled`` or call
    ``raise_if_cancelled()`` before expensive work.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranslationCancelledError()

    async def wait(self) -> None:
        await self._event.wait()


class ProviderCategory(Enum):
    """Broad family of a translation backend."""

    FREE = "free"
    AI = "ai"
    API = "api"
    BROWSER_NATIVE = "browser-native"


DEFAULT_POOL_SIZES: dict[ProviderCategory, int] = {
    ProviderCategory.FREE: 2,
    ProviderCategory.AI: 2,
    ProviderCategory.API: 2,
    ProviderCategory.BROWSER_NATIVE: 1,
}


@dataclass(frozen=True)
class ProviderTuning:
    """Batching and throttling knobs for one backend.

    Attributes:
        batch_size: Maximum segments per batch.
        max_chars: Maximum accumulated characters per batch.
        pool_size: Concurrent calls to the provider, shared by all requests
            of one engine (None = category default).
        failure_threshold: Consecutive transient batch failures before giving up.
        request_delay: Seconds to wait before each batch call.
        retry_attempts: Attempts per segment in the individual fallback.
        retry_delay: Base delay in seconds between individual attempts.
        call_timeout: Seconds before a single backend call is abandoned.
    """

    batch_size: int = 8
    max_chars: int = 8000
    pool_size: int | None = None
    failure_threshold: int = 5
    request_delay: float = 0.0
    retry_attempts: int = 2
    retry_delay: float = 0.1
    call_timeout: float | None = None


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static capabilities of a backend, declared as data."""

    id: str
    category: ProviderCategory
    reliable_json_mode: bool = False
    supports_dictionary: bool = False
    tuning: ProviderTuning = field(default_factory=ProviderTuning)

    @property
    def pool_size(self) -> int:
        if self.tuning.pool_size is not None:
            return max(1, self.tuning.pool_size)
        return DEFAULT_POOL_SIZES[self.category]


@dataclass
class TranslateOptions:
    """Per-call context passed to ``TranslatorBackend.translate``."""

    mode: TranslationMode | None = None
    original_source_lang: str = "auto"
    original_target_lang: str = "en"
    cancellation_token: CancellationToken | None = None


@runtime_checkable
class TranslatorBackend(Protocol):
    """Protocol definition for translation backends.

    All translator implementations must conform to this protocol.
    """

    @property
    def name(self) -> str:
        """Backend name ("google", "bing", "deepl", "openai")."""
        ...

    @property
    def descriptor(self) -> ProviderDescriptor:
        """Capabilities and tuning of the backend."""
        ...

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslateOptions | None = None,
    ) -> str:
        """Translate a single text.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja", "auto").
            target_lang: Target language code ("en", "ja").
            options: Mode, configured language defaults and cancellation token.

        Returns:
            Translated text.

        Raises:
            TranslatorError: On translation failure (subclass tells the kind).
        """
        ...
