# SPDX-License-Identifier: Apache-2.0
"""Google Translate backend using deep-translator."""

from __future__ import annotations

import asyncio

from deep_translator import GoogleTranslator as DeepGoogleTranslator  # type: ignore[import-untyped]
from deep_translator.exceptions import (  # type: ignore[import-untyped]
    InvalidSourceOrTargetLanguage,
    LanguageNotSupportedException,
    TooManyRequests,
)

from batch_translator.languages import normalize_language
from batch_translator.translators.base import (
    LanguagePairUnsupportedError,
    ProviderCategory,
    ProviderDescriptor,
    ProviderTuning,
    QuotaExceededError,
    TranslateOptions,
    TranslationError,
)

# Codes deep-translator spells differently
GOOGLE_LANG_CODES = {
    "zh": "zh-CN",
    "he": "iw",
    "fil": "tl",
}


class GoogleTranslator:
    """Google Translate backend.

    This backend uses Google Translate via deep-translator library.
    No API key is required (uses free web API). It does not preserve
    structured payloads, so the engine batches segments for it.

    Attributes:
        name: Backend identifier ("google").
    """

    DESCRIPTOR = ProviderDescriptor(
        id="google",
        category=ProviderCategory.FREE,
        reliable_json_mode=False,
        supports_dictionary=True,
        # Google Translate web API has a 5,000 character limit
        tuning=ProviderTuning(batch_size=8, max_chars=4500),
    )

    def __init__(self, max_concurrent: int = 5) -> None:
        """Initialize GoogleTranslator.

        Args:
            max_concurrent: Maximum concurrent translation requests.
        """
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def name(self) -> str:
        """Return backend name."""
        return "google"

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self.DESCRIPTOR

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslateOptions | None = None,
    ) -> str:
        """Translate a single text using Google Translate.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja", "auto").
            target_lang: Target language code ("en", "ja").
            options: Per-call options (only the cancellation token is used).

        Returns:
            Translated text.

        Raises:
            TranslationError: On translation failure.
            QuotaExceededError: When Google throttles the client.
            LanguagePairUnsupportedError: On unsupported languages.
        """
        # Early return for empty or whitespace-only text
        if not text or not text.strip():
            return text

        token = options.cancellation_token if options else None
        if token is not None:
            token.raise_if_cancelled()

        async with self._semaphore:
            return await asyncio.to_thread(
                self._translate_sync,
                text,
                self._lang_code(source_lang),
                self._lang_code(target_lang),
            )

    @staticmethod
    def _lang_code(lang: str) -> str:
        code = normalize_language(lang)
        return GOOGLE_LANG_CODES.get(code.lower(), code)

    def _translate_sync(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Synchronous translation implementation.

        Raises:
            TranslationError: On translation failure.
        """
        try:
            translator = DeepGoogleTranslator(source=source_lang, target=target_lang)
            result = translator.translate(text)
            return result if result is not None else text
        except (LanguageNotSupportedException, InvalidSourceOrTargetLanguage) as e:
            raise LanguagePairUnsupportedError(source_lang, target_lang, "google") from e
        except TooManyRequests as e:
            raise QuotaExceededError("Google Translate rate limit exceeded, please retry later") from e
        except Exception as e:
            raise TranslationError(f"Google Translate failed: {e}") from e
