# SPDX-License-Identifier: Apache-2.0
"""DeepL translation backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from batch_translator.languages import AUTO_DETECT, base_code, normalize_language
from batch_translator.payload import dump_payload, payload_texts, try_parse_payload
from batch_translator.translators.base import (
    ConfigurationError,
    LanguagePairUnsupportedError,
    ProviderCategory,
    ProviderDescriptor,
    ProviderTuning,
    QuotaExceededError,
    TranslateOptions,
    TranslationError,
)

if TYPE_CHECKING:
    import aiohttp

DEEPL_LANGS = frozenset({
    "ar", "bg", "cs", "da", "de", "el", "en", "es", "et", "fi", "fr", "hu",
    "id", "it", "ja", "ko", "lt", "lv", "nb", "nl", "pl", "pt", "ro", "ru",
    "sk", "sl", "sv", "tr", "uk", "zh",
})

# Targets that must carry a regional variant
DEEPL_TARGET_VARIANTS = {
    "en": "EN-US",
    "pt": "PT-PT",
}
DEEPL_REGIONAL_TARGETS = frozenset({"EN-GB", "EN-US", "PT-BR", "PT-PT"})

DEEPL_LANG_ALIASES = {
    "no": "nb",
}


class DeepLTranslator:
    """DeepL translation backend.

    This backend uses DeepL API for high-quality translation.
    Requires an API key (free or pro).

    DeepL keeps each submitted text separate, so structured payloads are
    translated directly: every item's ``text`` is sent as its own ``text``
    parameter and the payload is rebuilt from the reply.

    Attributes:
        name: Backend identifier ("deepl").
    """

    DEFAULT_API_URL = "https://api-free.deepl.com/v2/translate"
    MAX_TEXTS_PER_REQUEST = 50
    MAX_REQUEST_SIZE = 128 * 1024  # 128KB

    DESCRIPTOR = ProviderDescriptor(
        id="deepl",
        category=ProviderCategory.API,
        reliable_json_mode=True,
        supports_dictionary=False,
        tuning=ProviderTuning(batch_size=10, max_chars=20000),
    )

    def __init__(
        self,
        api_key: str,
        api_url: str | None = None,
    ) -> None:
        """Initialize DeepLTranslator.

        Args:
            api_key: DeepL API key.
            api_url: API URL (default: free API endpoint).

        Raises:
            ConfigurationError: If API key is not provided.
            ImportError: If aiohttp is not installed.
        """
        if not api_key:
            raise ConfigurationError("DeepL API key is required")

        # Lazy import aiohttp
        try:
            import aiohttp as _aiohttp

            self._aiohttp = _aiohttp
        except ImportError:
            raise ImportError(
                "aiohttp is required for DeepL backend. "
                "Install with: pip install batch-translator"
            ) from None

        self._api_key = api_key
        self._api_url = api_url or self.DEFAULT_API_URL
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return "deepl"

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self.DESCRIPTOR

    async def __aenter__(self) -> DeepLTranslator:
        """Enter async context manager."""
        await self._ensure_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists.

        Returns:
            Active aiohttp session.
        """
        if self._session is None:
            self._session = self._aiohttp.ClientSession(
                headers={"Authorization": f"DeepL-Auth-Key {self._api_key}"}
            )
        return self._session

    @staticmethod
    def _source_code(lang: str) -> str | None:
        """DeepL source code, or None for auto-detection."""
        code = normalize_language(lang)
        if code == AUTO_DETECT:
            return None
        base = base_code(code)
        return DEEPL_LANG_ALIASES.get(base, base)

    @staticmethod
    def _target_code(lang: str) -> str:
        code = normalize_language(lang)
        base = base_code(code)
        base = DEEPL_LANG_ALIASES.get(base, base)
        if code.upper() in DEEPL_REGIONAL_TARGETS:
            return code.upper()
        return DEEPL_TARGET_VARIANTS.get(base, base.upper())

    def _check_pair(self, source_lang: str, target_lang: str) -> None:
        source = self._source_code(source_lang)
        target = base_code(self._target_code(target_lang))
        if target not in DEEPL_LANGS or (source is not None and source not in DEEPL_LANGS):
            raise LanguagePairUnsupportedError(source_lang, target_lang, "deepl")

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslateOptions | None = None,
    ) -> str:
        """Translate a single text using DeepL.

        In select-element mode a JSON payload is translated item by item and
        returned as a payload of the same shape.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja", "auto").
            target_lang: Target language code ("en", "ja").
            options: Mode and cancellation token.

        Returns:
            Translated text.

        Raises:
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
            QuotaExceededError: On rate limit or exhausted quota.
            LanguagePairUnsupportedError: If DeepL lacks one of the languages.
        """
        # Early return for empty or whitespace-only text
        if not text or not text.strip():
            return text

        token = options.cancellation_token if options else None
        if token is not None:
            token.raise_if_cancelled()

        self._check_pair(source_lang, target_lang)

        if options is not None and options.mode is not None and options.mode.is_structured:
            items = try_parse_payload(text)
            if items is not None:
                translated = await self.translate_batch(
                    payload_texts(items), source_lang, target_lang
                )
                return dump_payload(items, translated)

        results = await self.translate_batch([text], source_lang, target_lang)
        return results[0]

    async def translate_batch(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
    ) -> list[str]:
        """Translate multiple texts in batch using DeepL.

        Uses multiple 'text' parameters in a single request for efficiency.
        Automatically chunks requests if they exceed API limits.

        Args:
            texts: List of texts to translate.
            source_lang: Source language code.
            target_lang: Target language code.

        Returns:
            List of translated texts (same order and length as input).

        Raises:
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
        """
        if not texts:
            return []

        # Track empty/whitespace indices for restoration
        results: list[str] = [""] * len(texts)
        non_empty_indices: list[int] = []
        non_empty_texts: list[str] = []

        for i, text in enumerate(texts):
            if text and text.strip():
                non_empty_indices.append(i)
                non_empty_texts.append(text)
            else:
                results[i] = text  # Preserve original empty/whitespace

        if not non_empty_texts:
            return results

        translated_texts: list[str] = []
        for chunk in self._chunk_texts(non_empty_texts):
            translated_texts.extend(
                await self._translate_chunk(chunk, source_lang, target_lang)
            )

        # Restore translations to original positions
        for i, translated in zip(non_empty_indices, translated_texts):
            results[i] = translated

        return results

    def _chunk_texts(self, texts: list[str]) -> list[list[str]]:
        """Split texts into chunks respecting API limits."""
        chunks: list[list[str]] = []
        current_chunk: list[str] = []
        current_size = 0

        for text in texts:
            text_size = len(text.encode("utf-8"))

            if current_chunk and (
                len(current_chunk) >= self.MAX_TEXTS_PER_REQUEST
                or current_size + text_size > self.MAX_REQUEST_SIZE
            ):
                chunks.append(current_chunk)
                current_chunk = []
                current_size = 0

            current_chunk.append(text)
            current_size += text_size

        if current_chunk:
            chunks.append(current_chunk)

        return chunks

    async def _translate_chunk(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
    ) -> list[str]:
        """Translate a chunk of texts.

        Raises:
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
            QuotaExceededError: On rate limit or exhausted quota.
        """
        session = await self._ensure_session()

        # Build request parameters with multiple 'text' entries
        params: list[tuple[str, str]] = [("text", t) for t in texts]
        params.append(("target_lang", self._target_code(target_lang)))

        # DeepL doesn't support "auto" - omit source_lang for auto-detection
        source = self._source_code(source_lang)
        if source is not None:
            params.append(("source_lang", source.upper()))

        try:
            async with session.post(self._api_url, data=params) as response:
                if response.status == 200:
                    data = await response.json()
                    translations = [t["text"] for t in data["translations"]]
                    # Validate response length matches input
                    if len(translations) != len(texts):
                        raise TranslationError(
                            f"DeepL returned {len(translations)} translations "
                            f"for {len(texts)} texts"
                        )
                    return translations
                elif response.status == 403:
                    raise ConfigurationError("Invalid DeepL API key")
                elif response.status in (429, 456):
                    # 456: character quota exhausted
                    raise QuotaExceededError(
                        f"DeepL quota or rate limit exceeded (status {response.status})"
                    )
                elif response.status >= 500:
                    raise TranslationError(
                        f"DeepL server error (status {response.status})"
                    )
                else:
                    error_text = await response.text()
                    raise TranslationError(
                        f"DeepL API error (status {response.status}): {error_text}"
                    )
        except self._aiohttp.ClientError as e:
            raise TranslationError(f"DeepL request failed: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
