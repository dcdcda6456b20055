# SPDX-License-Identifier: Apache-2.0
"""Bing Translator backend (free web endpoint)."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from batch_translator.languages import AUTO_DETECT, normalize_language
from batch_translator.translators.base import (
    ConfigurationError,
    ProviderCategory,
    ProviderDescriptor,
    ProviderTuning,
    QuotaExceededError,
    TranslateOptions,
    TranslationError,
)

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)

BING_LANG_CODES = {
    "auto": "auto-detect",
    "zh-cn": "zh-Hans",
    "zh-tw": "zh-Hant",
    "zh": "zh-Hans",
    "no": "nb",
    "sr": "sr-Cyrl",
    "iw": "he",
    "tl": "fil",
    "hmn": "mww",
}

_IG_PATTERN = re.compile(r'IG:"([^"]+)"')
_IID_PATTERN = re.compile(r'data-iid="([^"]+)"')
_PARAMS_PATTERN = re.compile(r"params_AbusePreventionHelper\s?=\s?(\[.*?\]);")


@dataclass
class BingToken:
    """Short-lived credentials scraped from the translator page."""

    ig: str
    iid: str
    key: str
    token: str
    expires_at: float
    count: int = 0

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def next_iid(self) -> str:
        self.count += 1
        return f"{self.iid}.{self.count}"


class BingTranslator:
    """Bing Translator backend.

    Uses the public Bing translator web endpoint. A token is scraped from the
    translator page and cached until it expires; callers never see it.
    Bing throttles aggressively, so the descriptor asks for one worker and a
    delay between batches.

    Attributes:
        name: Backend identifier ("bing").
    """

    TRANSLATE_URL = "https://www.bing.com/ttranslatev3"
    TOKEN_URL = "https://www.bing.com/translator"
    DEFAULT_TOKEN_TTL = 600.0  # seconds, used when the page omits one

    DESCRIPTOR = ProviderDescriptor(
        id="bing",
        category=ProviderCategory.FREE,
        reliable_json_mode=False,
        supports_dictionary=False,
        tuning=ProviderTuning(
            batch_size=5,
            max_chars=1000,
            pool_size=1,
            failure_threshold=3,
            request_delay=0.2,
            retry_delay=0.3,
        ),
    )

    def __init__(self) -> None:
        """Initialize BingTranslator.

        Raises:
            ImportError: If aiohttp is not installed.
        """
        # Lazy import aiohttp
        try:
            import aiohttp as _aiohttp

            self._aiohttp = _aiohttp
        except ImportError:
            raise ImportError(
                "aiohttp is required for Bing backend. "
                "Install with: pip install batch-translator"
            ) from None

        self._session: aiohttp.ClientSession | None = None
        self._token: BingToken | None = None
        self._token_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        """Return backend name."""
        return "bing"

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self.DESCRIPTOR

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = self._aiohttp.ClientSession(
                headers={"User-Agent": "Mozilla/5.0 (X11; Linux x86_64)"}
            )
        return self._session

    @staticmethod
    def _lang_code(lang: str) -> str:
        code = normalize_language(lang)
        if code == AUTO_DETECT:
            return BING_LANG_CODES["auto"]
        return BING_LANG_CODES.get(code.lower(), code)

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslateOptions | None = None,
    ) -> str:
        """Translate a single text using Bing.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja", "auto").
            target_lang: Target language code ("en", "ja").
            options: Per-call options (only the cancellation token is used).

        Returns:
            Translated text.

        Raises:
            TranslationError: On translation failure.
            QuotaExceededError: When Bing throttles the client.
            ConfigurationError: When no token can be obtained.
        """
        if not text or not text.strip():
            return text

        token = options.cancellation_token if options else None
        if token is not None:
            token.raise_if_cancelled()

        credentials = await self._get_token()
        if token is not None:
            token.raise_if_cancelled()

        session = await self._ensure_session()
        params = {
            "isVertical": "1",
            "IG": credentials.ig,
            "IID": credentials.next_iid(),
        }
        form = {
            "fromLang": self._lang_code(source_lang),
            "to": self._lang_code(target_lang),
            "text": text,
            "token": credentials.token,
            "key": credentials.key,
        }

        try:
            async with session.post(self.TRANSLATE_URL, params=params, data=form) as response:
                if response.status == 429:
                    raise QuotaExceededError("Bing rate limit exceeded, please retry later")
                if response.status >= 500:
                    raise TranslationError(f"Bing server error (status {response.status})")
                if response.status != 200:
                    raise TranslationError(f"Bing API error (status {response.status})")
                data = await response.json(content_type=None)
        except self._aiohttp.ClientError as e:
            raise TranslationError(f"Bing request failed: {e}") from e

        return self._extract_text(data)

    def _extract_text(self, data: Any) -> str:
        if isinstance(data, dict):
            status = data.get("statusCode")
            if status in (401, 403):
                # Token rejected; fetch a fresh one next time
                self._token = None
                raise TranslationError(f"Bing rejected the session token (status {status})")
            raise TranslationError(f"Bing API error (status {status})")

        try:
            return str(data[0]["translations"][0]["text"])
        except (IndexError, KeyError, TypeError) as e:
            raise TranslationError("Unexpected Bing response format") from e

    async def _get_token(self) -> BingToken:
        """Return a valid token, fetching a new one if the cached one expired."""
        async with self._token_lock:
            if self._token is not None and not self._token.expired:
                return self._token

            logger.debug("Fetching new Bing access token")
            session = await self._ensure_session()
            try:
                async with session.get(self.TOKEN_URL) as response:
                    if response.status != 200:
                        raise ConfigurationError(
                            f"Failed to fetch Bing token page (status {response.status})"
                        )
                    page = await response.text()
            except self._aiohttp.ClientError as e:
                raise TranslationError(f"Bing token request failed: {e}") from e

            self._token = self._parse_token_page(page)
            return self._token

    def _parse_token_page(self, page: str) -> BingToken:
        ig = _IG_PATTERN.search(page)
        iid = _IID_PATTERN.search(page)
        params = _PARAMS_PATTERN.search(page)
        if not ig or not iid or not params:
            raise ConfigurationError("Failed to extract token parameters from Bing translator page")

        try:
            key, token, interval_ms = json.loads(params.group(1))[:3]
        except (ValueError, TypeError) as e:
            raise ConfigurationError("Malformed Bing token parameters") from e

        ttl = float(interval_ms) / 1000 if interval_ms else self.DEFAULT_TOKEN_TTL
        return BingToken(
            ig=ig.group(1),
            iid=iid.group(1),
            key=str(key),
            token=str(token),
            expires_at=time.monotonic() + ttl,
        )

    async def close(self) -> None:
        """Close the HTTP session and forget the token."""
        self._token = None
        if self._session:
            await self._session.close()
            self._session = None
