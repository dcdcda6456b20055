# SPDX-License-Identifier: Apache-2.0
"""Source/target language swapping.

When the text is already written in the requested target language, sending
it to a provider would only echo it back. The swapper detects that case once
per request and picks a more useful target.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from langdetect import DetectorFactory, detect_langs  # type: ignore[import-untyped]
from langdetect.lang_detect_exception import LangDetectException  # type: ignore[import-untyped]

from batch_translator.languages import AUTO_DETECT, base_code, is_auto, normalize_language

logger = logging.getLogger(__name__)

# langdetect is randomized unless seeded
DetectorFactory.seed = 0

FALLBACK_LANGUAGE = "en"

# Only this much text is sent to the detector.
DETECTION_SAMPLE_CHARS = 1000

_ARABIC_SCRIPT = re.compile(r"[\u0600-\u06FF\u0750-\u077F\uFB50-\uFDFF\uFE70-\uFEFF]")
_LETTER = re.compile(r"[^\W\d_]")

RTL_SWAP_TARGETS = frozenset({"fa", "ar"})


@dataclass(frozen=True)
class Detection:
    language: str
    probability: float


LanguageDetector = Callable[[str], "Detection | None"]


def langdetect_detector(text: str) -> Detection | None:
    """Detect the main language of ``text`` with langdetect."""
    try:
        candidates = detect_langs(text)
    except LangDetectException:
        return None
    if not candidates:
        return None
    top = candidates[0]
    return Detection(language=top.lang, probability=top.prob)


def is_arabic_script(text: str) -> bool:
    """True if most letters of ``text`` are in Arabic script."""
    letters = _LETTER.findall(text)
    if not letters:
        return False
    arabic = sum(1 for ch in letters if _ARABIC_SCRIPT.match(ch))
    return arabic * 2 > len(letters)


@dataclass(frozen=True)
class LanguagePair:
    source: str
    target: str
    swapped: bool = False


class LanguageSwapper:
    """Decides whether to swap source/target before a provider call.

    Args:
        detector: Language detector; defaults to langdetect.
        reliability_threshold: Minimum detection probability to trust.
        fallback_language: Target used when no better replacement exists.
    """

    def __init__(
        self,
        detector: LanguageDetector | None = None,
        reliability_threshold: float = 0.8,
        fallback_language: str = FALLBACK_LANGUAGE,
    ) -> None:
        self._detector = detector or langdetect_detector
        self._threshold = reliability_threshold
        self._fallback = fallback_language

    def resolve(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        original_source_lang: str = AUTO_DETECT,
        original_target_lang: str = FALLBACK_LANGUAGE,
    ) -> LanguagePair:
        """Return the language pair to actually send to the provider.

        Args:
            text: Representative text of the request.
            source_lang: Requested source language.
            target_lang: Requested target language.
            original_source_lang: Configured default source language.
            original_target_lang: Configured default target language.

        Returns:
            Resolved pair; ``swapped`` tells whether it differs from the request.
        """
        sample = text[:DETECTION_SAMPLE_CHARS]
        detection = self._detect(sample)
        target_code = base_code(target_lang)

        if detection is not None and detection.probability >= self._threshold:
            detected = base_code(detection.language)
            if detected == target_code:
                new_target = self._replacement_target(
                    detected, source_lang, original_source_lang, original_target_lang
                )
                logger.debug(
                    "Swapping languages: text detected as %s, target %s -> %s",
                    detected,
                    target_lang,
                    new_target,
                )
                return LanguagePair(normalize_language(target_lang), new_target, swapped=True)
            return LanguagePair(source_lang, target_lang)

        # Detection unavailable or unreliable: script heuristic
        if (
            target_code in RTL_SWAP_TARGETS
            and is_auto(source_lang)
            and is_arabic_script(sample)
        ):
            new_target = self._replacement_target(
                target_code, source_lang, original_source_lang, original_target_lang
            )
            logger.debug(
                "Swapping languages by script heuristic: target %s -> %s",
                target_lang,
                new_target,
            )
            return LanguagePair(normalize_language(target_lang), new_target, swapped=True)

        return LanguagePair(source_lang, target_lang)

    def _detect(self, text: str) -> Detection | None:
        if not text.strip():
            return None
        try:
            return self._detector(text)
        except Exception as e:
            logger.warning("Language detection failed: %s", e)
            return None

    def _replacement_target(
        self,
        detected: str,
        source_lang: str,
        original_source_lang: str,
        original_target_lang: str,
    ) -> str:
        source = normalize_language(source_lang)
        if source != AUTO_DETECT:
            return source
        original_source = normalize_language(original_source_lang)
        if original_source != AUTO_DETECT:
            return original_source
        original_target = normalize_language(original_target_lang)
        if original_target != AUTO_DETECT and base_code(original_target) != detected:
            return original_target
        return self._fallback
