# SPDX-License-Identifier: Apache-2.0
"""Language code helpers shared by the engine and the backends."""

from __future__ import annotations

AUTO_DETECT = "auto"

AUTO_ALIASES = frozenset({"auto", "auto-detect", "autodetect", "auto detect", "detect"})

LANGUAGE_NAME_TO_CODE = {
    "afrikaans": "af", "albanian": "sq", "arabic": "ar", "azerbaijani": "az",
    "belarusian": "be", "bengali": "bn", "bulgarian": "bg", "catalan": "ca",
    "chinese (simplified)": "zh-CN", "chinese": "zh-CN", "croatian": "hr",
    "czech": "cs", "danish": "da", "dutch": "nl", "english": "en",
    "estonian": "et", "farsi": "fa", "persian": "fa", "filipino": "fil",
    "finnish": "fi", "french": "fr", "german": "de", "greek": "el",
    "hebrew": "he", "hindi": "hi", "hungarian": "hu", "indonesian": "id",
    "italian": "it", "japanese": "ja", "korean": "ko", "latvian": "lv",
    "lithuanian": "lt", "malay": "ms", "norwegian": "no", "pashto": "ps",
    "polish": "pl", "portuguese": "pt", "romanian": "ro", "russian": "ru",
    "serbian": "sr", "slovak": "sk", "slovenian": "sl", "spanish": "es",
    "swahili": "sw", "swedish": "sv", "thai": "th", "turkish": "tr",
    "ukrainian": "uk", "urdu": "ur", "vietnamese": "vi",
}


def normalize_language(lang: str | None) -> str:
    """Normalize a language value to a code.

    Examples:
        >>> normalize_language("Persian")
        'fa'
        >>> normalize_language("Auto-Detect")
        'auto'
    """
    if not lang or not lang.strip():
        return AUTO_DETECT
    raw = lang.strip()
    lower = raw.lower()
    if lower in AUTO_ALIASES:
        return AUTO_DETECT
    if lower in LANGUAGE_NAME_TO_CODE:
        return LANGUAGE_NAME_TO_CODE[lower]
    # Keep region casing as given ("zh-CN")
    return raw if "-" in raw else lower


def base_code(lang: str | None) -> str:
    """Strip a region suffix ("zh-CN" -> "zh")."""
    return normalize_language(lang).split("-")[0].lower()


def is_auto(lang: str | None) -> bool:
    return normalize_language(lang) == AUTO_DETECT


def same_language(source_lang: str | None, target_lang: str | None) -> bool:
    """True if both sides name the same concrete language."""
    if is_auto(source_lang) or is_auto(target_lang):
        return False
    return normalize_language(source_lang).lower() == normalize_language(target_lang).lower()
