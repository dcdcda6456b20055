# SPDX-License-Identifier: Apache-2.0
"""Request, response and intermediate data models for the engine."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from batch_translator.languages import AUTO_DETECT
from batch_translator.translators.base import ErrorKind


class TranslationMode(Enum):
    """Where a translation request originates."""

    SIMPLE = "simple"
    SELECTION = "selection"
    DICTIONARY = "dictionary"
    FIELD_EDIT = "field"
    SUBTITLE = "subtitle"
    SELECT_ELEMENT = "select_element"

    @property
    def is_structured(self) -> bool:
        """True if the request text is a structured segment payload."""
        return self is TranslationMode.SELECT_ELEMENT


class ResponseStatus(Enum):
    """Terminal state of a request."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TranslationRequest:
    """A single translation call.

    Attributes:
        text: Plain text, or a JSON payload in SELECT_ELEMENT mode.
        provider: Registry id of the backend to use.
        source_lang: Source language code ("auto" for detection).
        target_lang: Target language code.
        mode: Request mode.
        request_id: Opaque token used for cancellation.
    """

    text: str
    provider: str
    source_lang: str = AUTO_DETECT
    target_lang: str = "en"
    mode: TranslationMode = TranslationMode.SIMPLE
    request_id: str | None = None


@dataclass
class TranslationResponse:
    """Outcome of ``TranslationEngine.execute``."""

    success: bool
    status: ResponseStatus
    provider: str
    source_lang: str
    target_lang: str
    mode: TranslationMode = TranslationMode.SIMPLE
    translated_text: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    from_cache: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def cancelled(self) -> bool:
        return self.status is ResponseStatus.CANCELLED


@dataclass(frozen=True)
class Segment:
    """One unit of text tracked by its position in the original payload."""

    index: int
    text: str

    @property
    def needs_translation(self) -> bool:
        return bool(self.text.strip())


@dataclass(frozen=True)
class Batch:
    """Group of segments sent to a backend in one combined call."""

    segment_indices: tuple[int, ...]
    char_budget_used: int

    def __len__(self) -> int:
        return len(self.segment_indices)


@dataclass
class SegmentResult:
    """Per-segment outcome. ``translated`` is False when the original was kept."""

    text: str
    translated: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    source_text: str
    translated_text: str
    source_lang: str
    target_lang: str
    timestamp: float = field(default_factory=time.time)
