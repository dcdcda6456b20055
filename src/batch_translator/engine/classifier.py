# SPDX-License-Identifier: Apache-2.0
"""Error classification and per-request coordination state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from batch_translator.engine.errors import EngineError
from batch_translator.translators.base import ErrorKind, TranslatorError

logger = logging.getLogger(__name__)

# Kinds that abort every worker of the request.
STOP_KINDS = frozenset({ErrorKind.LANGUAGE_PAIR_UNSUPPORTED, ErrorKind.USER_CANCELLED})

# Kinds meaning the provider refused this client; no further calls are made.
REFUSAL_KINDS = frozenset({ErrorKind.AUTH, ErrorKind.RATE_LIMITED})

# Kinds worth another attempt on the same segment.
RETRYABLE_KINDS = frozenset({ErrorKind.TRANSIENT})

# Higher ranks are surfaced first when every segment failed.
_SPECIFICITY = {
    ErrorKind.AUTH: 5,
    ErrorKind.RATE_LIMITED: 4,
    ErrorKind.LANGUAGE_PAIR_UNSUPPORTED: 3,
    ErrorKind.VALIDATION: 2,
    ErrorKind.USER_CANCELLED: 1,
    ErrorKind.TRANSIENT: 0,
}


def classify(error: BaseException) -> ErrorKind:
    """Map an exception to its error kind.

    Classification switches on the kind tag carried by the exception class.
    Anything untagged (including timeouts) counts as transient.
    """
    if isinstance(error, (TranslatorError, EngineError)):
        return error.kind
    return ErrorKind.TRANSIENT


def is_stop_signal(error: BaseException) -> bool:
    return classify(error) in STOP_KINDS


def is_refusal(error: BaseException) -> bool:
    return classify(error) in REFUSAL_KINDS


def is_retryable(error: BaseException) -> bool:
    return classify(error) in RETRYABLE_KINDS


def most_specific(errors: list[BaseException]) -> BaseException | None:
    """Pick the error that best explains a total failure.

    Ties on kind go to the error seen last.
    """
    best: BaseException | None = None
    best_rank = -1
    for error in errors:
        rank = _SPECIFICITY[classify(error)]
        if rank >= best_rank:
            best, best_rank = error, rank
    return best


@dataclass
class SharedState:
    """Coordination flags shared by all workers of one request.

    Flags only ever go from False to True during a request.
    """

    failure_threshold: int = 5
    cancelled: bool = False
    language_pair_error: BaseException | None = None
    consecutive_batch_failures: int = 0
    provider_unreachable: bool = False
    refusal: BaseException | None = None
    errors: list[BaseException] = field(default_factory=list)

    @property
    def language_pair_error_encountered(self) -> bool:
        return self.language_pair_error is not None

    @property
    def should_stop(self) -> bool:
        """True once no further batch may be claimed."""
        return (
            self.cancelled
            or self.language_pair_error_encountered
            or self.provider_unreachable
            or self.refusal is not None
        )

    def record_error(self, error: BaseException) -> None:
        self.errors.append(error)

    def observe_refusal(self, error: BaseException) -> None:
        """Stop dispatch after an auth or rate limit failure; the first one wins."""
        if self.refusal is None:
            self.refusal = error
            logger.debug("Provider refused the request (%s), stopping all batches", error)

    def observe_stop_signal(self, error: BaseException) -> None:
        """Raise the matching stop flag for a fatal error."""
        kind = classify(error)
        if kind is ErrorKind.USER_CANCELLED:
            self.cancelled = True
        elif kind is ErrorKind.LANGUAGE_PAIR_UNSUPPORTED and self.language_pair_error is None:
            self.language_pair_error = error
            logger.debug("Language pair error detected, stopping all batches")

    def record_batch_failure(self, error: BaseException) -> bool:
        """Count a failed batch call.

        Returns:
            True if the failure threshold has just been reached.
        """
        if classify(error) is not ErrorKind.TRANSIENT:
            return False
        self.consecutive_batch_failures += 1
        if self.consecutive_batch_failures >= self.failure_threshold:
            self.provider_unreachable = True
            return True
        return False

    def record_batch_success(self) -> None:
        self.consecutive_batch_failures = 0
