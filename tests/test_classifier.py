# SPDX-License-Identifier: Apache-2.0
"""Tests for error classification and shared request state."""

from __future__ import annotations

import asyncio

import pytest

from batch_translator.engine.classifier import (
    SharedState,
    classify,
    is_refusal,
    is_retryable,
    is_stop_signal,
    most_specific,
)
from batch_translator.engine.errors import (
    EngineError,
    ProviderUnreachableError,
    ValidationError,
)
from batch_translator.translators.base import (
    ArrayLengthMismatchError,
    ConfigurationError,
    ErrorKind,
    LanguagePairUnsupportedError,
    QuotaExceededError,
    TranslationCancelledError,
    TranslationError,
    UnknownProviderError,
)


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (TranslationError("boom"), ErrorKind.TRANSIENT),
            (ArrayLengthMismatchError(3, 2), ErrorKind.TRANSIENT),
            (ConfigurationError("bad key"), ErrorKind.AUTH),
            (QuotaExceededError("slow down"), ErrorKind.RATE_LIMITED),
            (LanguagePairUnsupportedError("en", "xx"), ErrorKind.LANGUAGE_PAIR_UNSUPPORTED),
            (TranslationCancelledError(), ErrorKind.USER_CANCELLED),
            (UnknownProviderError("nope"), ErrorKind.VALIDATION),
            (ValidationError("empty"), ErrorKind.VALIDATION),
            (ProviderUnreachableError("google", 5), ErrorKind.TRANSIENT),
        ],
    )
    def test_kind_comes_from_class(self, error: Exception, kind: ErrorKind) -> None:
        assert classify(error) is kind

    def test_unknown_exceptions_are_transient(self) -> None:
        assert classify(RuntimeError("?")) is ErrorKind.TRANSIENT
        assert classify(asyncio.TimeoutError()) is ErrorKind.TRANSIENT

    def test_message_text_is_ignored(self) -> None:
        """A message mentioning quota does not make a transient error rate-limited."""
        assert classify(TranslationError("quota exceeded, 429")) is ErrorKind.TRANSIENT

    def test_stop_signals(self) -> None:
        assert is_stop_signal(LanguagePairUnsupportedError("en", "xx"))
        assert is_stop_signal(TranslationCancelledError())
        assert not is_stop_signal(TranslationError("boom"))
        assert not is_stop_signal(ConfigurationError("bad key"))

    def test_only_transient_is_retryable(self) -> None:
        assert is_retryable(TranslationError("boom"))
        assert not is_retryable(QuotaExceededError("slow down"))
        assert not is_retryable(ConfigurationError("bad key"))

    def test_refusals(self) -> None:
        assert is_refusal(QuotaExceededError("slow down"))
        assert is_refusal(ConfigurationError("bad key"))
        assert not is_refusal(TranslationError("boom"))
        assert not is_refusal(LanguagePairUnsupportedError("en", "xx"))


class TestMostSpecific:
    """Tests for most_specific."""

    def test_empty(self) -> None:
        assert most_specific([]) is None

    def test_auth_beats_everything(self) -> None:
        auth = ConfigurationError("bad key")
        errors = [TranslationError("a"), auth, QuotaExceededError("b")]
        assert most_specific(errors) is auth

    def test_rate_limit_beats_transient(self) -> None:
        quota = QuotaExceededError("b")
        assert most_specific([TranslationError("a"), quota, TranslationError("c")]) is quota

    def test_last_wins_ties(self) -> None:
        first, last = TranslationError("first"), TranslationError("last")
        assert most_specific([first, last]) is last


class TestEngineError:
    """Tests for the engine error hierarchy."""

    def test_str_includes_stage_and_cause(self) -> None:
        cause = ValueError("bad json")
        error = ValidationError("Invalid structured payload", cause=cause)
        assert str(error) == "[validate] Invalid structured payload (caused by bad json)"
        assert error.stage == "validate"
        assert error.cause is cause

    def test_explicit_stage(self) -> None:
        error = EngineError("oops", stage="aggregate")
        assert str(error) == "[aggregate] oops"

    def test_provider_unreachable_message(self) -> None:
        error = ProviderUnreachableError("bing", 3)
        assert error.provider_id == "bing"
        assert error.failures == 3
        assert "unreachable" in str(error)


class TestSharedState:
    """Tests for SharedState."""

    def test_initially_running(self) -> None:
        state = SharedState()
        assert not state.should_stop
        assert not state.language_pair_error_encountered

    def test_threshold_reached(self) -> None:
        state = SharedState(failure_threshold=3)
        assert not state.record_batch_failure(TranslationError("1"))
        assert not state.record_batch_failure(TranslationError("2"))
        assert state.record_batch_failure(TranslationError("3"))
        assert state.provider_unreachable
        assert state.should_stop

    def test_success_resets_counter(self) -> None:
        state = SharedState(failure_threshold=2)
        state.record_batch_failure(TranslationError("1"))
        state.record_batch_success()
        assert not state.record_batch_failure(TranslationError("2"))
        assert state.consecutive_batch_failures == 1

    def test_non_transient_failures_do_not_count(self) -> None:
        state = SharedState(failure_threshold=1)
        assert not state.record_batch_failure(QuotaExceededError("slow"))
        assert not state.record_batch_failure(ConfigurationError("key"))
        assert state.consecutive_batch_failures == 0

    def test_language_pair_stop_signal(self) -> None:
        state = SharedState()
        error = LanguagePairUnsupportedError("en", "xx")
        state.observe_stop_signal(error)
        assert state.language_pair_error is error
        assert state.should_stop

    def test_first_language_pair_error_is_kept(self) -> None:
        state = SharedState()
        first = LanguagePairUnsupportedError("en", "xx")
        state.observe_stop_signal(first)
        state.observe_stop_signal(LanguagePairUnsupportedError("en", "yy"))
        assert state.language_pair_error is first

    def test_cancel_stop_signal(self) -> None:
        state = SharedState()
        state.observe_stop_signal(TranslationCancelledError())
        assert state.cancelled
        assert state.should_stop

    def test_refusal_stops_dispatch(self) -> None:
        state = SharedState()
        first = QuotaExceededError("slow down")
        state.observe_refusal(first)
        state.observe_refusal(ConfigurationError("bad key"))
        assert state.refusal is first
        assert state.should_stop
