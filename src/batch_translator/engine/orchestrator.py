# SPDX-License-Identifier: Apache-2.0
"""Translation engine: validation, caching, batching and the worker pool."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from batch_translator.config import EngineConfig, Settings
from batch_translator.engine.batching import plan_batches
from batch_translator.engine.cache import CacheEntry, CacheStore, build_cache_key
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
from batch_translator.engine.history import HistoryStore, InMemoryHistory
from batch_translator.engine.models import (
    Batch,
    HistoryEntry,
    ResponseStatus,
    Segment,
    SegmentResult,
    TranslationMode,
    TranslationRequest,
    TranslationResponse,
)
from batch_translator.engine.swapper import LanguageSwapper
from batch_translator.languages import AUTO_DETECT, normalize_language, same_language
from batch_translator.payload import PayloadError, dump_payload, parse_payload, try_parse_payload
from batch_translator.translators.base import (
    CancellationToken,
    ErrorKind,
    ProviderDescriptor,
    TranslateOptions,
    TranslationCancelledError,
    TranslationError,
    TranslatorBackend,
    TranslatorError,
)
from batch_translator.translators.registry import ProviderRegistry, create_default_registry

logger = logging.getLogger(__name__)

# Joins the segments of one batch into a single provider call.
BATCH_DELIMITER = "\n\n---\n\n"

# Modes whose source language is always detected by the provider.
AUTO_SOURCE_MODES = frozenset({TranslationMode.FIELD_EDIT, TranslationMode.SUBTITLE})


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol."""

    def __call__(
        self,
        stage: str,
        current: int,
        total: int,
        message: str = "",
    ) -> None: ...


@dataclass
class _RequestContext:
    """Everything the workers of one request share."""

    request: TranslationRequest
    backend: TranslatorBackend
    descriptor: ProviderDescriptor
    mode: TranslationMode
    source_lang: str
    target_lang: str
    token: CancellationToken
    state: SharedState
    items: list[dict[str, Any]] | None = None

    @property
    def provider(self) -> str:
        return self.request.provider

    def options(self, original_source: str, original_target: str) -> TranslateOptions:
        return TranslateOptions(
            mode=self.mode,
            original_source_lang=original_source,
            original_target_lang=original_target,
            cancellation_token=self.token,
        )


class TranslationEngine:
    """Routes translation requests through pluggable provider backends.

    Each request is validated, answered from the cache when possible, and
    otherwise planned into batches that a small pool of asyncio workers
    sends to the provider. Failed batches fall back to per-segment calls;
    results are reassembled in original order.

    Example:
        >>> async with TranslationEngine() as engine:
        ...     response = await engine.execute(
        ...         TranslationRequest(text="Hello", provider="google", target_lang="ja")
        ...     )
    """

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        config: EngineConfig | None = None,
        settings: Settings | None = None,
        cache: CacheStore | None = None,
        history: HistoryStore | None = None,
        swapper: LanguageSwapper | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize TranslationEngine.

        Args:
            registry: Provider registry (default: bundled backends).
            config: Engine configuration (default: derived from settings).
            settings: Language defaults and credentials (default: empty).
            cache: Translation cache (default: new CacheStore).
            history: History sink (default: new InMemoryHistory).
            swapper: Language swapper (default: langdetect based).
            progress_callback: Notified after each finished batch.
        """
        self._settings = settings if settings is not None else Settings()
        self._config = config if config is not None else self._settings.to_engine_config()
        self._registry = (
            registry if registry is not None else create_default_registry(self._settings)
        )
        self._cache = cache if cache is not None else CacheStore(self._config.cache_size)
        self._history = (
            history if history is not None else InMemoryHistory(self._config.history_size)
        )
        self._swapper = (
            swapper
            if swapper is not None
            else LanguageSwapper(reliability_threshold=self._config.detection_threshold)
        )
        self._progress_callback = progress_callback
        self._active: dict[str, CancellationToken] = {}
        # Provider id -> slots shared by every request, sized from the descriptor's pool
        self._provider_slots: dict[str, asyncio.Semaphore] = {}

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def __aenter__(self) -> TranslationEngine:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def execute(self, request: TranslationRequest) -> TranslationResponse:
        """Translate a request.

        Never raises for translation problems: failures and cancellations are
        reported through the response's ``status``, ``error`` and
        ``error_kind``.

        Args:
            request: The translation request.

        Returns:
            Completed, failed or cancelled response.
        """
        request_id = request.request_id or uuid.uuid4().hex
        if request_id in self._active:
            return self._failure(
                request,
                ValidationError(f"Request '{request_id}' is already in progress"),
            )

        token = CancellationToken()
        self._active[request_id] = token
        try:
            return await self._execute(request, token)
        finally:
            self._active.pop(request_id, None)

    def cancel(self, request_id: str) -> bool:
        """Cancel an in-flight request.

        Returns:
            True if the request was active.
        """
        token = self._active.get(request_id)
        if token is None:
            return False
        logger.debug("Cancelling request %s", request_id)
        token.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every in-flight request and return how many were active."""
        tokens = list(self._active.values())
        for token in tokens:
            token.cancel()
        return len(tokens)

    def get_cache_stats(self) -> dict[str, int]:
        return {
            "size": len(self._cache),
            "provider_count": self._registry.active_count,
        }

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Translation cache cleared")

    def clear_history(self) -> None:
        self._history.clear()

    async def close(self) -> None:
        """Cancel outstanding requests and close every backend."""
        self.cancel_all()
        await self._registry.close()

    async def _execute(
        self,
        request: TranslationRequest,
        token: CancellationToken,
    ) -> TranslationResponse:
        try:
            ctx = self._validate(request, token)
        except (EngineError, TranslatorError) as e:
            return self._failure(request, e)

        # Structured payloads are cached per segment only
        cache_key = build_cache_key(
            ctx.provider, ctx.source_lang, ctx.target_lang, ctx.mode, request.text
        )
        if ctx.items is None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s request", ctx.provider)
                self._record_history(ctx, request.text, cached.translated_text)
                return self._success(ctx, cached.translated_text, from_cache=True)

        pair = self._swapper.resolve(
            self._representative_text(ctx),
            ctx.source_lang,
            ctx.target_lang,
            original_source_lang=self._config.default_source_lang,
            original_target_lang=self._config.default_target_lang,
        )
        ctx.source_lang, ctx.target_lang = pair.source, pair.target

        if same_language(ctx.source_lang, ctx.target_lang):
            logger.debug("Source and target are both '%s', returning text unchanged", ctx.target_lang)
            return self._success(ctx, request.text)

        try:
            if ctx.items is None:
                translated = await self._call_adapter(ctx, request.text)
                ctx.token.raise_if_cancelled()
                self._cache.put(cache_key, CacheEntry(translated))
                from_cache = False
            else:
                texts, from_cache = await self._translate_structured(
                    ctx, ctx.items, request.text
                )
                translated = dump_payload(ctx.items, texts)
        except (EngineError, TranslatorError) as e:
            return self._failure(request, e, ctx)

        self._record_history(ctx, request.text, translated)
        return self._success(ctx, translated, from_cache=from_cache)

    def _validate(
        self,
        request: TranslationRequest,
        token: CancellationToken,
    ) -> _RequestContext:
        """Check the request and resolve its backend.

        Raises:
            ValidationError: On a malformed request.
            ConfigurationError: If the backend cannot be built.
        """
        text = request.text
        if not text or not text.strip():
            raise ValidationError("Text to translate is empty")

        mode = request.mode
        limit = (
            self._config.max_structured_length
            if mode.is_structured
            else self._config.max_text_length
        )
        if len(text) > limit:
            raise ValidationError(
                f"Text is too long ({len(text)} characters, limit {limit} for {mode.value} mode)"
            )
        if len(text) > self._config.large_text_warning:
            logger.warning("Large text to translate: %d characters", len(text))

        items = None
        if mode.is_structured:
            try:
                items = parse_payload(text)
            except PayloadError as e:
                raise ValidationError("Invalid structured payload", cause=e) from e

        backend = self._registry.resolve(request.provider)
        descriptor = backend.descriptor

        if mode is TranslationMode.DICTIONARY and not descriptor.supports_dictionary:
            logger.debug("%s has no dictionary mode, using selection mode", request.provider)
            mode = TranslationMode.SELECTION

        source_lang = normalize_language(request.source_lang or self._config.default_source_lang)
        target_lang = normalize_language(request.target_lang or self._config.default_target_lang)
        if mode in AUTO_SOURCE_MODES:
            source_lang = AUTO_DETECT

        return _RequestContext(
            request=request,
            backend=backend,
            descriptor=descriptor,
            mode=mode,
            source_lang=source_lang,
            target_lang=target_lang,
            token=token,
            state=SharedState(failure_threshold=descriptor.tuning.failure_threshold),
            items=items,
        )

    @staticmethod
    def _representative_text(ctx: _RequestContext) -> str:
        if ctx.items is None:
            return ctx.request.text
        return "\n".join(item["text"] for item in ctx.items)

    async def _translate_structured(
        self,
        ctx: _RequestContext,
        items: list[dict[str, Any]],
        payload: str,
    ) -> tuple[list[str], bool]:
        """Translate every segment of a structured payload.

        Returns:
            Texts in original order and whether every segment that needed
            translation came from the segment cache.
        """
        segments = [Segment(i, item["text"]) for i, item in enumerate(items)]
        results = [SegmentResult(segment.text) for segment in segments]
        required = [segment for segment in segments if segment.needs_translation]

        misses: list[Segment] = []
        for segment in required:
            entry = self._cache.get(self._segment_key(ctx, segment))
            if entry is not None:
                results[segment.index] = SegmentResult(entry.translated_text, translated=True)
            else:
                misses.append(segment)

        if not misses:
            if required:
                logger.debug("All %d segments served from cache", len(required))
            return [result.text for result in results], bool(required)

        if ctx.descriptor.reliable_json_mode:
            texts = await self._translate_payload_direct(ctx, payload, len(segments))
            if texts is not None:
                for segment in required:
                    self._cache.put(
                        self._segment_key(ctx, segment), CacheEntry(texts[segment.index])
                    )
                return texts, False

        tuning = ctx.descriptor.tuning
        batches = plan_batches(misses, tuning.batch_size, tuning.max_chars)
        await self._run_workers(ctx, batches, segments, results)

        state = ctx.state
        if ctx.token.cancelled or state.cancelled:
            raise TranslationCancelledError()
        if state.language_pair_error is not None:
            raise state.language_pair_error
        if state.refusal is not None:
            raise state.refusal
        if state.provider_unreachable:
            raise ProviderUnreachableError(
                ctx.provider,
                state.consecutive_batch_failures,
                cause=most_specific(state.errors),
            )

        translated = sum(1 for segment in required if results[segment.index].translated)
        if required and translated == 0:
            error = most_specific(state.errors)
            if error is None:
                raise TranslationError("No segment could be translated")
            raise error

        if translated < len(required):
            logger.warning(
                "Partial translation: %d of %d segments kept their original text",
                len(required) - translated,
                len(required),
            )
        return [result.text for result in results], False

    async def _translate_payload_direct(
        self,
        ctx: _RequestContext,
        payload: str,
        expected: int,
    ) -> list[str] | None:
        """Send the whole payload in one call to a JSON-reliable backend.

        Returns:
            Translated texts, or None to fall back to batching.
        """
        try:
            reply = await self._call_adapter(ctx, payload)
        except TranslatorError as e:
            if is_stop_signal(e) or is_refusal(e):
                raise
            logger.warning(
                "%s failed on structured payload, falling back to batches: %s",
                ctx.provider,
                e,
            )
            return None

        items = try_parse_payload(reply)
        if items is None or len(items) != expected:
            logger.warning(
                "%s returned a malformed structured payload, falling back to batches",
                ctx.provider,
            )
            return None
        return [item["text"] for item in items]

    def _segment_key(self, ctx: _RequestContext, segment: Segment) -> str:
        return build_cache_key(
            ctx.provider, ctx.source_lang, ctx.target_lang, ctx.mode, segment.text
        )

    async def _run_workers(
        self,
        ctx: _RequestContext,
        batches: list[Batch],
        segments: list[Segment],
        results: list[SegmentResult],
    ) -> None:
        """Run the batch workers of one request until the queue drains or a stop flag is set."""
        claims = iter(batches)
        total = len(batches)
        finished = 0

        async def worker(worker_id: int) -> None:
            nonlocal finished
            while not self._should_stop(ctx):
                # Claiming never awaits, so no lock is needed
                batch = next(claims, None)
                if batch is None:
                    return
                logger.debug(
                    "Worker %d: batch of %d segments (%d chars)",
                    worker_id,
                    len(batch),
                    batch.char_budget_used,
                )
                await self._run_batch(ctx, batch, segments, results)
                finished += 1
                self._notify("translate", finished, total, f"{ctx.provider} batch done")

        pool_size = min(ctx.descriptor.pool_size, total)
        tasks = [asyncio.create_task(worker(n)) for n in range(pool_size)]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    def _should_stop(self, ctx: _RequestContext) -> bool:
        if ctx.token.cancelled:
            ctx.state.cancelled = True
        return ctx.state.should_stop

    async def _run_batch(
        self,
        ctx: _RequestContext,
        batch: Batch,
        segments: list[Segment],
        results: list[SegmentResult],
    ) -> None:
        state = ctx.state
        await self._pause(ctx, ctx.descriptor.tuning.request_delay)

        texts = [segments[index].text for index in batch.segment_indices]
        try:
            reply = await self._call_adapter(ctx, BATCH_DELIMITER.join(texts))
        except TranslatorError as e:
            if is_stop_signal(e):
                state.observe_stop_signal(e)
                raise
            state.record_error(e)
            if is_refusal(e):
                state.observe_refusal(e)
                logger.warning("%s refused the batch, giving up: %s", ctx.provider, e)
                return
            if state.record_batch_failure(e):
                logger.warning(
                    "%s: %d consecutive batch failures, giving up",
                    ctx.provider,
                    state.consecutive_batch_failures,
                )
                return
            logger.debug("Batch failed (%s), translating segments individually", e)
            await self._translate_individually(ctx, batch, segments, results)
            return

        state.record_batch_success()
        parts = [part.strip() for part in reply.split(BATCH_DELIMITER)]
        if len(parts) != len(texts):
            logger.debug(
                "Batch reply split into %d parts for %d segments, translating individually",
                len(parts),
                len(texts),
            )
            await self._translate_individually(ctx, batch, segments, results)
            return

        for index, part in zip(batch.segment_indices, parts):
            results[index] = SegmentResult(part, translated=True)
            self._cache.put(self._segment_key(ctx, segments[index]), CacheEntry(part))

    async def _translate_individually(
        self,
        ctx: _RequestContext,
        batch: Batch,
        segments: list[Segment],
        results: list[SegmentResult],
    ) -> None:
        for index in batch.segment_indices:
            if self._should_stop(ctx):
                return
            segment = segments[index]
            translated = await self._translate_segment(ctx, segment.text)
            if translated is not None:
                results[index] = SegmentResult(translated, translated=True)
                self._cache.put(self._segment_key(ctx, segment), CacheEntry(translated))

    async def _translate_segment(self, ctx: _RequestContext, text: str) -> str | None:
        """Translate one segment with limited retries.

        Returns:
            Translated text, or None if every attempt failed.
        """
        tuning = ctx.descriptor.tuning
        attempts = max(1, tuning.retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await self._call_adapter(ctx, text)
            except TranslatorError as e:
                if is_stop_signal(e):
                    ctx.state.observe_stop_signal(e)
                    raise
                ctx.state.record_error(e)
                if is_refusal(e):
                    ctx.state.observe_refusal(e)
                    return None
                if not is_retryable(e) or attempt == attempts:
                    logger.debug("Segment failed after %d attempt(s): %s", attempt, e)
                    return None
            await self._pause(ctx, tuning.retry_delay * attempt)
        return None

    async def _call_adapter(self, ctx: _RequestContext, text: str) -> str:
        """Make one backend call, raced against cancellation and the call timeout.

        Raises:
            TranslationCancelledError: If the request is cancelled first.
            TranslationError: On timeout or an unclassified backend failure.
            TranslatorError: Whatever the backend raised.
        """
        ctx.token.raise_if_cancelled()
        options = ctx.options(self._config.default_source_lang, self._config.default_target_lang)
        timeout = ctx.descriptor.tuning.call_timeout
        slot = self._provider_slot(ctx)

        async def guarded_call() -> Any:
            async with slot:
                return await asyncio.wait_for(
                    ctx.backend.translate(text, ctx.source_lang, ctx.target_lang, options),
                    timeout=timeout,
                )

        call = asyncio.ensure_future(guarded_call())
        cancelled = asyncio.ensure_future(ctx.token.wait())
        try:
            await asyncio.wait({call, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not call.done():
                call.cancel()

        if ctx.token.cancelled:
            if call.done() and not call.cancelled():
                # Late results are discarded
                call.exception()
            raise TranslationCancelledError()

        try:
            result = call.result()
        except TranslatorError:
            raise
        except asyncio.TimeoutError as e:
            raise TranslationError(f"{ctx.provider} did not answer within {timeout}s") from e
        except Exception as e:
            raise TranslationError(f"{ctx.provider} failed: {e}") from e
        if not isinstance(result, str):
            raise TranslationError(f"{ctx.provider} returned {type(result).__name__}, not text")
        return result

    def _provider_slot(self, ctx: _RequestContext) -> asyncio.Semaphore:
        """Semaphore bounding calls to one provider across all requests."""
        slot = self._provider_slots.get(ctx.provider)
        if slot is None:
            slot = asyncio.Semaphore(ctx.descriptor.pool_size)
            self._provider_slots[ctx.provider] = slot
        return slot

    @staticmethod
    async def _pause(ctx: _RequestContext, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early on cancellation."""
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(ctx.token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _record_history(self, ctx: _RequestContext, source_text: str, translated: str) -> None:
        if ctx.mode.is_structured:
            return
        self._history.append(
            HistoryEntry(
                source_text=source_text,
                translated_text=translated,
                source_lang=ctx.source_lang,
                target_lang=ctx.target_lang,
            )
        )

    def _success(
        self,
        ctx: _RequestContext,
        translated: str,
        from_cache: bool = False,
    ) -> TranslationResponse:
        return TranslationResponse(
            success=True,
            status=ResponseStatus.COMPLETED,
            provider=ctx.provider,
            source_lang=ctx.source_lang,
            target_lang=ctx.target_lang,
            mode=ctx.mode,
            translated_text=translated,
            from_cache=from_cache,
        )

    def _failure(
        self,
        request: TranslationRequest,
        error: BaseException,
        ctx: _RequestContext | None = None,
    ) -> TranslationResponse:
        kind = classify(error)
        if kind is ErrorKind.USER_CANCELLED:
            logger.info("Translation cancelled (%s)", request.provider)
            status = ResponseStatus.CANCELLED
        else:
            logger.error("Translation failed (%s): %s", request.provider, error)
            status = ResponseStatus.FAILED

        return TranslationResponse(
            success=False,
            status=status,
            provider=request.provider,
            source_lang=ctx.source_lang if ctx else request.source_lang,
            target_lang=ctx.target_lang if ctx else request.target_lang,
            mode=ctx.mode if ctx else request.mode,
            error=str(error),
            error_kind=kind,
        )

    def _notify(self, stage: str, current: int, total: int, message: str = "") -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(stage, current, total, message)
