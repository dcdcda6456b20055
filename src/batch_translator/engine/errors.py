# SPDX-License-Identifier: Apache-2.0
"""Engine error definitions."""

from __future__ import annotations

from batch_translator.translators.base import ErrorKind


class EngineError(Exception):
    """Base exception for engine errors."""

    kind: ErrorKind = ErrorKind.TRANSIENT
    default_stage = "engine"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause is not None:
            text += f" (caused by {self.cause})"
        return text


class ValidationError(EngineError):
    """Caller mistake. Never retried."""

    kind = ErrorKind.VALIDATION
    default_stage = "validate"


class ProviderUnreachableError(EngineError):
    """Too many consecutive batch failures; the provider is considered down."""

    kind = ErrorKind.TRANSIENT
    default_stage = "translate"

    def __init__(
        self, provider_id: str, failures: int, cause: BaseException | None = None
    ) -> None:
        super().__init__(
            f"Provider '{provider_id}' unreachable after {failures} consecutive batch failures",
            cause=cause,
        )
        self.provider_id = provider_id
        self.failures = failures
