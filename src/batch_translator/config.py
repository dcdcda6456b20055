# SPDX-License-Identifier: Apache-2.0
"""Engine configuration and provider settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class EngineConfig:
    """Translation engine configuration."""

    # Defaults consulted by the language swapper
    default_source_lang: str = "auto"
    default_target_lang: str = "en"

    cache_size: int = 100
    history_size: int = 100

    # Length limits (characters)
    max_text_length: int = 50_000
    max_structured_length: int = 500_000
    large_text_warning: int = 10_000

    # Minimum langdetect probability treated as reliable
    detection_threshold: float = 0.8


@dataclass
class Settings:
    """Settings supplied by the host application.

    Attributes:
        source_lang: Configured default source language.
        target_lang: Configured default target language.
        credentials: Per-provider secrets, keyed by provider id then field name.
    """

    source_lang: str = "auto"
    target_lang: str = "en"
    credentials: dict[str, dict[str, str]] = field(default_factory=dict)

    # provider id -> {credential field: environment variable}
    CREDENTIAL_ENV_VARS: ClassVar[dict[str, dict[str, str]]] = {
        "deepl": {"api_key": "DEEPL_API_KEY", "api_url": "DEEPL_API_URL"},
        "openai": {"api_key": "OPENAI_API_KEY", "model": "OPENAI_MODEL"},
    }

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        credentials: dict[str, dict[str, str]] = {}
        for provider_id, env_vars in cls.CREDENTIAL_ENV_VARS.items():
            values = {
                name: os.environ[env_var]
                for name, env_var in env_vars.items()
                if os.environ.get(env_var)
            }
            if values:
                credentials[provider_id] = values

        return cls(
            source_lang=os.environ.get("TRANSLATOR_SOURCE_LANG", "auto"),
            target_lang=os.environ.get("TRANSLATOR_TARGET_LANG", "en"),
            credentials=credentials,
        )

    def credential(self, provider_id: str, name: str) -> str | None:
        return self.credentials.get(provider_id, {}).get(name)

    def to_engine_config(self) -> EngineConfig:
        return EngineConfig(
            default_source_lang=self.source_lang,
            default_target_lang=self.target_lang,
        )
