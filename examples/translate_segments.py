#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
"""セグメント翻訳サンプルスクリプト

このスクリプトはbatch-translatorの基本的な使い方を示します。
設定変数を変更して、様々なプロバイダやモードを試すことができます。

Usage:
    pip install -e ".[examples]"
    python examples/translate_segments.py

環境変数（.envファイルから自動読み込み）:
    OPENAI_API_KEY: OpenAI翻訳に必要
    DEEPL_API_KEY: DeepL翻訳に必要
    OPENAI_MODEL: OpenAIモデル指定（デフォルト: gpt-4o-mini）
    TRANSLATOR_TARGET_LANG: デフォルトの翻訳先言語
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from batch_translator.config import Settings
from batch_translator.engine import (
    ResponseStatus,
    TranslationEngine,
    TranslationMode,
    TranslationRequest,
)

PROJECT_ROOT = Path(__file__).parent.parent

# Load .env file from project root (API keys, default languages)
load_dotenv(PROJECT_ROOT / ".env")


# 翻訳サービス: "google" | "bing" | "deepl" | "openai"
# - google, bing: APIキー不要（無料、レート制限あり）
# - openai: OPENAI_API_KEY 環境変数が必要
# - deepl: DEEPL_API_KEY 環境変数が必要
TRANSLATOR = "google"

# 言語設定
SOURCE_LANG = "auto"
TARGET_LANG = "ja"

# 翻訳するセグメント（ページ上で選択された要素を想定）
SEGMENTS = [
    {"text": "Getting started", "role": "title"},
    {"text": "Install the package and run the command line tool.", "role": "body"},
    {"text": "   ", "role": "spacer"},
    {"text": "Every provider shares the same cache and retry logic.", "role": "body"},
    {"text": "Questions? Open an issue.", "role": "footer"},
]

# 詳細ログを表示
VERBOSE = False


def print_progress(stage: str, current: int, total: int, message: str = "") -> None:
    """進捗を表示する。"""
    print(f"  [{stage}] {current}/{total} {message}")


async def main() -> int:
    """メイン処理。"""
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    settings = Settings.from_env()
    request = TranslationRequest(
        text=json.dumps(SEGMENTS, ensure_ascii=False),
        provider=TRANSLATOR,
        source_lang=SOURCE_LANG,
        target_lang=TARGET_LANG,
        mode=TranslationMode.SELECT_ELEMENT,
    )

    print("=" * 60)
    print("Segment Translation Example")
    print("=" * 60)
    print(f"Translator:  {TRANSLATOR}")
    print(f"Languages:   {SOURCE_LANG} -> {TARGET_LANG}")
    print(f"Segments:    {len(SEGMENTS)}")
    print("=" * 60)

    async with TranslationEngine(settings=settings, progress_callback=print_progress) as engine:
        response = await engine.execute(request)

        if response.status is ResponseStatus.COMPLETED:
            # 同じリクエストはキャッシュから返る
            cached = await engine.execute(request)
            print(f"\nSecond run served from cache: {cached.from_cache}")
            print(f"Cache stats: {engine.get_cache_stats()}")

    if response.status is ResponseStatus.CANCELLED:
        print("\nTranslation cancelled")
        return 130
    if not response.success:
        print(f"\nError: {response.error} ({response.error_kind})")
        return 1

    print("\n" + "=" * 60)
    print("Translation Complete!")
    print("=" * 60)
    for original, translated in zip(SEGMENTS, json.loads(response.translated_text or "[]")):
        print(f"{original['role']:>7}: {original['text']!r}")
        print(f"{'':>7}  -> {translated['text']!r}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
