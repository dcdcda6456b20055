# SPDX-License-Identifier: Apache-2.0
"""
Batch Translator - CLI Tool

Translates text (or a structured JSON payload of segments) through one of the
bundled translation providers.

Usage:
    translate-text <text> [options]

Examples:
    translate-text "Hello world" -t ja                  # Google Translate
    translate-text "Hello world" -p bing -t fa          # Bing
    translate-text --file page.json -m select_element   # Structured payload
    cat notes.txt | translate-text - -t de              # Read from stdin
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

from batch_translator.config import Settings
from batch_translator.engine.models import (
    ResponseStatus,
    TranslationMode,
    TranslationRequest,
)
from batch_translator.engine.orchestrator import TranslationEngine

logger = logging.getLogger(__name__)

PROVIDERS = ["google", "bing", "deepl", "openai"]

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="translate-text",
        description="Batch Translator - Translates text through pluggable providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Hello" -t ja                          # Google Translate (default)
  %(prog)s "Hello" -p deepl -t de                 # DeepL (high quality)
  %(prog)s "Hello" -p openai -t fr                # OpenAI GPT
  %(prog)s "word" -p openai -m dictionary -t ja   # Dictionary lookup
  %(prog)s --file items.json -m select_element    # JSON payload of segments

Environment Variables:
  DEEPL_API_KEY           DeepL API key (required for -p deepl)
  DEEPL_API_URL           DeepL API URL (optional, for Pro users)
  OPENAI_API_KEY          OpenAI API key (required for -p openai)
  OPENAI_MODEL            OpenAI model (optional)
  TRANSLATOR_SOURCE_LANG  Default source language
  TRANSLATOR_TARGET_LANG  Default target language
""",
    )

    # Input
    parser.add_argument(
        "text",
        nargs="?",
        help="Text to translate ('-' reads standard input)",
    )
    parser.add_argument(
        "-f",
        "--file",
        type=Path,
        help="Read the text to translate from a file",
    )

    # Translation provider
    parser.add_argument(
        "-p",
        "--provider",
        default="google",
        choices=PROVIDERS,
        help="Translation provider (default: google)",
    )

    # Language options
    parser.add_argument(
        "-s",
        "--source",
        help="Source language code (default: TRANSLATOR_SOURCE_LANG or auto)",
    )
    parser.add_argument(
        "-t",
        "--target",
        help="Target language code (default: TRANSLATOR_TARGET_LANG or en)",
    )
    parser.add_argument(
        "-m",
        "--mode",
        default=TranslationMode.SIMPLE.value,
        choices=[mode.value for mode in TranslationMode],
        help="Request mode (default: simple)",
    )

    # Credentials
    parser.add_argument(
        "--deepl-api-key",
        help="DeepL API key (or set DEEPL_API_KEY)",
    )
    parser.add_argument(
        "--openai-api-key",
        help="OpenAI API key (or set OPENAI_API_KEY)",
    )
    parser.add_argument(
        "--openai-model",
        help="OpenAI model (or set OPENAI_MODEL)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    return build_parser().parse_args(argv)


def read_input(args: argparse.Namespace) -> str | None:
    """Return the text to translate, or None if none was given."""
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    if args.text == "-":
        return sys.stdin.read()
    return args.text


def build_settings(args: argparse.Namespace) -> Settings:
    """Environment settings overridden by command line options."""
    settings = Settings.from_env()
    if args.source:
        settings.source_lang = args.source
    if args.target:
        settings.target_lang = args.target

    overrides = {
        ("deepl", "api_key"): args.deepl_api_key,
        ("openai", "api_key"): args.openai_api_key,
        ("openai", "model"): args.openai_model,
    }
    for (provider_id, name), value in overrides.items():
        if value:
            settings.credentials.setdefault(provider_id, {})[name] = value
    return settings


async def run(args: argparse.Namespace) -> int:
    """Execute one translation request.

    Args:
        args: Command line arguments.

    Returns:
        Exit code (0: success, 1: failure, 130: cancelled).
    """
    if args.file is not None and not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return EXIT_FAILURE

    text = read_input(args)
    if not text:
        print("Error: No text to translate (pass TEXT, '-' or --file)", file=sys.stderr)
        return EXIT_FAILURE

    settings = build_settings(args)
    request = TranslationRequest(
        text=text,
        provider=args.provider,
        source_lang=settings.source_lang,
        target_lang=settings.target_lang,
        mode=TranslationMode(args.mode),
    )
    logger.debug(
        "Translating %d characters with %s (%s -> %s)",
        len(text),
        args.provider,
        request.source_lang,
        request.target_lang,
    )

    async with TranslationEngine(settings=settings) as engine:
        response = await engine.execute(request)

    if response.status is ResponseStatus.CANCELLED:
        print("Translation cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    if not response.success:
        print(f"Error: Translation failed: {response.error}", file=sys.stderr)
        return EXIT_FAILURE

    print(response.translated_text)
    if args.verbose:
        print(
            f"[{response.provider}] {response.source_lang.upper()} -> "
            f"{response.target_lang.upper()}"
            + (" (cached)" if response.from_cache else ""),
            file=sys.stderr,
        )
    return EXIT_OK


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    args = parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = EXIT_CANCELLED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
