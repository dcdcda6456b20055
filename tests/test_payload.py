# SPDX-License-Identifier: Apache-2.0
"""Tests for the structured payload codec."""

from __future__ import annotations

import json

import pytest

from batch_translator.payload import (
    PayloadError,
    dump_payload,
    parse_payload,
    payload_texts,
    try_parse_payload,
)


class TestParsePayload:
    """Tests for parse_payload."""

    def test_valid_payload(self) -> None:
        items = parse_payload('[{"text": "A"}, {"text": "B", "id": 3}]')
        assert payload_texts(items) == ["A", "B"]
        assert items[1]["id"] == 3

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            '{"text": "A"}',
            "[]",
            '[{"id": 1}]',
            '[{"text": 5}]',
            '["A", "B"]',
        ],
    )
    def test_invalid_payloads(self, text: str) -> None:
        with pytest.raises(PayloadError):
            parse_payload(text)

    def test_payload_error_is_value_error(self) -> None:
        assert issubclass(PayloadError, ValueError)

    def test_try_parse_returns_none_on_error(self) -> None:
        assert try_parse_payload("plain text") is None
        assert try_parse_payload('[{"text": "A"}]') == [{"text": "A"}]


class TestDumpPayload:
    """Tests for dump_payload."""

    def test_replaces_text_and_keeps_other_keys(self) -> None:
        items = [{"text": "A", "id": 1}, {"text": "B", "role": "title"}]
        rebuilt = json.loads(dump_payload(items, ["a", "b"]))

        assert rebuilt == [{"text": "a", "id": 1}, {"text": "b", "role": "title"}]
        # Originals untouched
        assert items[0]["text"] == "A"

    def test_non_ascii_is_kept_readable(self) -> None:
        dumped = dump_payload([{"text": "A"}], ["سلام"])
        assert "سلام" in dumped

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            dump_payload([{"text": "A"}, {"text": "B"}], ["a"])
