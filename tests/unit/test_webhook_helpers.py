"""Tests for webhook request helpers."""

from __future__ import annotations

import math

import pytest

from wechat_jsonbot.webhook.handler import (
    field_text,
    parse_bearer_token,
    should_handle_path,
    timestamp_to_ms,
)


class TestParseBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer   abc  ", "abc"),
            ("  BEARER abc", "abc"),
            ("Bearer ", None),
            ("Basic abc", None),
            ("abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, header: str | None, expected: str | None) -> None:
        assert parse_bearer_token(header) == expected


class TestShouldHandlePath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/webhook/wechat", True),
            ("/webhook/wechat?x=1", True),
            ("/webhook/wechat/", False),
            ("/webhook/telegram", False),
            ("", False),
            (None, False),
        ],
    )
    def test_match(self, path: str | None, expected: bool) -> None:
        assert should_handle_path(path) is expected


class TestTimestampToMs:
    def test_fractional_seconds(self) -> None:
        assert timestamp_to_ms(1700000000.5) == 1_700_000_000_500

    def test_integer_seconds(self) -> None:
        assert timestamp_to_ms(1700000000) == 1_700_000_000_000

    def test_rounds_half_up(self) -> None:
        assert timestamp_to_ms(0.0025) == 3
        assert timestamp_to_ms(0.0015) == 2

    @pytest.mark.parametrize("value", [None, "1700000000", True, math.inf, math.nan])
    def test_non_numeric_ignored(self, value: object) -> None:
        assert timestamp_to_ms(value) is None

    @pytest.mark.parametrize("value", [1e306, 10**400, -1e306])
    def test_out_of_range_ignored(self, value: object) -> None:
        assert timestamp_to_ms(value) is None


class TestFieldText:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("  Alice ", "Alice"),
            (42, "42"),
            (3.0, "3"),
            (2.5, "2.5"),
            (True, "true"),
            (False, "false"),
        ],
    )
    def test_scalars(self, value: object, expected: str) -> None:
        assert field_text(value) == expected

    @pytest.mark.parametrize("value", [None, {"a": 1}, ["Alice"], math.inf, math.nan])
    def test_non_scalars_empty(self, value: object) -> None:
        assert field_text(value) == ""
