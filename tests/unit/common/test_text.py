"""Tests for tag and email list parsing."""

from __future__ import annotations

import pytest

from promptbank.common.errors import safe_callback_path, with_query
from promptbank.common.text import parse_emails, parse_tags, tags_to_csv


@pytest.mark.unit
class TestListParsing:
    def test_tags_case_insensitive_dedup(self) -> None:
        assert parse_tags("Alpha, alpha, ALPHA") == ["alpha"]

    def test_first_seen_order(self) -> None:
        assert parse_tags("beta, Alpha ,beta,,gamma") == ["beta", "alpha", "gamma"]

    def test_blank(self) -> None:
        assert parse_tags("") == []
        assert parse_tags(" , ,") == []

    def test_emails_normalized(self) -> None:
        assert parse_emails(" Dev@Example.com, dev@example.com ,ops@example.com") == [
            "dev@example.com",
            "ops@example.com",
        ]

    def test_csv(self) -> None:
        assert tags_to_csv(["alpha", "beta"]) == "alpha, beta"


@pytest.mark.unit
class TestRedirectHelpers:
    def test_with_query_appends(self) -> None:
        assert with_query("/", error="Prompt not found.") == "/?error=Prompt%20not%20found."
        assert with_query("/login?callbackUrl=%2F", error="x") == "/login?callbackUrl=%2F&error=x"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("/prompts/1", "/prompts/1"),
            ("/?q=abc", "/?q=abc"),
            ("//evil.example.com", "/"),
            ("https://evil.example.com", "/"),
            ("/login", "/"),
            ("/login?callbackUrl=/", "/"),
            ("", "/"),
            (None, "/"),
        ],
    )
    def test_safe_callback_path(self, raw: str | None, expected: str) -> None:
        assert safe_callback_path(raw) == expected
