"""Comma-separated list parsing for tags and collaborator emails."""

from __future__ import annotations

from collections.abc import Iterable


def _normalized_unique(raw: str) -> list[str]:
    seen: dict[str, None] = {}
    for item in raw.split(","):
        value = item.strip().lower()
        if value:
            seen.setdefault(value, None)
    return list(seen)


def parse_tags(raw: str) -> list[str]:
    """``"Alpha, alpha , ALPHA,beta"`` -> ``["alpha", "beta"]`` (first-seen order)."""
    return _normalized_unique(raw)


def parse_emails(raw: str) -> list[str]:
    return _normalized_unique(raw)


def tags_to_csv(tags: Iterable[str]) -> str:
    return ", ".join(tags)
