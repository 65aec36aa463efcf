"""Conversions between document leaves and domain values."""

from __future__ import annotations

from datetime import UTC, datetime


def to_iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def from_iso(value: str | None) -> datetime:
    if not value:
        # Records written before timestamps existed sort first.
        return datetime.min.replace(tzinfo=UTC)
    return datetime.fromisoformat(value)


def id_set(value: dict | None) -> frozenset[str]:
    return frozenset(k for k, present in (value or {}).items() if present)
