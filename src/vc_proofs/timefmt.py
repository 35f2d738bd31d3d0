"""
Formatting strategies for the proof "created" timestamp.

Verifiers differ in which RFC 3339 profile they accept; the strategy is
picked at runtime (see Settings.time_format).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimeFormat(Protocol):
    name: str

    def format(self, value: datetime) -> str:
        ...


class RFC3339Format:
    """RFC 3339 in UTC, keeping sub-second precision when present."""

    name = "rfc3339"

    def format(self, value: datetime) -> str:
        return _to_utc(value).isoformat().replace("+00:00", "Z")


class RFC3339SecondsFormat:
    """RFC 3339 in UTC truncated to whole seconds (ACA-Py interop)."""

    name = "rfc3339-seconds"

    def format(self, value: datetime) -> str:
        return _to_utc(value).replace(microsecond=0).isoformat().replace("+00:00", "Z")


TIME_FORMATS: dict[str, TimeFormat] = {
    RFC3339Format.name: RFC3339Format(),
    RFC3339SecondsFormat.name: RFC3339SecondsFormat(),
}


def get_time_format(name: str) -> TimeFormat:
    """Look up a timestamp strategy by name."""
    try:
        return TIME_FORMATS[name]
    except KeyError:
        raise ValueError(
            f"Unknown time format {name!r}; expected one of {sorted(TIME_FORMATS)}"
        ) from None
