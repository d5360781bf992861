"""
winsched — timestamp and duration codec

File: src/winsched/codec.py
Last updated: 2026-10-19

Purpose
- Convert timestamps and ISO-8601 durations between domain values and the strings the
  Task Scheduler object model reads and writes.

What should be included in this file
- ``Period``: calendar-aware duration value (years/months cannot be a ``timedelta``).
- Timestamp decode over an ordered list of known formats; a single canonical encode.
- Empty-string handling for "unset" in both directions.

Functional requirements
- ``decode(encode(x)) == x`` for every value the encoders can produce.
- ``encode(decode("")) == ""``.

Non-functional requirements
- Pure functions, no provider access; errors carry the offending text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

from winsched.constants import OLE_ZERO_DATE_YEAR

# Tried in order; first match wins. The provider emits offset, "Z" and bare local
# forms. The fractional and date-only forms are accepted as well since the provider's
# full set of output formats is not documented.
_TIMESTAMP_FORMATS: Final[tuple[str, ...]] = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d",
)

_PERIOD_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^P(?!$)"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"(?:T(?=\d)"
    r"(?:(?P<hours>\d+)H)?"
    r"(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+)S)?"
    r")?$"
)


class CodecError(ValueError):
    """Raised when a timestamp or duration string cannot be decoded."""


@dataclass(frozen=True, slots=True)
class Period:
    """ISO-8601 duration with independent calendar and clock components."""

    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def __post_init__(self) -> None:
        for name in ("years", "months", "days", "hours", "minutes", "seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Period.{name} must be an integer")
            if value < 0:
                raise ValueError(f"Period.{name} must be >= 0")

    @classmethod
    def of(cls, *, days: int = 0, hours: int = 0, minutes: int = 0, seconds: int = 0) -> Period:
        return cls(days=days, hours=hours, minutes=minutes, seconds=seconds)

    @property
    def is_zero(self) -> bool:
        return not any(
            (self.years, self.months, self.days, self.hours, self.minutes, self.seconds)
        )

    def __bool__(self) -> bool:
        return not self.is_zero

    def __str__(self) -> str:
        return encode_period(self)

    def to_timedelta(self) -> timedelta:
        """Return the clock-time equivalent; calendar components have no fixed length."""

        if self.years or self.months:
            raise ValueError("periods with years or months have no fixed length")
        return timedelta(
            days=self.days, hours=self.hours, minutes=self.minutes, seconds=self.seconds
        )


ZERO_PERIOD: Final[Period] = Period()


def encode_timestamp(value: datetime | None) -> str:
    """Encode ``value`` in the canonical provider form; ``None`` encodes to ``""``.

    The form is ``YYYY-MM-DDTHH:MM:SS``, followed by ``.ffffff`` when the value has
    microseconds and by ``+HH:MM`` when it is timezone-aware.
    """

    if value is None:
        return ""
    timespec = "microseconds" if value.microsecond else "seconds"
    return value.isoformat(sep="T", timespec=timespec)


def decode_timestamp(text: str) -> datetime | None:
    """Decode a provider timestamp string; ``""`` decodes to ``None``."""

    candidate = text.strip()
    if not candidate:
        return None

    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    raise CodecError(f"unrecognized timestamp {text!r}")


def timestamp_from_provider(raw: object) -> datetime | None:
    """Accept either a provider string or an automation DATE value."""

    if raw is None:
        return None
    if isinstance(raw, datetime):
        if raw.year < OLE_ZERO_DATE_YEAR:
            return None
        return raw
    if isinstance(raw, str):
        return decode_timestamp(raw)
    raise CodecError(f"unsupported timestamp value of type {type(raw).__name__}")


def encode_period(value: Period) -> str:
    """Encode ``value`` as an ISO-8601 duration; the zero period encodes to ``""``."""

    if value.is_zero:
        return ""

    parts = ["P"]
    for amount, unit in ((value.years, "Y"), (value.months, "M"), (value.days, "D")):
        if amount:
            parts.append(f"{amount}{unit}")

    clock = [
        f"{amount}{unit}"
        for amount, unit in ((value.hours, "H"), (value.minutes, "M"), (value.seconds, "S"))
        if amount
    ]
    if clock:
        parts.append("T")
        parts.extend(clock)
    return "".join(parts)


def decode_period(text: str) -> Period:
    """Decode an ISO-8601 duration; ``""`` decodes to the zero period."""

    candidate = text.strip().upper()
    if not candidate:
        return ZERO_PERIOD

    match = _PERIOD_PATTERN.fullmatch(candidate)
    if match is None:
        raise CodecError(f"unrecognized duration {text!r}")

    groups = {name: int(value) if value else 0 for name, value in match.groupdict().items()}
    return Period(
        years=groups["years"],
        months=groups["months"],
        days=groups["days"] + 7 * groups["weeks"],
        hours=groups["hours"],
        minutes=groups["minutes"],
        seconds=groups["seconds"],
    )


__all__ = [
    "CodecError",
    "Period",
    "ZERO_PERIOD",
    "decode_period",
    "decode_timestamp",
    "encode_period",
    "encode_timestamp",
    "timestamp_from_provider",
]
