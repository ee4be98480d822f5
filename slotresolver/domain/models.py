"""
Domain models for availability rules and resolved booking slots.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Optional

import pendulum

# Sunday-first, matching the stored day_of_week numbering (Sunday=0)
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def weekday_index(day: date) -> int:
    """Return the weekday of a date with Sunday=0 ... Saturday=6."""
    return day.isoweekday() % 7


def parse_time_of_day(value: str) -> time:
    """
    Parse a local time-of-day string.

    Accepts ``HH:MM`` and ``HH:MM:SS``; the backend returns ``time`` columns
    with seconds while forms submit them without.

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time of day: '{value}' (expected HH:MM)")

    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour=hour, minute=minute, second=second)


def format_time_of_day(value: time) -> str:
    """Format a time as zero-padded 24-hour ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_calendar_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a plain date."""
    parsed = pendulum.from_format(value.strip()[:10], "YYYY-MM-DD")
    return date(parsed.year, parsed.month, parsed.day)


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


class RuleKind(str, Enum):
    """How an availability window repeats."""
    RECURRING = "recurring"
    ONE_OFF = "one_off"


@dataclass(frozen=True)
class AvailabilityRule:
    """
    One declared availability window of a provider.

    Invariant: a recurring rule has ``day_of_week`` and no ``date``, a one-off
    rule has ``date`` and no ``day_of_week``.

    ``start_time < end_time`` is not enforced here. Malformed windows are
    representable and the resolver skips them.
    """
    provider_id: str
    kind: RuleKind
    start_time: time
    end_time: time
    day_of_week: Optional[int] = None
    date: Optional[date] = None
    active: bool = True
    rule_id: Optional[str] = None

    def __post_init__(self):
        if self.kind is RuleKind.RECURRING:
            if self.day_of_week is None or self.date is not None:
                raise ValueError("Recurring rule needs day_of_week and no date")
            if not 0 <= self.day_of_week <= 6:
                raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")
        elif self.kind is RuleKind.ONE_OFF:
            if self.date is None or self.day_of_week is not None:
                raise ValueError("One-off rule needs date and no day_of_week")
        else:
            raise ValueError(f"Unknown rule kind: {self.kind!r}")

    @classmethod
    def recurring(
        cls,
        provider_id: str,
        day_of_week: int,
        start_time: time,
        end_time: time,
        active: bool = True,
        rule_id: Optional[str] = None
    ) -> "AvailabilityRule":
        """Build a weekly rule for the given weekday (Sunday=0)."""
        return cls(
            provider_id=provider_id,
            kind=RuleKind.RECURRING,
            start_time=start_time,
            end_time=end_time,
            day_of_week=day_of_week,
            active=active,
            rule_id=rule_id
        )

    @classmethod
    def one_off(
        cls,
        provider_id: str,
        on_date: date,
        start_time: time,
        end_time: time,
        active: bool = True,
        rule_id: Optional[str] = None
    ) -> "AvailabilityRule":
        """Build a rule for exactly one calendar date."""
        return cls(
            provider_id=provider_id,
            kind=RuleKind.ONE_OFF,
            start_time=start_time,
            end_time=end_time,
            date=on_date,
            active=active,
            rule_id=rule_id
        )

    @property
    def is_recurring(self) -> bool:
        return self.kind is RuleKind.RECURRING

    def is_well_formed(self) -> bool:
        """Check that the window opens at least a minute before it closes."""
        return minutes_since_midnight(self.start_time) < minutes_since_midnight(self.end_time)

    def window_minutes(self) -> int:
        """Return the window length in minutes (0 for malformed windows)."""
        if not self.is_well_formed():
            return 0
        return minutes_since_midnight(self.end_time) - minutes_since_midnight(self.start_time)

    def applies_to(self, day: date) -> bool:
        """Check whether this active rule covers the given date."""
        if not self.active:
            return False
        if self.is_recurring:
            return self.day_of_week == weekday_index(day)
        return self.date == day

    def describe(self) -> str:
        """
        Human readable label.
        Format: Monday 09:00 - 12:00 / 2024-11-25 14:00 - 15:00
        """
        if self.is_recurring:
            when = DAY_NAMES[self.day_of_week]
        else:
            when = self.date.isoformat()
        window = f"{format_time_of_day(self.start_time)} - {format_time_of_day(self.end_time)}"
        return f"{when} {window}"

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True, order=True)
class ResolvedSlot:
    """
    A concrete bookable (date, time) pair.

    Derived on demand from a rule set and never persisted.
    """
    date: date
    time: time

    def date_string(self) -> str:
        return self.date.isoformat()

    def time_string(self) -> str:
        return format_time_of_day(self.time)

    def to_iso(self) -> str:
        """Return the ``date_time`` value a booking row stores."""
        return f"{self.date_string()}T{self.time_string()}:00"

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:MM
        """
        weekday = DAY_NAMES[weekday_index(self.date)]
        return f"{weekday}, {self.date_string()} | {self.time_string()}"
