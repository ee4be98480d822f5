"""
Core business logic for turning availability rules into bookable slots.

Pure domain logic: no API calls, no database, no I/O. Every call is computed
fresh from its arguments, so the resolver is safe to call repeatedly and
concurrently.
"""

import logging
from datetime import date, time, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Set, Union

import pendulum

from .models import (
    AvailabilityRule,
    ResolvedSlot,
    format_time_of_day,
    minutes_since_midnight,
    parse_time_of_day,
    weekday_index,
)

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 14
DEFAULT_GRANULARITY_MINUTES = 30

Clock = Callable[[], date]
BookedTime = Union[str, time]


class AvailabilityResolver:
    """
    Resolves a provider's recurring and one-off rules into offerable dates
    and start times.

    Algorithm for dates:
    1. Take every active, well-formed one-off rule's date as-is
    2. Walk the horizon from today and keep days whose weekday has an active,
       well-formed recurring rule
    3. Deduplicate and sort

    Algorithm for times on one date:
    1. Select active one-off rules for that date and active recurring rules
       for its weekday
    2. Step through each window at the slot granularity, stopping strictly
       before the window closes
    3. Union, deduplicate and sort the start times

    Malformed rules contribute nothing; the resolver never raises.
    """

    def __init__(self, timezone: str = "UTC", clock: Optional[Clock] = None):
        self.timezone = timezone
        self._clock = clock or self._system_today

    def _system_today(self) -> date:
        today = pendulum.today(self.timezone)
        return date(today.year, today.month, today.day)

    def today(self) -> date:
        """Return "today" according to the injected clock."""
        return self._clock()

    def offerable_dates(
        self,
        rules: Sequence[AvailabilityRule],
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        today: Optional[date] = None
    ) -> List[date]:
        """
        List the calendar dates a patient may pick.

        Args:
            rules: All rules of one provider (recurring and one-off)
            horizon_days: How many days from today recurring rules expand over
            today: Override for the clock

        Returns:
            Distinct dates in ascending order
        """
        start = today or self.today()
        dates: Set[date] = set()

        usable = [rule for rule in rules if rule.active and rule.is_well_formed()]

        # One-off dates are offered even when they lie in the past
        for rule in usable:
            if not rule.is_recurring:
                dates.add(rule.date)

        recurring_weekdays = {rule.day_of_week for rule in usable if rule.is_recurring}

        if recurring_weekdays:
            for offset in range(max(horizon_days, 0)):
                current = start + timedelta(days=offset)
                if weekday_index(current) in recurring_weekdays:
                    dates.add(current)

        return sorted(dates)

    def offerable_times(
        self,
        rules: Sequence[AvailabilityRule],
        target_date: date,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
        session_minutes: Optional[int] = None,
        booked: Optional[Iterable[BookedTime]] = None
    ) -> List[str]:
        """
        List the start times (``HH:MM``) offered on one date.

        Args:
            rules: All rules of one provider
            target_date: The date the patient selected
            granularity_minutes: Step between consecutive start times
            session_minutes: Provider session length; when given, a start is
                offered only if the whole session fits in the window
            booked: Start times already taken on that date; excluded when given

        Returns:
            Distinct zero-padded 24-hour times in ascending order
        """
        if granularity_minutes <= 0:
            logger.debug("Ignoring non-positive granularity %s", granularity_minutes)
            return []

        points: Set[int] = set()

        for rule in self.rules_for_date(rules, target_date):
            points.update(
                self._expand_window(rule, granularity_minutes, session_minutes)
            )

        if booked is not None:
            points -= self._booked_minutes(booked)

        return [
            format_time_of_day(time(hour=minutes // 60, minute=minutes % 60))
            for minutes in sorted(points)
        ]

    def rules_for_date(
        self,
        rules: Sequence[AvailabilityRule],
        target_date: date
    ) -> List[AvailabilityRule]:
        """
        Return the active rules covering a date.

        One-off rules come first, then recurring ones; each group is ordered
        by start time.
        """
        matching = [rule for rule in rules if rule.applies_to(target_date)]
        return sorted(
            matching,
            key=lambda r: (r.is_recurring, r.start_time, r.end_time)
        )

    def resolve_slots(
        self,
        rules: Sequence[AvailabilityRule],
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
        session_minutes: Optional[int] = None,
        today: Optional[date] = None
    ) -> List[ResolvedSlot]:
        """
        Expand every offerable date of the horizon into concrete slots.

        Returns:
            ResolvedSlot values ordered by date, then time
        """
        slots: List[ResolvedSlot] = []

        for day in self.offerable_dates(rules, horizon_days=horizon_days, today=today):
            times = self.offerable_times(
                rules,
                day,
                granularity_minutes=granularity_minutes,
                session_minutes=session_minutes
            )
            slots.extend(
                ResolvedSlot(date=day, time=parse_time_of_day(value))
                for value in times
            )

        return slots

    def _expand_window(
        self,
        rule: AvailabilityRule,
        granularity_minutes: int,
        session_minutes: Optional[int]
    ) -> List[int]:
        """
        Step through ``[start, end)`` of one rule in minutes since midnight.

        Example (granularity 30):
        Window: 09:00 - 09:45
        Result: [09:00, 09:30]
        """
        if not rule.is_well_formed():
            logger.debug("Skipping malformed availability rule: %s", rule)
            return []

        start = minutes_since_midnight(rule.start_time)
        end = minutes_since_midnight(rule.end_time)

        # The whole session has to end by the time the window closes
        if session_minutes and session_minutes > 0:
            last_start = end - session_minutes
            return list(range(start, last_start + 1, granularity_minutes))

        return list(range(start, end, granularity_minutes))

    @staticmethod
    def _booked_minutes(booked: Iterable[BookedTime]) -> Set[int]:
        taken: Set[int] = set()

        for value in booked:
            if isinstance(value, str):
                try:
                    value = parse_time_of_day(value)
                except ValueError:
                    logger.debug("Ignoring unparseable booked time %r", value)
                    continue
            taken.add(minutes_since_midnight(value))

        return taken
