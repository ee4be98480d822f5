"""
Tests for the availability resolver.
"""

import random
from datetime import date, time, timedelta

import pytest

from slotresolver.domain.availability_resolver import AvailabilityResolver
from slotresolver.domain.models import AvailabilityRule

MONDAY = date(2024, 11, 25)


def recurring(day_of_week, start, end, active=True):
    return AvailabilityRule.recurring(
        "provider-1", day_of_week, time(*start), time(*end), active=active
    )


def one_off(on_date, start, end, active=True):
    return AvailabilityRule.one_off(
        "provider-1", on_date, time(*start), time(*end), active=active
    )


@pytest.fixture
def resolver():
    return AvailabilityResolver(timezone="Europe/Berlin", clock=lambda: MONDAY)


class TestOfferableDates:
    """Tests for AvailabilityResolver.offerable_dates."""

    def test_empty_rules_yield_no_dates(self, resolver):
        assert resolver.offerable_dates([]) == []

    def test_weekly_rule_over_two_weeks(self, resolver):
        """A Monday rule seen from a Monday gives today and next Monday."""
        rules = [recurring(1, (10, 0), (11, 0))]

        dates = resolver.offerable_dates(rules, horizon_days=14)

        assert dates == [MONDAY, MONDAY + timedelta(days=7)]

    def test_horizon_start_offset_changes_count(self, resolver):
        """Seen from a Tuesday, two Mondays still fall in 14 days."""
        rules = [recurring(1, (10, 0), (11, 0))]
        tuesday = MONDAY + timedelta(days=1)

        dates = resolver.offerable_dates(rules, horizon_days=14, today=tuesday)

        assert dates == [date(2024, 12, 2), date(2024, 12, 9)]

    def test_one_off_dates_included_even_in_the_past(self, resolver):
        past = date(2024, 1, 15)
        far_future = date(2025, 6, 1)
        rules = [one_off(past, (9, 0), (10, 0)), one_off(far_future, (9, 0), (10, 0))]

        assert resolver.offerable_dates(rules) == [past, far_future]

    def test_dates_deduplicated_and_sorted(self, resolver):
        """A one-off on a recurring weekday appears once."""
        rules = [
            recurring(3, (14, 0), (17, 0)),        # Wednesday
            recurring(1, (9, 0), (12, 0)),         # Monday
            one_off(date(2024, 11, 27), (9, 0), (10, 0)),  # Wednesday
            one_off(date(2024, 11, 30), (9, 0), (10, 0)),  # Saturday
        ]

        dates = resolver.offerable_dates(rules, horizon_days=7)

        assert dates == [
            date(2024, 11, 25),
            date(2024, 11, 27),
            date(2024, 11, 30),
        ]
        assert len(dates) == len(set(dates))

    def test_inactive_rules_excluded(self, resolver):
        rules = [
            recurring(1, (9, 0), (12, 0), active=False),
            one_off(date(2024, 11, 30), (9, 0), (10, 0), active=False),
        ]

        assert resolver.offerable_dates(rules) == []

    def test_malformed_rules_offer_no_dates(self, resolver):
        """A date is never offered on the strength of an empty window."""
        rules = [
            recurring(1, (10, 0), (10, 0)),
            one_off(date(2024, 11, 30), (11, 0), (10, 0)),
        ]

        assert resolver.offerable_dates(rules) == []

    def test_sub_minute_window_offers_no_date(self, resolver):
        """10:00:00-10:00:30 has no whole minute, so neither dates nor times."""
        rules = [
            recurring(1, (10, 0, 0), (10, 0, 30)),
            one_off(date(2024, 11, 30), (9, 0, 15), (9, 0, 45)),
        ]

        assert resolver.offerable_dates(rules) == []
        assert resolver.offerable_times(rules, MONDAY) == []

    def test_every_offered_date_has_times(self, resolver):
        rules = [
            recurring(1, (10, 0, 0), (10, 0, 30)),
            recurring(3, (9, 0, 0), (9, 1, 0)),
            one_off(date(2024, 11, 30), (11, 0), (10, 0)),
        ]

        for day in resolver.offerable_dates(rules):
            assert resolver.offerable_times(rules, day), day

    def test_non_positive_horizon_keeps_one_offs_only(self, resolver):
        rules = [recurring(1, (9, 0), (12, 0)), one_off(date(2024, 11, 30), (9, 0), (10, 0))]

        assert resolver.offerable_dates(rules, horizon_days=0) == [date(2024, 11, 30)]
        assert resolver.offerable_dates(rules, horizon_days=-3) == [date(2024, 11, 30)]

    def test_clock_is_used_when_today_not_given(self):
        clock_calls = []

        def clock():
            clock_calls.append(True)
            return date(2024, 12, 1)  # Sunday

        resolver = AvailabilityResolver(clock=clock)
        dates = resolver.offerable_dates([recurring(0, (9, 0), (10, 0))], horizon_days=1)

        assert dates == [date(2024, 12, 1)]
        assert clock_calls

    def test_default_clock_returns_plain_date(self):
        today = AvailabilityResolver(timezone="UTC").today()

        assert type(today) is date


class TestOfferableTimes:
    """Tests for AvailabilityResolver.offerable_times."""

    def test_granularity_boundary(self, resolver):
        """09:00-09:45 at 30 minutes offers 09:00 and 09:30, never 09:45."""
        rules = [recurring(1, (9, 0), (9, 45))]

        assert resolver.offerable_times(rules, MONDAY, granularity_minutes=30) == ["09:00", "09:30"]

    def test_window_narrower_than_granularity(self, resolver):
        """A window shorter than one step still offers its start."""
        rules = [recurring(1, (9, 0), (9, 20))]

        assert resolver.offerable_times(rules, MONDAY) == ["09:00"]

    def test_one_off_and_recurring_union(self, resolver):
        """Both rule kinds on the same date are merged and sorted."""
        rules = [
            one_off(MONDAY, (14, 0), (15, 0)),
            recurring(1, (9, 0), (10, 0)),
        ]

        assert resolver.offerable_times(rules, MONDAY) == ["09:00", "09:30", "14:00", "14:30"]

    def test_overlapping_windows_deduplicated(self, resolver):
        rules = [
            recurring(1, (9, 0), (11, 0)),
            recurring(1, (10, 0), (12, 0)),
            one_off(MONDAY, (9, 30), (10, 30)),
        ]

        times = resolver.offerable_times(rules, MONDAY)

        assert times == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
        assert len(times) == len(set(times))

    def test_times_sorted_across_zero_padding(self, resolver):
        rules = [recurring(1, (13, 0), (14, 0)), recurring(1, (8, 0), (9, 0))]

        assert resolver.offerable_times(rules, MONDAY) == ["08:00", "08:30", "13:00", "13:30"]

    def test_inactive_rule_excluded(self, resolver):
        rules = [
            recurring(1, (9, 0), (10, 0), active=False),
            one_off(MONDAY, (14, 0), (15, 0), active=False),
        ]

        assert resolver.offerable_times(rules, MONDAY) == []

    def test_other_weekday_and_other_date_ignored(self, resolver):
        rules = [
            recurring(2, (9, 0), (10, 0)),                     # Tuesday
            one_off(date(2024, 12, 2), (9, 0), (10, 0)),       # next Monday
        ]

        assert resolver.offerable_times(rules, MONDAY) == []

    @pytest.mark.parametrize("start, end", [((10, 0), (10, 0)), ((11, 0), (10, 0))])
    def test_malformed_rule_contributes_nothing(self, resolver, start, end):
        """Zero-width and inverted windows are skipped without failing the call."""
        rules = [recurring(1, start, end), recurring(1, (14, 0), (15, 0))]

        assert resolver.offerable_times(rules, MONDAY) == ["14:00", "14:30"]

    def test_custom_granularity(self, resolver):
        rules = [recurring(1, (9, 0), (10, 0))]

        assert resolver.offerable_times(rules, MONDAY, granularity_minutes=15) == [
            "09:00", "09:15", "09:30", "09:45",
        ]

    def test_non_positive_granularity_yields_nothing(self, resolver):
        rules = [recurring(1, (9, 0), (10, 0))]

        assert resolver.offerable_times(rules, MONDAY, granularity_minutes=0) == []

    def test_session_must_fit_in_window(self, resolver):
        """With a 45 minute session the last start is 10:00 in 09:00-11:00."""
        rules = [recurring(1, (9, 0), (11, 0))]

        times = resolver.offerable_times(rules, MONDAY, granularity_minutes=30, session_minutes=45)

        assert times == ["09:00", "09:30", "10:00"]

    def test_session_longer_than_window(self, resolver):
        rules = [recurring(1, (9, 0), (9, 30))]

        assert resolver.offerable_times(rules, MONDAY, session_minutes=60) == []

    def test_booked_times_excluded(self, resolver):
        rules = [recurring(1, (9, 0), (11, 0))]

        times = resolver.offerable_times(rules, MONDAY, booked=["09:30", time(10, 0), "10:00:00", "bogus"])

        assert times == ["09:00", "10:30"]

    def test_seconds_in_stored_times_are_ignored(self, resolver):
        rules = [recurring(1, (9, 0, 0), (10, 0, 0))]

        assert resolver.offerable_times(rules, MONDAY) == ["09:00", "09:30"]


class TestResolverProperties:
    """Purity properties of the resolver."""

    RULES = [
        recurring(1, (9, 0), (12, 0)),
        recurring(3, (14, 0), (17, 0)),
        recurring(3, (16, 0), (18, 0)),
        one_off(date(2024, 11, 30), (10, 0), (11, 30)),
        one_off(MONDAY, (13, 0), (14, 0)),
        recurring(5, (8, 0), (10, 0), active=False),
        recurring(2, (10, 0), (10, 0)),
    ]

    def test_idempotent(self, resolver):
        assert resolver.offerable_dates(self.RULES) == resolver.offerable_dates(self.RULES)
        assert resolver.offerable_times(self.RULES, MONDAY) == resolver.offerable_times(self.RULES, MONDAY)

    def test_deterministic_under_reordering(self, resolver):
        expected_dates = resolver.offerable_dates(self.RULES)
        expected_times = {
            day: resolver.offerable_times(self.RULES, day) for day in expected_dates
        }

        rng = random.Random(1234)
        for _ in range(10):
            shuffled = list(self.RULES)
            rng.shuffle(shuffled)

            assert resolver.offerable_dates(shuffled) == expected_dates
            for day, times in expected_times.items():
                assert resolver.offerable_times(shuffled, day) == times

    def test_input_rules_not_mutated(self, resolver):
        rules = list(self.RULES)

        resolver.offerable_dates(rules)
        resolver.offerable_times(rules, MONDAY)

        assert rules == self.RULES


class TestRulesForDateAndSlots:
    """Tests for rules_for_date and resolve_slots."""

    def test_rules_for_date_one_offs_first(self, resolver):
        late_recurring = recurring(1, (15, 0), (16, 0))
        early_recurring = recurring(1, (8, 0), (9, 0))
        extra = one_off(MONDAY, (18, 0), (19, 0))
        rules = [late_recurring, early_recurring, extra, recurring(2, (8, 0), (9, 0))]

        assert resolver.rules_for_date(rules, MONDAY) == [extra, early_recurring, late_recurring]

    def test_resolve_slots(self, resolver):
        rules = [recurring(1, (9, 0), (10, 0)), one_off(date(2024, 11, 27), (14, 0), (14, 30))]

        slots = resolver.resolve_slots(rules, horizon_days=7)

        assert [slot.to_iso() for slot in slots] == [
            "2024-11-25T09:00:00",
            "2024-11-25T09:30:00",
            "2024-11-27T14:00:00",
        ]
