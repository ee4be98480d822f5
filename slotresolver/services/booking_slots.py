"""
Application services for offering bookable slots.

The service fetches a provider's rules through a repository adapter and
delegates the slot arithmetic to the domain-level ``AvailabilityResolver``.
Both the patient booking flow and the provider schedule view go through
it, so they cannot drift apart.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Protocol

from ..domain.availability_resolver import AvailabilityResolver
from ..domain.models import AvailabilityRule
from ..domain.validation import ValidationReport, validate_rules

logger = logging.getLogger(__name__)


class AvailabilityRepositoryProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the service."""

    def list_availability_rules(
        self,
        provider_id: str,
        active_only: bool = True,
    ) -> List[AvailabilityRule]:
        """Return the provider's availability rules."""

    def list_booked_times(self, provider_id: str, target_date: date) -> List[str]:
        """Return ``HH:MM`` start times already booked on a date."""


class BookableSlotService:
    """
    Orchestrates rule retrieval and slot resolution.

    Dependency inversion toward a protocol makes it easy to plug in the real
    REST adapter or the mock implementation in tests.
    """

    def __init__(
        self,
        repository: AvailabilityRepositoryProtocol,
        resolver: AvailabilityResolver,
    ) -> None:
        self._repository = repository
        self._resolver = resolver

    def offerable_dates(
        self,
        *,
        provider_id: str,
        horizon_days: int,
        today: Optional[date] = None,
    ) -> List[date]:
        """Fetch the provider's rules and list the dates a patient may pick."""
        rules = self._repository.list_availability_rules(provider_id)
        dates = self._resolver.offerable_dates(rules, horizon_days=horizon_days, today=today)
        logger.debug("Provider %s: %d offerable dates", provider_id, len(dates))
        return dates

    def offerable_times(
        self,
        *,
        provider_id: str,
        target_date: date,
        granularity_minutes: int,
        session_minutes: Optional[int] = None,
        exclude_booked: bool = False,
    ) -> List[str]:
        """
        Fetch the provider's rules and list the start times for one date.

        With ``exclude_booked`` the start times of existing bookings on that
        date are removed.
        """
        rules = self._repository.list_availability_rules(provider_id)

        booked = None
        if exclude_booked:
            booked = self._repository.list_booked_times(provider_id, target_date)
            logger.debug("Provider %s: excluding booked times %s", provider_id, booked)

        return self._resolver.offerable_times(
            rules,
            target_date,
            granularity_minutes=granularity_minutes,
            session_minutes=session_minutes,
            booked=booked,
        )

    def rules_for_date(self, *, provider_id: str, target_date: date) -> List[AvailabilityRule]:
        """Rules shown on the provider's schedule for one day."""
        rules = self._repository.list_availability_rules(provider_id)
        return self._resolver.rules_for_date(rules, target_date)

    def availability_report(self, *, provider_id: str) -> ValidationReport:
        """
        Review all of a provider's rules, including inactive ones.

        The report lists the rules the resolver will use and a warning for
        every rule it will ignore.
        """
        rules = self._repository.list_availability_rules(provider_id, active_only=False)
        report = validate_rules(rules)

        for warning in report.warnings:
            logger.info("Provider %s: %s", provider_id, warning)

        return report
