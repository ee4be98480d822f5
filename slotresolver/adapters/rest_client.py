"""
REST client for the hosted backend's availability and booking tables.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pendulum
import requests

from ..domain.exceptions import PersistenceError
from ..domain.models import AvailabilityRule, format_time_of_day
from ..domain.validation import rules_from_rows

logger = logging.getLogger(__name__)

CANCELLED_STATUS = "cancelled"


def rule_to_row(rule: AvailabilityRule) -> Dict[str, Any]:
    """Encode a rule as a ``provider_availability`` row."""
    return {
        "provider_id": rule.provider_id,
        "is_recurring": rule.is_recurring,
        "day_of_week": rule.day_of_week,
        "date": rule.date.isoformat() if rule.date else None,
        "start_time": format_time_of_day(rule.start_time),
        "end_time": format_time_of_day(rule.end_time),
        "is_active": rule.active,
    }


class AvailabilityClient:
    """
    Client for the backend's table API (PostgREST conventions).

    Reads and writes ``provider_availability`` rows and reads the start
    times of existing bookings.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "provider_availability",
        bookings_table: str = "bookings",
        timezone: str = "UTC",
        timeout: int = 15
    ):
        """
        Initialize the client.

        Args:
            base_url: REST endpoint root, e.g. https://project.example.co/rest/v1
            api_key: Service or anon key sent with every request
            table: Availability table name
            bookings_table: Bookings table name
            timezone: Zone used to read booking timestamps
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.table = table
        self.bookings_table = bookings_table
        self.timezone = timezone
        self.timeout = timeout
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def list_availability_rules(
        self,
        provider_id: str,
        active_only: bool = True
    ) -> List[AvailabilityRule]:
        """
        Fetch a provider's availability rules.

        Rows that cannot be mapped to a rule are skipped with a warning.

        Raises:
            PersistenceError: If the API call fails
        """
        params = [("select", "*"), ("provider_id", f"eq.{provider_id}")]
        if active_only:
            params.append(("is_active", "eq.true"))

        rows = self._request("GET", self.table, params=params)
        report = rules_from_rows(rows)

        for warning in report.warnings:
            logger.warning("Skipping availability row: %s", warning)

        return report.rules

    def create_rule(self, rule: AvailabilityRule) -> AvailabilityRule:
        """Insert a rule and return it as stored."""
        rows = self._request(
            "POST",
            self.table,
            json=[rule_to_row(rule)],
            prefer="return=representation"
        )
        return self._single_rule(rows)

    def update_rule(self, rule_id: str, rule: AvailabilityRule) -> AvailabilityRule:
        """Overwrite a stored rule (last write wins)."""
        rows = self._request(
            "PATCH",
            self.table,
            params=[("id", f"eq.{rule_id}")],
            json=rule_to_row(rule),
            prefer="return=representation"
        )
        return self._single_rule(rows)

    def delete_rule(self, rule_id: str) -> None:
        """Delete a stored rule."""
        self._request("DELETE", self.table, params=[("id", f"eq.{rule_id}")])

    def list_booked_times(self, provider_id: str, target_date: date) -> List[str]:
        """
        Get the ``HH:MM`` start times of a provider's bookings on one date.

        Cancelled bookings do not occupy their slot.
        """
        day_start = f"{target_date.isoformat()}T00:00:00"
        day_end = f"{(target_date + timedelta(days=1)).isoformat()}T00:00:00"
        params = [
            ("select", "date_time,status"),
            ("provider_id", f"eq.{provider_id}"),
            ("date_time", f"gte.{day_start}"),
            ("date_time", f"lt.{day_end}"),
            ("status", f"neq.{CANCELLED_STATUS}"),
        ]

        rows = self._request("GET", self.bookings_table, params=params)

        times: List[str] = []
        for row in rows:
            value = row.get("date_time")
            if not isinstance(value, str):
                logger.warning("Booking row %s has no date_time", row.get("id"))
                continue

            try:
                start = pendulum.parse(value, tz=self.timezone)
            except ValueError as e:
                logger.warning("Could not parse booking row %s: %s", row.get("id"), e)
                continue
            times.append(start.format("HH:mm"))

        return sorted(set(times))

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection by reading a single availability row.

        Raises:
            PersistenceError: If the connection test fails
        """
        rows = self._request("GET", self.table, params=[("select", "id"), ("limit", "1")])
        return {"table": self.table, "reachable": True, "sample_rows": len(rows)}

    def _single_rule(self, rows: Any) -> AvailabilityRule:
        if not rows:
            raise PersistenceError("Backend returned no row for the written rule")

        report = rules_from_rows(rows[:1])
        if not report.rules:
            raise PersistenceError(f"Backend returned an unusable row: {report.warnings[0]}")
        return report.rules[0]

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[List[tuple]] = None,
        json: Any = None,
        prefer: Optional[str] = None
    ) -> Any:
        """
        Perform one table request and decode the JSON body.

        Raises:
            PersistenceError: On transport errors, error statuses or bad JSON
        """
        url = f"{self.base_url}/{table}"
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer

        logger.debug("%s %s params=%s", method, url, params)

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"{method} {table} failed: {e}") from e

        if not response.content:
            return []

        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from {table}: {e}") from e
