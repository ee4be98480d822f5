"""
In-memory availability client for running without a backend.
"""

import dataclasses
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum

from ..domain.exceptions import PersistenceError
from ..domain.models import AvailabilityRule
from ..domain.validation import rules_from_rows

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_availability_data.json"


class MockAvailabilityClient:
    """
    Mock client that mirrors ``AvailabilityClient`` without network access.

    Rules and bookings are loaded from mock_availability_data.json (or the
    given file) and writes only live in memory.
    """

    def __init__(self, data_file: Optional[Path] = None, timezone: str = "UTC"):
        """
        Initialize the mock client.

        Args:
            data_file: Optional JSON file with "availability" and "bookings" rows
            timezone: Zone used to read booking timestamps
        """
        self.data_file = data_file or DEFAULT_DATA_FILE
        self.timezone = timezone
        self._rules: Dict[str, AvailabilityRule] = {}
        self._bookings: List[Dict[str, Any]] = []
        self._next_id = 1
        self._load_data()

    def _load_data(self):
        """Load mock rows from the JSON file."""
        if not self.data_file.exists():
            # Fallback to empty if file doesn't exist
            return

        with open(self.data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        report = rules_from_rows(data.get("availability", []))
        for warning in report.warnings:
            logger.warning("Skipping mock availability row: %s", warning)

        for rule in report.rules:
            self._store(rule)

        self._bookings = list(data.get("bookings", []))

    def _store(self, rule: AvailabilityRule) -> AvailabilityRule:
        rule_id = rule.rule_id or f"mock-{self._next_id}"
        self._next_id += 1
        stored = dataclasses.replace(rule, rule_id=rule_id)
        self._rules[rule_id] = stored
        return stored

    def list_availability_rules(
        self,
        provider_id: str,
        active_only: bool = True
    ) -> List[AvailabilityRule]:
        return [
            rule for rule in self._rules.values()
            if rule.provider_id == provider_id and (rule.active or not active_only)
        ]

    def create_rule(self, rule: AvailabilityRule) -> AvailabilityRule:
        return self._store(dataclasses.replace(rule, rule_id=None))

    def update_rule(self, rule_id: str, rule: AvailabilityRule) -> AvailabilityRule:
        if rule_id not in self._rules:
            raise PersistenceError(f"No availability rule with id {rule_id}")
        return self._store(dataclasses.replace(rule, rule_id=rule_id))

    def delete_rule(self, rule_id: str) -> None:
        if self._rules.pop(rule_id, None) is None:
            raise PersistenceError(f"No availability rule with id {rule_id}")

    def list_booked_times(self, provider_id: str, target_date: date) -> List[str]:
        """Start times of non-cancelled mock bookings on one date."""
        times = set()

        for booking in self._bookings:
            if booking.get("provider_id") != provider_id:
                continue
            if booking.get("status") == "cancelled":
                continue

            value = booking.get("date_time")
            if not isinstance(value, str):
                continue

            try:
                start = pendulum.parse(value, tz=self.timezone)
            except ValueError:
                # Skip invalid bookings
                continue

            if start.date() == target_date:
                times.add(start.format("HH:mm"))

        return sorted(times)

    def test_connection(self) -> Dict[str, Any]:
        """
        Mock connection test.

        Returns:
            Summary of the loaded mock data
        """
        return {
            "table": "mock",
            "reachable": True,
            "sample_rows": len(self._rules),
        }
