"""
Data-quality checks around the resolver.

The resolver silently drops rules it cannot use. Callers that must tell
"no availability" apart from "bad data" run the rules through
``validate_rules`` first and show the warnings alongside the slots.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    AvailabilityRule,
    minutes_since_midnight,
    parse_calendar_date,
    parse_time_of_day,
)


@dataclass(frozen=True)
class RuleWarning:
    """A rule (or raw row) that contributes nothing to resolution."""
    reason: str
    rule: Optional[AvailabilityRule] = None
    row: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if self.rule is not None:
            return f"{self.rule.describe()}: {self.reason}"
        row_id = (self.row or {}).get("id", "?")
        return f"row {row_id}: {self.reason}"


@dataclass
class ValidationReport:
    """Tagged result: the usable rules plus everything that was rejected."""
    rules: List[AvailabilityRule] = field(default_factory=list)
    warnings: List[RuleWarning] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.warnings


def validate_rules(rules: Iterable[AvailabilityRule]) -> ValidationReport:
    """
    Split rules into usable ones and warnings.

    Inactive rules and windows that do not open before they close are
    reported instead of kept.
    """
    report = ValidationReport()

    for rule in rules:
        # Compared in whole minutes, like slot expansion
        start = minutes_since_midnight(rule.start_time)
        end = minutes_since_midnight(rule.end_time)

        if not rule.active:
            report.warnings.append(RuleWarning(reason="rule is inactive", rule=rule))
        elif start == end:
            report.warnings.append(RuleWarning(reason="window has zero length", rule=rule))
        elif start > end:
            report.warnings.append(RuleWarning(reason="window ends before it starts", rule=rule))
        else:
            report.rules.append(rule)

    return report


def rule_from_row(row: Dict[str, Any]) -> AvailabilityRule:
    """
    Map one ``provider_availability`` row to a rule.

    Raises:
        ValueError: If the row is missing fields or mixes recurring and
            one-off data
    """
    try:
        start_time = parse_time_of_day(str(row["start_time"]))
        end_time = parse_time_of_day(str(row["end_time"]))
        provider_id = str(row["provider_id"])
    except KeyError as exc:
        raise ValueError(f"missing field {exc.args[0]}") from exc

    active = row.get("is_active")
    if active is None:
        active = True
    elif not isinstance(active, bool):
        raise ValueError(f"is_active must be a boolean, got {active!r}")

    rule_id = str(row["id"]) if row.get("id") is not None else None
    day_of_week = row.get("day_of_week")
    raw_date = row.get("date")

    # Empty strings come back from forms that never set the field
    if day_of_week == "":
        day_of_week = None
    if raw_date == "":
        raw_date = None

    if row.get("is_recurring"):
        if day_of_week is None:
            raise ValueError("recurring row without day_of_week")
        if raw_date is not None:
            raise ValueError("recurring row must not carry a date")
        return AvailabilityRule.recurring(
            provider_id=provider_id,
            day_of_week=int(day_of_week),
            start_time=start_time,
            end_time=end_time,
            active=active,
            rule_id=rule_id
        )

    if raw_date is None:
        raise ValueError("one-off row without date")
    if day_of_week is not None:
        raise ValueError("one-off row must not carry day_of_week")
    return AvailabilityRule.one_off(
        provider_id=provider_id,
        on_date=parse_calendar_date(str(raw_date)),
        start_time=start_time,
        end_time=end_time,
        active=active,
        rule_id=rule_id
    )


def rules_from_rows(rows: Iterable[Dict[str, Any]]) -> ValidationReport:
    """
    Map raw rows to rules without failing the batch.

    Rows that cannot be mapped are returned as warnings.
    """
    report = ValidationReport()

    for row in rows:
        try:
            report.rules.append(rule_from_row(row))
        except ValueError as exc:
            report.warnings.append(RuleWarning(reason=str(exc), row=dict(row)))

    return report
