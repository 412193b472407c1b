"""Analytics request parameters and validation.

Requests are validated before any snapshot is read: a request that fails
validation never reaches the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from shareholder_tracker.analytics.common import Granularity


class AnalyticsValidationError(ValueError):
    """Raised when analytics request parameters are missing or invalid."""


def _is_missing(value: str | date | None) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_optional_date(value: str | date | None, *, field_name: str) -> date | None:
    """Like ``parse_date`` but a missing value yields None."""
    if _is_missing(value):
        return None
    return parse_date(value, field_name=field_name)


def parse_date(value: str | date | None, *, field_name: str) -> date:
    """Parse a required ISO ``YYYY-MM-DD`` date parameter.

    Raises:
        AnalyticsValidationError: If the value is missing or malformed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise AnalyticsValidationError(f"{field_name} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as exc:
        raise AnalyticsValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


@dataclass(frozen=True)
class AnalyticsRequest:
    """Parameters shared by every analytics feature.

    Attributes:
        start_date: First date of the period (inclusive).
        end_date: Last date of the period (inclusive).
        granularity: Trend bucketing (daily or monthly).
        single_date_filter: Restrict buyer/seller lists to events on this date.
        correlation_threshold: Minimum pair correlation; None means the
            configured default.
    """

    start_date: date
    end_date: date
    granularity: Granularity = Granularity.DAILY
    single_date_filter: date | None = None
    correlation_threshold: float | None = None

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise AnalyticsValidationError(
                f"end_date {self.end_date.isoformat()} is before start_date {self.start_date.isoformat()}"
            )
        if self.correlation_threshold is not None and not 0.0 <= self.correlation_threshold <= 1.0:
            raise AnalyticsValidationError("correlation_threshold must be within [0, 1]")
        if self.single_date_filter is not None and not (
            self.start_date <= self.single_date_filter <= self.end_date
        ):
            raise AnalyticsValidationError("single_date_filter must fall within the requested period")

    @classmethod
    def from_params(
        cls,
        *,
        start_date: str | date | None,
        end_date: str | date | None,
        granularity: str | Granularity | None = None,
        single_date_filter: str | date | None = None,
        correlation_threshold: str | float | None = None,
    ) -> AnalyticsRequest:
        """Build a request from raw (e.g. query-string) parameters."""
        start = parse_date(start_date, field_name="start_date")
        end = parse_date(end_date, field_name="end_date")

        try:
            gran = Granularity(granularity) if granularity else Granularity.DAILY
        except ValueError as exc:
            raise AnalyticsValidationError(
                f"granularity must be one of {[g.value for g in Granularity]}, got {granularity!r}"
            ) from exc

        threshold: float | None = None
        if correlation_threshold is not None and correlation_threshold != "":
            try:
                threshold = float(correlation_threshold)
            except (TypeError, ValueError) as exc:
                raise AnalyticsValidationError(
                    f"correlation_threshold must be a number, got {correlation_threshold!r}"
                ) from exc

        return cls(
            start_date=start,
            end_date=end,
            granularity=gran,
            single_date_filter=parse_optional_date(single_date_filter, field_name="single_date_filter"),
            correlation_threshold=threshold,
        )
