"""Tests for request validation and shared helpers."""

from datetime import date

import pytest

from conftest import jan
from shareholder_tracker.analytics.common import (
    ZERO_BASE_PERCENT,
    Granularity,
    bucket_key,
    mean_int,
    percent_change,
    to_jsonable,
)
from shareholder_tracker.analytics.models import ExitStatus, Period
from shareholder_tracker.analytics.requests import (
    AnalyticsRequest,
    AnalyticsValidationError,
    parse_date,
    parse_optional_date,
)


class TestPercentChange:
    """Tests for percent_change."""

    @pytest.mark.parametrize(
        ("base", "change", "expected"),
        [
            (100, 50, "50.00"),
            (300, -300, "-100.00"),
            (3, 1, "33.33"),
            (0, 500, ZERO_BASE_PERCENT),
            (0, 0, "0.00"),
        ],
    )
    def test_values(self, base: int, change: int, expected: str) -> None:
        assert percent_change(base, change) == expected


class TestHelpers:
    """Tests for bucketing and rounding helpers."""

    def test_bucket_key(self) -> None:
        assert bucket_key(jan(5), Granularity.DAILY) == "2024-01-05"
        assert bucket_key(jan(5), Granularity.MONTHLY) == "2024-01"

    def test_mean_int_rounds_half_up(self) -> None:
        assert mean_int(5, 2) == 3
        assert mean_int(130, 2) == 65
        assert mean_int(10, 0) == 0

    def test_to_jsonable(self) -> None:
        data = to_jsonable(Period(start=jan(1), end=jan(31), granularity=Granularity.MONTHLY))
        assert data == {"start": "2024-01-01", "end": "2024-01-31", "granularity": "monthly"}
        assert to_jsonable({ExitStatus.FULL_EXIT: (jan(1),)}) == {"Full Exit": ["2024-01-01"]}

    def test_result_to_dict(self) -> None:
        period = Period(start=jan(1), end=jan(31), granularity=Granularity.MONTHLY)
        assert period.to_dict() == {"start": "2024-01-01", "end": "2024-01-31", "granularity": "monthly"}


class TestAnalyticsRequest:
    """Tests for AnalyticsRequest validation."""

    def test_from_params(self) -> None:
        request = AnalyticsRequest.from_params(
            start_date="2024-01-01",
            end_date="2024-01-31",
            granularity="monthly",
            single_date_filter="2024-01-15",
            correlation_threshold="0.5",
        )
        assert request.start_date == jan(1)
        assert request.granularity is Granularity.MONTHLY
        assert request.single_date_filter == jan(15)
        assert request.correlation_threshold == 0.5

    def test_defaults(self) -> None:
        request = AnalyticsRequest.from_params(start_date="2024-01-01", end_date="2024-01-01")
        assert request.granularity is Granularity.DAILY
        assert request.single_date_filter is None
        assert request.correlation_threshold is None

    @pytest.mark.parametrize(
        "params",
        [
            {"start_date": None, "end_date": "2024-01-31"},
            {"start_date": "2024-01-01", "end_date": ""},
            {"start_date": "01/02/2024", "end_date": "2024-01-31"},
            {"start_date": "2024-02-01", "end_date": "2024-01-31"},
            {"start_date": "2024-01-01", "end_date": "2024-01-31", "granularity": "weekly"},
            {"start_date": "2024-01-01", "end_date": "2024-01-31", "correlation_threshold": "high"},
            {"start_date": "2024-01-01", "end_date": "2024-01-31", "correlation_threshold": 1.5},
            {"start_date": "2024-01-01", "end_date": "2024-01-31", "single_date_filter": "2024-03-01"},
        ],
    )
    def test_invalid_params(self, params: dict) -> None:
        with pytest.raises(AnalyticsValidationError):
            AnalyticsRequest.from_params(**params)

    def test_validation_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            AnalyticsRequest(start_date=jan(2), end_date=jan(1))

    def test_parse_optional_date(self) -> None:
        assert parse_optional_date(None, field_name="x") is None
        assert parse_optional_date("  ", field_name="x") is None
        assert parse_optional_date("2024-01-01", field_name="x") == jan(1)

    def test_parse_date_required(self) -> None:
        assert parse_date(date(2024, 1, 1), field_name="x") == jan(1)
        with pytest.raises(AnalyticsValidationError, match="x is required"):
            parse_date(None, field_name="x")
        with pytest.raises(AnalyticsValidationError, match="ISO date"):
            parse_date("01/02/2024", field_name="x")
