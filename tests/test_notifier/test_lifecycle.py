"""
Tests for lifecycle classification.

Days are whole calendar days between today and the expiry date; the time of
day never changes the result.
"""

from datetime import date, datetime, timezone

import pytest

from notifier.lifecycle import LifecycleState, classify, days_until_expiry, to_calendar_date


TODAY = date(2025, 6, 1)


class TestClassify:
    """Tests for classify()."""

    def test_no_expiry_date(self):
        result = classify(None, TODAY, 3)

        assert result.state == LifecycleState.NO_EXPIRY
        assert result.days_until_expiry is None

    def test_expired_yesterday(self):
        result = classify(date(2025, 5, 31), TODAY, 3)

        assert result.state == LifecycleState.EXPIRED
        assert result.days_until_expiry == -1

    def test_expires_today_is_upcoming(self):
        """An item is not expired on its expiry date itself."""
        result = classify(TODAY, TODAY, 3)

        assert result.state == LifecycleState.UPCOMING_EXPIRY
        assert result.days_until_expiry == 0

    def test_lead_time_boundary_is_inclusive(self):
        result = classify(date(2025, 6, 4), TODAY, 3)

        assert result.state == LifecycleState.UPCOMING_EXPIRY
        assert result.days_until_expiry == 3

    def test_beyond_lead_time_not_due(self):
        result = classify(date(2025, 6, 5), TODAY, 3)

        assert result.state == LifecycleState.NOT_DUE
        assert result.days_until_expiry == 4

    def test_zero_lead_time(self):
        assert classify(TODAY, TODAY, 0).state == LifecycleState.UPCOMING_EXPIRY
        assert classify(date(2025, 6, 2), TODAY, 0).state == LifecycleState.NOT_DUE

    @pytest.mark.parametrize("hour", [0, 12, 23])
    def test_time_of_day_is_ignored(self, hour):
        now = datetime(2025, 6, 1, hour, 59, tzinfo=timezone.utc)
        result = classify(date(2025, 6, 2), now, 3)

        assert result.days_until_expiry == 1

    def test_long_expired(self):
        result = classify(date(2024, 1, 1), TODAY, 3)
        assert result.state == LifecycleState.EXPIRED


class TestDateHelpers:

    def test_to_calendar_date_from_datetime(self):
        now = datetime(2025, 6, 1, 18, 30, tzinfo=timezone.utc)
        assert to_calendar_date(now) == TODAY

    def test_to_calendar_date_passes_dates_through(self):
        assert to_calendar_date(TODAY) == TODAY

    def test_days_until_expiry(self):
        assert days_until_expiry(date(2025, 6, 11), TODAY) == 10
        assert days_until_expiry(date(2025, 5, 22), TODAY) == -10
