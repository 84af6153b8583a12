"""Tests for notification gating and the current-bar filter."""

from datetime import datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from divergence_core.models.bar import Bar
from divergence_core.models.config import NotificationSettings
from divergence_core.models.signal import Divergence, DivergenceKind, Pivot, PivotKind
from divergence_core.notification import (
    SuppressReason,
    evaluate_notification,
    filter_current_bar,
    is_quiet_hours,
    should_notify,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_MS = 1_699_999_200_000
HOUR_MS = 3_600_000


def make_bars(count: int = 10, last_closed: bool = True) -> list[Bar]:
    bars = []
    for i in range(count):
        bars.append(
            Bar(
                open_time=BASE_MS + i * HOUR_MS,
                open=Decimal("150.00"),
                high=Decimal("150.20"),
                low=Decimal("149.80"),
                close=Decimal("150.10"),
                is_closed=last_closed or i < count - 1,
            )
        )
    return bars


def make_divergence(
    kind: DivergenceKind = DivergenceKind.BULLISH,
    start_index: int = 0,
    end_index: int = 7,
) -> Divergence:
    pivot_kind = PivotKind.LOW if kind == DivergenceKind.BULLISH else PivotKind.HIGH
    start = Pivot(
        index=start_index,
        time=(BASE_MS + start_index * HOUR_MS) // 1000,
        price=150.0,
        indicator_value=30.0,
        kind=pivot_kind,
    )
    end = Pivot(
        index=end_index,
        time=(BASE_MS + end_index * HOUR_MS) // 1000,
        price=149.5 if kind == DivergenceKind.BULLISH else 150.5,
        indicator_value=35.0 if kind == DivergenceKind.BULLISH else 25.0,
        kind=pivot_kind,
    )
    return Divergence(
        kind=kind,
        start_pivot=start,
        end_pivot=end,
        bar_distance=end_index - start_index,
    )


def overnight_settings(**kwargs) -> NotificationSettings:
    return NotificationSettings(quiet_hours_start="22:00", quiet_hours_end="06:00", **kwargs)


# ---------------------------------------------------------------------------
# Quiet hours
# ---------------------------------------------------------------------------

class TestQuietHours:
    def test_overnight_window_suppresses_late_evening(self):
        reason = evaluate_notification(overnight_settings(), make_divergence(), time(23, 30), 0)
        assert reason == SuppressReason.QUIET_HOURS

    def test_overnight_window_allows_morning(self):
        assert evaluate_notification(overnight_settings(), make_divergence(), time(10, 0), 0) is None

    @pytest.mark.parametrize(
        "now,expected",
        [
            (time(22, 0), True),
            (time(0, 0), True),
            (time(3, 15), True),
            (time(6, 0), True),
            (time(6, 0, 45), True),  # minute resolution
            (time(6, 1), False),
            (time(21, 59), False),
            (time(12, 0), False),
        ],
    )
    def test_overnight_boundaries(self, now, expected):
        assert is_quiet_hours(overnight_settings(), now) is expected

    @pytest.mark.parametrize(
        "now,expected",
        [
            (time(11, 59), False),
            (time(12, 0), True),
            (time(12, 30), True),
            (time(13, 0), True),
            (time(13, 1), False),
        ],
    )
    def test_same_day_window(self, now, expected):
        settings = NotificationSettings(quiet_hours_start="12:00", quiet_hours_end="13:00")
        assert is_quiet_hours(settings, now) is expected

    def test_no_window_configured(self):
        settings = NotificationSettings()
        assert not settings.has_quiet_hours
        assert is_quiet_hours(settings, time(23, 30)) is False

    def test_half_configured_window_ignored(self):
        settings = NotificationSettings(quiet_hours_start="22:00")
        assert is_quiet_hours(settings, time(23, 30)) is False

    def test_blank_strings_mean_unset(self):
        settings = NotificationSettings(quiet_hours_start="", quiet_hours_end=" ")
        assert settings.quiet_hours_start is None
        assert settings.quiet_hours_end is None

    def test_accepts_aware_datetime(self):
        now = datetime(2025, 6, 1, 23, 30, tzinfo=ZoneInfo("Asia/Tokyo"))
        reason = evaluate_notification(overnight_settings(), make_divergence(), now, 0)
        assert reason == SuppressReason.QUIET_HOURS


# ---------------------------------------------------------------------------
# Rule order and remaining rules
# ---------------------------------------------------------------------------

class TestGateRules:
    def test_disabled(self):
        settings = NotificationSettings(enabled=False)
        assert evaluate_notification(settings, make_divergence(), time(10, 0), 0) == SuppressReason.DISABLED

    def test_kind_disabled(self):
        settings = NotificationSettings(enabled_kinds={DivergenceKind.BEARISH})
        bullish = make_divergence(DivergenceKind.BULLISH)
        bearish = make_divergence(DivergenceKind.BEARISH)
        assert evaluate_notification(settings, bullish, time(10, 0), 0) == SuppressReason.KIND_DISABLED
        assert evaluate_notification(settings, bearish, time(10, 0), 0) is None

    def test_kinds_parsed_from_strings(self):
        settings = NotificationSettings(enabled_kinds=["bearish"])
        assert settings.enabled_kinds == {DivergenceKind.BEARISH}

    def test_rate_limit(self):
        settings = NotificationSettings(max_per_hour=5)
        div = make_divergence()
        assert evaluate_notification(settings, div, time(10, 0), 4) is None
        assert evaluate_notification(settings, div, time(10, 0), 5) == SuppressReason.RATE_LIMITED
        assert evaluate_notification(settings, div, time(10, 0), 9) == SuppressReason.RATE_LIMITED

    def test_zero_limit_blocks_everything(self):
        settings = NotificationSettings(max_per_hour=0)
        assert evaluate_notification(settings, make_divergence(), time(10, 0), 0) == SuppressReason.RATE_LIMITED

    def test_first_failing_rule_wins(self):
        settings = overnight_settings(enabled=False, max_per_hour=0)
        assert evaluate_notification(settings, make_divergence(), time(23, 30), 10) == SuppressReason.DISABLED

        settings = overnight_settings(enabled_kinds={DivergenceKind.BEARISH}, max_per_hour=0)
        assert evaluate_notification(settings, make_divergence(), time(23, 30), 10) == SuppressReason.KIND_DISABLED

        settings = overnight_settings(max_per_hour=0)
        assert evaluate_notification(settings, make_divergence(), time(23, 30), 10) == SuppressReason.QUIET_HOURS

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            NotificationSettings(max_per_hour=-1)

    def test_should_notify(self):
        settings = overnight_settings()
        div = make_divergence()
        assert should_notify(settings, div, time(10, 0), 0) is True
        assert should_notify(settings, div, time(23, 30), 0) is False

    def test_is_monitored(self):
        settings = NotificationSettings(monitored_pairs=["USD_JPY", "EUR_USD"], monitored_intervals=["1hour"])
        assert settings.is_monitored("EUR_USD", "1hour")
        assert not settings.is_monitored("GBP_USD", "1hour")
        assert not settings.is_monitored("USD_JPY", "15min")


# ---------------------------------------------------------------------------
# Current-bar filter
# ---------------------------------------------------------------------------

class TestFilterCurrentBar:
    def test_keeps_only_latest_bar(self):
        bars = make_bars(10)
        current = make_divergence(end_index=9)
        old = make_divergence(end_index=7)
        assert filter_current_bar([old, current], bars) == [current]

    def test_ignores_unclosed_last_bar(self):
        bars = make_bars(10, last_closed=False)
        on_forming = make_divergence(end_index=9)
        on_closed = make_divergence(end_index=8)
        assert filter_current_bar([on_forming, on_closed], bars) == [on_closed]

    def test_confirmation_offset(self):
        bars = make_bars(10)
        confirmed = make_divergence(end_index=7)
        assert filter_current_bar([confirmed], bars, confirmation_bars=2) == [confirmed]
        assert filter_current_bar([confirmed], bars) == []

    def test_offset_beyond_series(self):
        bars = make_bars(3)
        assert filter_current_bar([make_divergence(end_index=0)], bars, confirmation_bars=5) == []

    def test_empty_inputs(self):
        assert filter_current_bar([], make_bars(5)) == []
        assert filter_current_bar([make_divergence()], []) == []

    def test_negative_offset_raises(self):
        with pytest.raises(ValueError):
            filter_current_bar([], make_bars(5), confirmation_bars=-1)
