"""Notification gating for detected divergences.

Pure decisions only; delivery, persistence of the notification log and the
lookup of the recent-success count belong to the caller.

Rules, evaluated in order (first failing rule suppresses):
1. Notifications enabled and divergence kind enabled
2. Not inside quiet hours (window may wrap past midnight)
3. Fewer than max_per_hour successful notifications in the last hour

The currency/interval allow-list is checked by the caller with
NotificationSettings.is_monitored() before invoking the gate.

The rate-limit count comes from an external log, so two concurrent
monitor runs can both pass rule 3. Strict at-most-once delivery has to be
enforced by the store (unique constraint or atomic increment).
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from enum import Enum
from typing import Sequence

from divergence_core.models.bar import Bar
from divergence_core.models.config import NotificationSettings
from divergence_core.models.signal import Divergence

logger = logging.getLogger(__name__)


class SuppressReason(str, Enum):
    """Why a divergence notification was suppressed."""

    DISABLED = "disabled"
    KIND_DISABLED = "kind_disabled"
    QUIET_HOURS = "quiet_hours"
    RATE_LIMITED = "rate_limited"


def is_quiet_hours(settings: NotificationSettings, now: time) -> bool:
    """Check whether ``now`` (local time of day) falls in the quiet window.

    Both bounds are inclusive and compared at minute resolution.
    """
    if not settings.has_quiet_hours:
        return False

    start = settings.quiet_hours_start
    end = settings.quiet_hours_end
    current = now.replace(second=0, microsecond=0, tzinfo=None)

    if start <= end:
        return start <= current <= end
    # Overnight window, e.g. 22:00 -> 06:00
    return current >= start or current <= end


def evaluate_notification(
    settings: NotificationSettings,
    divergence: Divergence,
    now: time | datetime,
    recent_success_count: int,
) -> SuppressReason | None:
    """
    Decide whether a divergence may be announced.

    Args:
        settings: The user's notification settings
        divergence: Candidate divergence
        now: Current local time (a datetime is reduced to its time of day)
        recent_success_count: Successful notifications in the last hour

    Returns:
        None if the notification is allowed, otherwise the first failing rule
    """
    if isinstance(now, datetime):
        now = now.time()

    if not settings.enabled:
        return SuppressReason.DISABLED
    if divergence.kind not in settings.enabled_kinds:
        return SuppressReason.KIND_DISABLED
    if is_quiet_hours(settings, now):
        return SuppressReason.QUIET_HOURS
    if recent_success_count >= settings.max_per_hour:
        return SuppressReason.RATE_LIMITED
    return None


def should_notify(
    settings: NotificationSettings,
    divergence: Divergence,
    now: time | datetime,
    recent_success_count: int,
) -> bool:
    """Boolean form of evaluate_notification()."""
    reason = evaluate_notification(settings, divergence, now, recent_success_count)
    if reason is not None:
        logger.debug(f"Notification suppressed for {divergence.id}: {reason.value}")
        return False
    return True


def filter_current_bar(
    divergences: Sequence[Divergence],
    bars: Sequence[Bar],
    confirmation_bars: int = 0,
) -> list[Divergence]:
    """
    Keep only divergences that completed on the most recently closed bar.

    Periodic re-scans see the same historical divergences every time; this
    filter stops them from being announced again.

    Args:
        divergences: Detected divergences
        bars: The bar series they were detected on
        confirmation_bars: Bars between the ending pivot and the bar that
            confirms it (typically lookback_right); 0 compares the ending
            pivot with the latest closed bar itself

    Returns:
        Divergences whose ending pivot time matches the target bar
    """
    if confirmation_bars < 0:
        raise ValueError(f"confirmation_bars must be >= 0, got {confirmation_bars}")

    latest = next(
        (i for i in range(len(bars) - 1, -1, -1) if bars[i].is_closed), None
    )
    if latest is None:
        return []

    target = latest - confirmation_bars
    if target < 0:
        return []

    target_time = bars[target].time
    current = [d for d in divergences if d.end_time == target_time]
    if current:
        logger.info(
            f"{len(current)} of {len(divergences)} divergences completed on the current bar"
        )
    return current
