from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from directory.services.models import Badge, LifecycleStatus, Plan, coerce_enum, coerce_timestamp

# Highest tier wins; badge weights never sum.
BADGE_TIERS: tuple[tuple[Badge, int], ...] = (
    (Badge.GOV_APPROVED, 300),
    (Badge.EMERGENCY_READY, 200),
    (Badge.VERIFIED, 100),
)
PREMIUM_TRIAL_BONUS = 50
ACTIVE_LIFECYCLE_BONUS = 10

_SECONDS_PER_DAY = 86400


def compute_trust_score(
    *,
    badges: Iterable[Badge | str],
    plan: Plan | str,
    trial_end_at: datetime | None,
    lifecycle_status: LifecycleStatus | str,
    now: datetime,
) -> int:
    return (
        badge_component(badges)
        + premium_component(plan=plan, trial_end_at=trial_end_at, now=now)
        + lifecycle_component(lifecycle_status)
    )


def badge_component(badges: Iterable[Badge | str]) -> int:
    held = {coerce_enum(Badge, badge) for badge in badges}
    for badge, weight in BADGE_TIERS:
        if badge in held:
            return weight
    return 0


def premium_component(*, plan: Plan | str, trial_end_at: datetime | None, now: datetime) -> int:
    return PREMIUM_TRIAL_BONUS if is_premium_active(plan=plan, trial_end_at=trial_end_at, now=now) else 0


def lifecycle_component(lifecycle_status: LifecycleStatus | str) -> int:
    if coerce_enum(LifecycleStatus, lifecycle_status) is LifecycleStatus.ACTIVE:
        return ACTIVE_LIFECYCLE_BONUS
    return 0


def is_premium_active(*, plan: Plan | str, trial_end_at: datetime | None, now: datetime) -> bool:
    if coerce_enum(Plan, plan) is not Plan.PREMIUM:
        return False
    return _trial_live(trial_end_at, now)


def trial_days_left(trial_end_at: datetime | None, now: datetime) -> int:
    """Whole days remaining in the trial window, rounding partial days up."""
    if not _trial_live(trial_end_at, now):
        return 0
    remaining = (_utc(trial_end_at) - _utc(now)).total_seconds()
    return math.ceil(remaining / _SECONDS_PER_DAY)


def _trial_live(trial_end_at: datetime | None, now: datetime) -> bool:
    if trial_end_at is None:
        return False
    return _utc(trial_end_at) > _utc(now)


def _utc(value: Any) -> datetime:
    normalized = coerce_timestamp(value)
    assert normalized is not None
    return normalized
