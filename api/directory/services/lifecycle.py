from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from directory.services.activity import index_last_active
from directory.services.models import LifecycleStatus, coerce_enum


@dataclass(slots=True)
class LifecycleChange:
    provider_id: int
    from_status: LifecycleStatus
    to_status: LifecycleStatus
    last_active_at: datetime | None


def derive_lifecycle_status(
    last_active_at: datetime | None,
    *,
    now: datetime,
    active_window_days: int = 30,
    inactive_window_days: int = 90,
) -> LifecycleStatus:
    active_window_days = max(1, active_window_days)
    inactive_window_days = max(active_window_days, inactive_window_days)

    if last_active_at is None:
        return LifecycleStatus.ARCHIVED
    if last_active_at >= now - timedelta(days=active_window_days):
        return LifecycleStatus.ACTIVE
    if last_active_at >= now - timedelta(days=inactive_window_days):
        return LifecycleStatus.INACTIVE
    return LifecycleStatus.ARCHIVED


def plan_lifecycle_changes(
    *,
    providers: list[dict[str, Any]],
    activity_events: list[dict[str, Any]],
    now: datetime,
    active_window_days: int = 30,
    inactive_window_days: int = 90,
) -> list[LifecycleChange]:
    """Providers whose stored lifecycle status differs from the one their activity implies."""
    latest = index_last_active(activity_events)
    changes: list[LifecycleChange] = []
    for row in providers:
        provider_id = int(row["id"])
        current = coerce_enum(LifecycleStatus, row.get("lifecycle_status"))
        last_active = latest.get(provider_id)
        target = derive_lifecycle_status(
            last_active,
            now=now,
            active_window_days=active_window_days,
            inactive_window_days=inactive_window_days,
        )
        if target is not current:
            changes.append(
                LifecycleChange(
                    provider_id=provider_id,
                    from_status=current,
                    to_status=target,
                    last_active_at=last_active,
                )
            )
    return sorted(changes, key=lambda change: change.provider_id)
