from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from directory.services.errors import NotFoundError
from directory.services.lifecycle import plan_lifecycle_changes
from directory.services.models import ActivityEventType, Badge, DirectorySnapshot, LifecycleStatus
from directory.services.profiles import ProfileUpdate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    """Provider store backed by plain row dicts; used by tests and local bootstrap."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.clock = clock
        self.providers: dict[int, dict[str, Any]] = {}
        self.areas: dict[int, dict[str, Any]] = {}
        self.categories: dict[int, dict[str, Any]] = {}
        self.provider_areas: list[dict[str, Any]] = []
        self.provider_categories: list[dict[str, Any]] = []
        self.provider_badges: list[dict[str, Any]] = []
        self.activity_events: list[dict[str, Any]] = []
        self._next_provider_id = 1
        self._next_event_id = 1

    def add_provider(self, **fields: Any) -> dict[str, Any]:
        now = self.clock()
        provider_id = int(fields.pop("id", self._next_provider_id))
        self._next_provider_id = max(self._next_provider_id, provider_id + 1)
        row: dict[str, Any] = {
            "id": provider_id,
            "name": f"Provider {provider_id}",
            "phone": "340-555-0100",
            "island": "STT",
            "status": "OPEN_NOW",
            "plan": "FREE",
            "trial_end_at": None,
            "lifecycle_status": "ACTIVE",
            "status_last_updated_at": now,
            "created_at": now,
        }
        row.update(fields)
        self.providers[provider_id] = row
        return row

    def add_area(self, *, id: int, name: str, island: str) -> dict[str, Any]:
        row = {"id": id, "name": name, "island": island}
        self.areas[id] = row
        return row

    def add_category(self, *, id: int, name: str) -> dict[str, Any]:
        row = {"id": id, "name": name}
        self.categories[id] = row
        return row

    def link_area(self, provider_id: int, area_id: int) -> None:
        self.provider_areas.append({"provider_id": provider_id, "area_id": area_id})

    def link_category(self, provider_id: int, category_id: int) -> None:
        self.provider_categories.append({"provider_id": provider_id, "category_id": category_id})

    def assign_badge(self, provider_id: int, badge: str, *, assigned_by: str | None = None, notes: str | None = None) -> None:
        if any(row["provider_id"] == provider_id and row["badge"] == badge for row in self.provider_badges):
            return
        self.provider_badges.append(
            {
                "provider_id": provider_id,
                "badge": badge,
                "assigned_by": assigned_by,
                "notes": notes,
                "created_at": self.clock(),
            }
        )

    def log_activity(self, provider_id: int, event_type: str, *, created_at: datetime | None = None) -> dict[str, Any]:
        row = {
            "id": self._next_event_id,
            "provider_id": provider_id,
            "event_type": event_type,
            "created_at": created_at or self.clock(),
        }
        self._next_event_id += 1
        self.activity_events.append(row)
        return row

    async def close(self) -> None:
        return None

    async def fetch_snapshot(self, *, provider_id: int | None = None) -> DirectorySnapshot:
        def owned(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
            return [dict(row) for row in rows if provider_id is None or row["provider_id"] == provider_id]

        providers = [
            dict(row) for row in self.providers.values() if provider_id is None or row["id"] == provider_id
        ]
        return DirectorySnapshot(
            taken_at=self.clock(),
            providers=providers,
            provider_badges=owned(self.provider_badges),
            provider_categories=owned(self.provider_categories),
            provider_areas=owned(self.provider_areas),
            activity_events=owned(self.activity_events),
            areas=[dict(row) for row in self.areas.values()],
            categories=[dict(row) for row in self.categories.values()],
        )

    async def list_areas(self, *, island: str) -> list[dict[str, Any]]:
        rows = [dict(row) for row in self.areas.values() if row["island"] == island]
        return sorted(rows, key=lambda row: (row["name"], row["id"]))

    async def update_status(self, *, provider_id: int, status: str) -> None:
        row = self._require_provider(provider_id)
        row["status"] = status
        row["status_last_updated_at"] = self.clock()
        self.log_activity(provider_id, ActivityEventType.STATUS_UPDATED.value)

    async def update_profile(self, *, provider_id: int, update: ProfileUpdate) -> None:
        row = self._require_provider(provider_id)
        update.check_against(row)
        row.update(update.fields)

        if update.category_ids is not None:
            self.provider_categories = [link for link in self.provider_categories if link["provider_id"] != provider_id]
            for category_id in update.category_ids:
                if category_id in self.categories:
                    self.link_category(provider_id, category_id)

        self.provider_areas = [link for link in self.provider_areas if link["provider_id"] != provider_id]
        for area_id in update.area_ids:
            area = self.areas.get(area_id)
            if area is not None and area["island"] == row["island"]:
                self.link_area(provider_id, area_id)

        self.log_activity(provider_id, ActivityEventType.PROFILE_UPDATED.value)

    async def set_verified(self, *, provider_id: int, verified: bool, assigned_by: str | None = None) -> None:
        row = self._require_provider(provider_id)
        if verified:
            self.assign_badge(provider_id, Badge.VERIFIED.value, assigned_by=assigned_by)
        else:
            self.provider_badges = [
                badge
                for badge in self.provider_badges
                if not (badge["provider_id"] == provider_id and badge["badge"] == Badge.VERIFIED.value)
            ]
        row["status_last_updated_at"] = self.clock()
        self.log_activity(provider_id, ActivityEventType.VERIFIED.value)

    async def toggle_archived(self, *, provider_id: int) -> str:
        row = self._require_provider(provider_id)
        archived = row["lifecycle_status"] == LifecycleStatus.ARCHIVED.value
        new_status = LifecycleStatus.ACTIVE.value if archived else LifecycleStatus.ARCHIVED.value
        row["lifecycle_status"] = new_status
        row["status_last_updated_at"] = self.clock()
        self.log_activity(provider_id, ActivityEventType.ARCHIVED.value)
        return new_status

    async def recompute_lifecycle(self, *, active_window_days: int, inactive_window_days: int) -> int:
        now = self.clock()
        changes = plan_lifecycle_changes(
            providers=list(self.providers.values()),
            activity_events=self.activity_events,
            now=now,
            active_window_days=active_window_days,
            inactive_window_days=inactive_window_days,
        )
        for change in changes:
            row = self.providers[change.provider_id]
            row["lifecycle_status"] = change.to_status.value
            row["status_last_updated_at"] = now
        return len(changes)

    def _require_provider(self, provider_id: int) -> dict[str, Any]:
        row = self.providers.get(provider_id)
        if row is None:
            raise NotFoundError("provider not found")
        return row
