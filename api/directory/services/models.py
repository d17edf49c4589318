from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from directory.services.errors import DirectoryValidationError


class Island(str, Enum):
    STT = "STT"
    STJ = "STJ"
    STX = "STX"


class AvailabilityStatus(str, Enum):
    OPEN_NOW = "OPEN_NOW"
    BUSY_LIMITED = "BUSY_LIMITED"
    NOT_TAKING_WORK = "NOT_TAKING_WORK"


class Plan(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class LifecycleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class Badge(str, Enum):
    VERIFIED = "VERIFIED"
    GOV_APPROVED = "GOV_APPROVED"
    EMERGENCY_READY = "EMERGENCY_READY"


class ActivityEventType(str, Enum):
    PROFILE_UPDATED = "PROFILE_UPDATED"
    STATUS_UPDATED = "STATUS_UPDATED"
    VERIFIED = "VERIFIED"
    ARCHIVED = "ARCHIVED"


class ContactMethod(str, Enum):
    CALL = "CALL"
    WHATSAPP = "WHATSAPP"
    SMS = "SMS"


E = TypeVar("E", bound=Enum)

_INVALID_CODES: dict[type[Enum], str] = {
    Island: "INVALID_ISLAND",
    AvailabilityStatus: "INVALID_STATUS",
    Plan: "INVALID_PLAN",
    LifecycleStatus: "INVALID_LIFECYCLE_STATUS",
    Badge: "INVALID_BADGE",
    ActivityEventType: "INVALID_EVENT_TYPE",
    ContactMethod: "INVALID_CONTACT_METHOD",
}

_FIELD_NAMES: dict[type[Enum], str] = {
    Island: "Island",
    AvailabilityStatus: "Status",
    Plan: "Plan",
    LifecycleStatus: "Lifecycle status",
    Badge: "Badge",
    ActivityEventType: "Event type",
    ContactMethod: "Preferred contact method",
}


def coerce_enum(enum_cls: type[E], value: Any) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise DirectoryValidationError(
        _INVALID_CODES.get(enum_cls, "INVALID_VALUE"),
        f"{_FIELD_NAMES.get(enum_cls, enum_cls.__name__)} must be one of: {allowed}",
    )


def coerce_optional_enum(enum_cls: type[E], value: Any) -> E | None:
    if value is None:
        return None
    return coerce_enum(enum_cls, value)


def coerce_timestamp(value: Any) -> datetime | None:
    """Normalize a stored timestamp to an aware UTC datetime; naive values are read as UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise DirectoryValidationError("INVALID_TIMESTAMP", f"Invalid timestamp: {raw!r}") from exc
    if not isinstance(value, datetime):
        raise DirectoryValidationError("INVALID_TIMESTAMP", f"Invalid timestamp type: {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class Area:
    id: int
    name: str
    island: Island


@dataclass(slots=True)
class Category:
    id: int
    name: str


@dataclass(slots=True)
class Provider:
    id: int
    name: str
    phone: str
    island: Island
    status: AvailabilityStatus
    plan: Plan
    lifecycle_status: LifecycleStatus
    status_last_updated_at: datetime
    created_at: datetime
    trial_end_at: datetime | None = None
    whatsapp: str | None = None
    contact_call_enabled: bool = True
    contact_whatsapp_enabled: bool = True
    contact_sms_enabled: bool = True
    preferred_contact_method: str | None = None
    typical_hours: str | None = None
    emergency_calls_accepted: bool = False


@dataclass(slots=True)
class ProviderLinks:
    """Category and area ids per provider, indexed once per snapshot."""

    category_ids: dict[int, set[int]] = field(default_factory=dict)
    area_ids: dict[int, set[int]] = field(default_factory=dict)

    def has_category(self, provider_id: int, category_id: int) -> bool:
        return category_id in self.category_ids.get(provider_id, ())

    def has_area(self, provider_id: int, area_id: int) -> bool:
        return area_id in self.area_ids.get(provider_id, ())


@dataclass(slots=True)
class DirectorySnapshot:
    """Raw rows read from the provider store in one consistent read view."""

    taken_at: datetime
    providers: list[dict[str, Any]]
    provider_badges: list[dict[str, Any]] = field(default_factory=list)
    provider_categories: list[dict[str, Any]] = field(default_factory=list)
    provider_areas: list[dict[str, Any]] = field(default_factory=list)
    activity_events: list[dict[str, Any]] = field(default_factory=list)
    areas: list[dict[str, Any]] = field(default_factory=list)
    categories: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class RankedProvider:
    provider: Provider
    badges: set[Badge]
    trust_score: int
    last_active_at: datetime | None
    is_premium: bool
    trial_days_left: int
    areas: list[Area] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        provider = self.provider
        return {
            "id": provider.id,
            "name": provider.name,
            "phone": provider.phone,
            "whatsapp": provider.whatsapp,
            "island": provider.island.value,
            "status": provider.status.value,
            "plan": provider.plan.value,
            "trial_end_at": provider.trial_end_at,
            "lifecycle_status": provider.lifecycle_status.value,
            "status_last_updated_at": provider.status_last_updated_at,
            "created_at": provider.created_at,
            "contact_call_enabled": provider.contact_call_enabled,
            "contact_whatsapp_enabled": provider.contact_whatsapp_enabled,
            "contact_sms_enabled": provider.contact_sms_enabled,
            "preferred_contact_method": provider.preferred_contact_method,
            "typical_hours": provider.typical_hours,
            "emergency_calls_accepted": provider.emergency_calls_accepted,
            "badges": sorted(badge.value for badge in self.badges),
            "trust_score": self.trust_score,
            "last_active_at": self.last_active_at,
            "is_premium": self.is_premium,
            "trial_days_left": self.trial_days_left,
            "areas": [{"id": area.id, "name": area.name, "island": area.island.value} for area in self.areas],
            "categories": [{"id": category.id, "name": category.name} for category in self.categories],
        }


def provider_from_row(row: dict[str, Any]) -> Provider:
    status_last_updated_at = coerce_timestamp(row.get("status_last_updated_at"))
    created_at = coerce_timestamp(row.get("created_at"))
    if created_at is None:
        raise DirectoryValidationError("INVALID_PROVIDER", f"provider {row.get('id')} is missing created_at")
    return Provider(
        id=int(row["id"]),
        name=row["name"],
        phone=row["phone"],
        island=coerce_enum(Island, row.get("island")),
        status=coerce_enum(AvailabilityStatus, row.get("status")),
        plan=coerce_enum(Plan, row.get("plan")),
        lifecycle_status=coerce_enum(LifecycleStatus, row.get("lifecycle_status")),
        status_last_updated_at=status_last_updated_at or created_at,
        created_at=created_at,
        trial_end_at=coerce_timestamp(row.get("trial_end_at")),
        whatsapp=row.get("whatsapp"),
        contact_call_enabled=bool(row.get("contact_call_enabled", True)),
        contact_whatsapp_enabled=bool(row.get("contact_whatsapp_enabled", True)),
        contact_sms_enabled=bool(row.get("contact_sms_enabled", True)),
        preferred_contact_method=row.get("preferred_contact_method"),
        typical_hours=row.get("typical_hours"),
        emergency_calls_accepted=bool(row.get("emergency_calls_accepted", False)),
    )


def area_from_row(row: dict[str, Any]) -> Area:
    return Area(id=int(row["id"]), name=row["name"], island=coerce_enum(Island, row.get("island")))


def category_from_row(row: dict[str, Any]) -> Category:
    return Category(id=int(row["id"]), name=row["name"])


def index_badges(rows: list[dict[str, Any]]) -> dict[int, set[Badge]]:
    badges: dict[int, set[Badge]] = {}
    for row in rows:
        badges.setdefault(int(row["provider_id"]), set()).add(coerce_enum(Badge, row.get("badge")))
    return badges


def index_links(snapshot: DirectorySnapshot) -> ProviderLinks:
    links = ProviderLinks()
    for row in snapshot.provider_categories:
        links.category_ids.setdefault(int(row["provider_id"]), set()).add(int(row["category_id"]))
    for row in snapshot.provider_areas:
        links.area_ids.setdefault(int(row["provider_id"]), set()).add(int(row["area_id"]))
    return links
