from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from directory.services.models import (
    AvailabilityStatus,
    Badge,
    Island,
    LifecycleStatus,
    Provider,
    ProviderLinks,
    coerce_optional_enum,
)

ProviderPredicate = Callable[[Provider], bool]


@dataclass(slots=True, frozen=True)
class ProviderFilters:
    """Directory filters; island and status strings are coerced on construction."""

    island: Island | None = None
    area_id: int | None = None
    category_id: int | None = None
    status: AvailabilityStatus | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "island", coerce_optional_enum(Island, self.island))
        object.__setattr__(self, "status", coerce_optional_enum(AvailabilityStatus, self.status))


@dataclass(slots=True, frozen=True)
class AdminProviderFilters:
    island: Island | None = None
    area_id: int | None = None
    category_id: int | None = None
    status: AvailabilityStatus | None = None
    verified: bool | None = None
    gov_approved: bool | None = None
    archived: bool | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "island", coerce_optional_enum(Island, self.island))
        object.__setattr__(self, "status", coerce_optional_enum(AvailabilityStatus, self.status))


def build_predicate(filters: ProviderFilters, links: ProviderLinks) -> ProviderPredicate:
    """Directory predicate: archived providers are always rejected, present filters are AND-ed."""
    conditions: list[ProviderPredicate] = [_not_archived]
    conditions.extend(
        _optional_conditions(
            island=filters.island,
            area_id=filters.area_id,
            category_id=filters.category_id,
            status=filters.status,
            links=links,
        )
    )
    return _all_of(conditions)


def build_admin_predicate(
    filters: AdminProviderFilters,
    links: ProviderLinks,
    badges: dict[int, set[Badge]],
) -> ProviderPredicate:
    conditions = _optional_conditions(
        island=filters.island,
        area_id=filters.area_id,
        category_id=filters.category_id,
        status=filters.status,
        links=links,
    )
    if filters.verified is not None:
        conditions.append(_badge_condition(Badge.VERIFIED, filters.verified, badges))
    if filters.gov_approved is not None:
        conditions.append(_badge_condition(Badge.GOV_APPROVED, filters.gov_approved, badges))
    if filters.archived is not None:
        wanted = filters.archived
        conditions.append(lambda provider: (provider.lifecycle_status is LifecycleStatus.ARCHIVED) == wanted)
    return _all_of(conditions)


def _optional_conditions(
    *,
    island: Island | None,
    area_id: int | None,
    category_id: int | None,
    status: AvailabilityStatus | None,
    links: ProviderLinks,
) -> list[ProviderPredicate]:
    conditions: list[ProviderPredicate] = []
    if island is not None:
        conditions.append(lambda provider: provider.island == island)
    if area_id is not None:
        conditions.append(lambda provider: links.has_area(provider.id, area_id))
    if category_id is not None:
        conditions.append(lambda provider: links.has_category(provider.id, category_id))
    if status is not None:
        conditions.append(lambda provider: provider.status == status)
    return conditions


def _badge_condition(badge: Badge, wanted: bool, badges: dict[int, set[Badge]]) -> ProviderPredicate:
    return lambda provider: (badge in badges.get(provider.id, ())) == wanted


def _not_archived(provider: Provider) -> bool:
    return provider.lifecycle_status is not LifecycleStatus.ARCHIVED


def _all_of(conditions: list[ProviderPredicate]) -> ProviderPredicate:
    def predicate(provider: Provider) -> bool:
        return all(condition(provider) for condition in conditions)

    return predicate
