from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from directory.services.activity import index_last_active
from directory.services.errors import NotFoundError
from directory.services.filters import (
    AdminProviderFilters,
    ProviderFilters,
    build_admin_predicate,
    build_predicate,
)
from directory.services.models import (
    Area,
    Category,
    DirectorySnapshot,
    Island,
    LifecycleStatus,
    RankedProvider,
    area_from_row,
    category_from_row,
    coerce_enum,
    coerce_timestamp,
    index_badges,
    index_links,
    provider_from_row,
)
from directory.services.ranking import order_for_admin, rank_providers
from directory.services.trust import compute_trust_score, is_premium_active, trial_days_left

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class Suggestion:
    id: str
    label: str
    description: str
    patch: dict[str, Any] = field(default_factory=dict)


class DirectoryService:
    """Read-only query façade over a provider store.

    The store is any object exposing ``fetch_snapshot`` and ``list_areas``
    coroutines (``PostgresRepository`` or ``InMemoryStore``). Nothing is cached
    between calls; each call scores against the snapshot it just read.
    """

    def __init__(self, store: Any) -> None:
        self.store = store

    async def list_providers(self, filters: ProviderFilters) -> list[RankedProvider]:
        with tracer.start_as_current_span("directory.list_providers") as span:
            snapshot = await self.store.fetch_snapshot()
            rows = annotate_snapshot(snapshot)
            predicate = build_predicate(filters, index_links(snapshot))
            ranked = rank_providers(row for row in rows if predicate(row.provider))
            span.set_attribute("directory.candidates", len(rows))
            span.set_attribute("directory.results", len(ranked))
        logger.debug(
            "directory listing island=%s area_id=%s category_id=%s status=%s results=%s",
            filters.island.value if filters.island else None,
            filters.area_id,
            filters.category_id,
            filters.status.value if filters.status else None,
            len(ranked),
        )
        return ranked

    async def get_provider(self, provider_id: int) -> RankedProvider:
        with tracer.start_as_current_span("directory.get_provider") as span:
            span.set_attribute("provider.id", provider_id)
            snapshot = await self.store.fetch_snapshot(provider_id=provider_id)
            rows = [row for row in annotate_snapshot(snapshot, include_links=True) if row.provider.id == provider_id]
        if not rows or rows[0].provider.lifecycle_status is LifecycleStatus.ARCHIVED:
            raise NotFoundError("provider not found")
        return rows[0]

    async def list_areas(self, island: Island | str) -> list[Area]:
        normalized = coerce_enum(Island, island)
        with tracer.start_as_current_span("directory.list_areas"):
            rows = await self.store.list_areas(island=normalized.value)
        return [area_from_row(row) for row in rows]

    async def list_admin_providers(self, filters: AdminProviderFilters) -> list[RankedProvider]:
        with tracer.start_as_current_span("directory.list_admin_providers"):
            snapshot = await self.store.fetch_snapshot()
            rows = annotate_snapshot(snapshot)
            predicate = build_admin_predicate(filters, index_links(snapshot), index_badges(snapshot.provider_badges))
            return order_for_admin(row for row in rows if predicate(row.provider))


def annotate_snapshot(snapshot: DirectorySnapshot, *, include_links: bool = False) -> list[RankedProvider]:
    """Validate every provider row and attach badges, last activity and trust score.

    Any unrecognized enum value anywhere in the snapshot raises; no row is skipped.
    """
    now = coerce_timestamp(snapshot.taken_at)
    assert now is not None
    badges = index_badges(snapshot.provider_badges)
    last_active = index_last_active(snapshot.activity_events)

    areas_by_provider: dict[int, list[Area]] = {}
    categories_by_provider: dict[int, list[Category]] = {}
    if include_links:
        areas = {int(row["id"]): area_from_row(row) for row in snapshot.areas}
        categories = {int(row["id"]): category_from_row(row) for row in snapshot.categories}
        for row in snapshot.provider_areas:
            area = areas.get(int(row["area_id"]))
            if area is not None:
                areas_by_provider.setdefault(int(row["provider_id"]), []).append(area)
        for row in snapshot.provider_categories:
            category = categories.get(int(row["category_id"]))
            if category is not None:
                categories_by_provider.setdefault(int(row["provider_id"]), []).append(category)

    annotated: list[RankedProvider] = []
    for row in snapshot.providers:
        provider = provider_from_row(row)
        held = badges.get(provider.id, set())
        annotated.append(
            RankedProvider(
                provider=provider,
                badges=held,
                trust_score=compute_trust_score(
                    badges=held,
                    plan=provider.plan,
                    trial_end_at=provider.trial_end_at,
                    lifecycle_status=provider.lifecycle_status,
                    now=now,
                ),
                last_active_at=last_active.get(provider.id),
                is_premium=is_premium_active(plan=provider.plan, trial_end_at=provider.trial_end_at, now=now),
                trial_days_left=trial_days_left(provider.trial_end_at, now),
                areas=sorted(areas_by_provider.get(provider.id, []), key=lambda area: (area.name, area.id)),
                categories=sorted(categories_by_provider.get(provider.id, []), key=lambda category: (category.name, category.id)),
            )
        )
    return annotated


def suggest_relaxations(filters: ProviderFilters) -> list[Suggestion]:
    """Hints for an empty listing, one per filter the caller could drop."""
    suggestions: list[Suggestion] = []
    if filters.status is not None:
        suggestions.append(
            Suggestion(
                id="any_status",
                label="Any availability",
                description="Include providers that are busy or not taking new work",
                patch={"status": None},
            )
        )
    if filters.area_id is not None:
        suggestions.append(
            Suggestion(
                id="all_areas",
                label="All areas",
                description="Remove the area filter to see providers across the island",
                patch={"areaId": None},
            )
        )
    if filters.category_id is not None:
        suggestions.append(
            Suggestion(
                id="all_categories",
                label="All categories",
                description="Remove the category filter to see every kind of provider",
                patch={"categoryId": None},
            )
        )
    if filters.island is not None:
        suggestions.append(
            Suggestion(
                id="nearby_areas",
                label="Check nearby islands",
                description="Remove island filter to see providers on other islands",
                patch={"island": None, "areaId": None},
            )
        )
    return suggestions
