from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from directory.services.models import coerce_timestamp


def last_active_at(provider_id: int, events: Iterable[dict[str, Any]]) -> datetime | None:
    latest: datetime | None = None
    for event in events:
        if int(event["provider_id"]) != provider_id:
            continue
        created_at = coerce_timestamp(event.get("created_at"))
        if created_at is not None and (latest is None or created_at > latest):
            latest = created_at
    return latest


def index_last_active(events: Iterable[dict[str, Any]]) -> dict[int, datetime]:
    """Most recent event time per provider; providers without events are absent."""
    latest: dict[int, datetime] = {}
    for event in events:
        created_at = coerce_timestamp(event.get("created_at"))
        if created_at is None:
            continue
        provider_id = int(event["provider_id"])
        current = latest.get(provider_id)
        if current is None or created_at > current:
            latest[provider_id] = created_at
    return latest
