from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from functools import cmp_to_key

from directory.services.models import RankedProvider


def compare_ranked(left: RankedProvider, right: RankedProvider) -> int:
    """Directory order: trust score desc, last activity desc (never-active last), status change desc, id asc."""
    if left.trust_score != right.trust_score:
        return -1 if left.trust_score > right.trust_score else 1

    activity = _compare_desc_nulls_last(left.last_active_at, right.last_active_at)
    if activity:
        return activity

    left_changed = left.provider.status_last_updated_at
    right_changed = right.provider.status_last_updated_at
    if left_changed != right_changed:
        return -1 if left_changed > right_changed else 1

    return _compare_ids(left.provider.id, right.provider.id)


def compare_admin(left: RankedProvider, right: RankedProvider) -> int:
    left_created = left.provider.created_at
    right_created = right.provider.created_at
    if left_created != right_created:
        return -1 if left_created > right_created else 1
    return _compare_ids(left.provider.id, right.provider.id)


def rank_providers(rows: Iterable[RankedProvider]) -> list[RankedProvider]:
    return sorted(rows, key=cmp_to_key(compare_ranked))


def order_for_admin(rows: Iterable[RankedProvider]) -> list[RankedProvider]:
    return sorted(rows, key=cmp_to_key(compare_admin))


def _compare_desc_nulls_last(left: datetime | None, right: datetime | None) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    if left == right:
        return 0
    return -1 if left > right else 1


def _compare_ids(left: int, right: int) -> int:
    if left == right:
        return 0
    return -1 if left < right else 1
