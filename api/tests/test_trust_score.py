from datetime import datetime, timedelta, timezone

import pytest

from directory.services.errors import DirectoryValidationError
from directory.services.trust import (
    badge_component,
    compute_trust_score,
    is_premium_active,
    trial_days_left,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_badge_tiers_do_not_add_up() -> None:
    assert badge_component([]) == 0
    assert badge_component(["VERIFIED"]) == 100
    assert badge_component(["EMERGENCY_READY"]) == 200
    assert badge_component(["GOV_APPROVED"]) == 300
    assert badge_component(["GOV_APPROVED", "VERIFIED"]) == 300
    assert badge_component(["VERIFIED", "EMERGENCY_READY"]) == 200
    assert badge_component(["VERIFIED", "EMERGENCY_READY", "GOV_APPROVED"]) == 300


def test_scenario_scores_for_gov_emergency_premium_and_verified_providers() -> None:
    gov = compute_trust_score(
        badges={"GOV_APPROVED"},
        plan="FREE",
        trial_end_at=None,
        lifecycle_status="ACTIVE",
        now=NOW,
    )
    emergency_premium = compute_trust_score(
        badges={"EMERGENCY_READY"},
        plan="PREMIUM",
        trial_end_at=NOW + timedelta(days=10),
        lifecycle_status="ACTIVE",
        now=NOW,
    )
    verified = compute_trust_score(
        badges={"VERIFIED"},
        plan="FREE",
        trial_end_at=None,
        lifecycle_status="ACTIVE",
        now=NOW,
    )

    assert (gov, emergency_premium, verified) == (310, 260, 110)


def test_free_plan_never_gets_premium_bonus_even_with_future_trial() -> None:
    score = compute_trust_score(
        badges=[],
        plan="FREE",
        trial_end_at=NOW + timedelta(days=30),
        lifecycle_status="ACTIVE",
        now=NOW,
    )

    assert score == 10
    assert is_premium_active(plan="FREE", trial_end_at=NOW + timedelta(days=30), now=NOW) is False


def test_premium_bonus_requires_trial_strictly_after_now() -> None:
    at_boundary = compute_trust_score(badges=[], plan="PREMIUM", trial_end_at=NOW, lifecycle_status="INACTIVE", now=NOW)
    expired = compute_trust_score(
        badges=[],
        plan="PREMIUM",
        trial_end_at=NOW - timedelta(seconds=1),
        lifecycle_status="INACTIVE",
        now=NOW,
    )
    missing = compute_trust_score(badges=[], plan="PREMIUM", trial_end_at=None, lifecycle_status="INACTIVE", now=NOW)
    live = compute_trust_score(
        badges=[],
        plan="PREMIUM",
        trial_end_at=NOW + timedelta(seconds=1),
        lifecycle_status="INACTIVE",
        now=NOW,
    )

    assert (at_boundary, expired, missing, live) == (0, 0, 0, 50)


def test_only_active_lifecycle_earns_bonus() -> None:
    scores = {
        status: compute_trust_score(badges=[], plan="FREE", trial_end_at=None, lifecycle_status=status, now=NOW)
        for status in ("ACTIVE", "INACTIVE", "ARCHIVED")
    }

    assert scores == {"ACTIVE": 10, "INACTIVE": 0, "ARCHIVED": 0}


def test_naive_trial_timestamp_is_read_as_utc() -> None:
    naive_future = (NOW + timedelta(hours=1)).replace(tzinfo=None)

    assert is_premium_active(plan="PREMIUM", trial_end_at=naive_future, now=NOW) is True


@pytest.mark.parametrize(
    ("kwargs", "code"),
    [
        ({"badges": ["PLATINUM"]}, "INVALID_BADGE"),
        ({"plan": "ENTERPRISE"}, "INVALID_PLAN"),
        ({"lifecycle_status": "DELETED"}, "INVALID_LIFECYCLE_STATUS"),
    ],
)
def test_unknown_values_are_rejected_instead_of_scored_as_zero(kwargs: dict, code: str) -> None:
    arguments = {
        "badges": [],
        "plan": "FREE",
        "trial_end_at": None,
        "lifecycle_status": "ACTIVE",
        "now": NOW,
    }
    arguments.update(kwargs)

    with pytest.raises(DirectoryValidationError) as excinfo:
        compute_trust_score(**arguments)

    assert excinfo.value.code == code


def test_trial_days_left_rounds_partial_days_up() -> None:
    assert trial_days_left(NOW + timedelta(days=2, hours=1), NOW) == 3
    assert trial_days_left(NOW + timedelta(days=2), NOW) == 2
    assert trial_days_left(NOW + timedelta(minutes=5), NOW) == 1
    assert trial_days_left(NOW - timedelta(days=1), NOW) == 0
    assert trial_days_left(None, NOW) == 0
