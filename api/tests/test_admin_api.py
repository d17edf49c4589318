from __future__ import annotations

import hashlib
import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from directory.core.config import get_settings
from directory.main import app
from directory.services.repository import get_repository
from directory.services.store import InMemoryStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
ADMIN_KEY = "local-admin-key-0001"
ADMIN_HEADERS = {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore(clock=lambda: NOW)
    store.add_provider(id=1, name="Old Timer", created_at=NOW - timedelta(days=200))
    store.log_activity(1, "PROFILE_UPDATED", created_at=NOW - timedelta(days=120))
    store.add_provider(id=2, name="Regular", created_at=NOW - timedelta(days=60))
    store.log_activity(2, "STATUS_UPDATED", created_at=NOW - timedelta(days=45))
    store.add_provider(id=3, name="Newcomer", created_at=NOW - timedelta(days=1))
    store.assign_badge(3, "GOV_APPROVED")
    store.log_activity(3, "PROFILE_UPDATED", created_at=NOW - timedelta(hours=5))
    store.add_provider(id=4, name="Shelved", lifecycle_status="ARCHIVED", created_at=NOW - timedelta(days=10))
    return store


@pytest.fixture
def admin_client(store: InMemoryStore) -> TestClient:
    os.environ["PD_ADMIN_API_KEY"] = ADMIN_KEY
    get_settings.cache_clear()
    app.dependency_overrides[get_repository] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        os.environ.pop("PD_ADMIN_API_KEY", None)
        get_settings.cache_clear()


def test_admin_routes_require_key(admin_client: TestClient) -> None:
    assert admin_client.get("/admin/providers").status_code == 401
    assert admin_client.get("/admin/providers", headers={"X-Admin-Key": "wrong"}).status_code == 401
    assert admin_client.put("/admin/providers/1/archive").status_code == 401
    assert admin_client.post("/admin/jobs/recompute-provider-lifecycle").status_code == 401


def test_admin_routes_unavailable_without_configured_key(store: InMemoryStore) -> None:
    os.environ.pop("PD_ADMIN_API_KEY", None)
    get_settings.cache_clear()
    app.dependency_overrides[get_repository] = lambda: store
    try:
        response = TestClient(app).get("/admin/providers", headers=ADMIN_HEADERS)
        assert response.status_code == 503
    finally:
        app.dependency_overrides.clear()


def test_admin_listing_includes_archived_newest_first(admin_client: TestClient) -> None:
    response = admin_client.get("/admin/providers", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert [row["id"] for row in response.json()] == [3, 4, 2, 1]

    archived = admin_client.get("/admin/providers", headers=ADMIN_HEADERS, params={"archived": "true"})
    assert [row["id"] for row in archived.json()] == [4]

    gov = admin_client.get("/admin/providers", headers=ADMIN_HEADERS, params={"govApproved": "true"})
    assert [row["id"] for row in gov.json()] == [3]


def test_admin_listing_validates_island(admin_client: TestClient) -> None:
    response = admin_client.get("/admin/providers", headers=ADMIN_HEADERS, params={"island": "XX"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_ISLAND"


def test_verify_assigns_badge_and_logs_activity(admin_client: TestClient, store: InMemoryStore) -> None:
    response = admin_client.put("/admin/providers/2/verify", headers=ADMIN_HEADERS, json={"verified": True})
    assert response.status_code == 200
    assert response.json() == {"message": "Provider verification updated"}

    badge = next(row for row in store.provider_badges if row["provider_id"] == 2)
    assert badge["badge"] == "VERIFIED"
    assert badge["assigned_by"] == hashlib.sha256(ADMIN_KEY.encode("utf-8")).hexdigest()[:12]
    assert ADMIN_KEY[-8:] not in badge["assigned_by"]
    assert store.activity_events[-1]["event_type"] == "VERIFIED"

    listing = admin_client.get("/admin/providers", headers=ADMIN_HEADERS, params={"verified": "true"})
    assert [row["id"] for row in listing.json()] == [2]

    revoke = admin_client.put("/admin/providers/2/verify", headers=ADMIN_HEADERS, json={"verified": False})
    assert revoke.status_code == 200
    assert not any(row["provider_id"] == 2 for row in store.provider_badges)


def test_verify_unknown_provider_is_404(admin_client: TestClient) -> None:
    response = admin_client.put("/admin/providers/99/verify", headers=ADMIN_HEADERS, json={"verified": True})
    assert response.status_code == 404


def test_archive_toggle_flips_lifecycle(admin_client: TestClient, store: InMemoryStore) -> None:
    archived = admin_client.put("/admin/providers/3/archive", headers=ADMIN_HEADERS)
    assert archived.status_code == 200
    assert archived.json() == {"message": "Provider archived", "lifecycle_status": "ARCHIVED"}
    assert admin_client.get("/providers/3").status_code == 404

    restored = admin_client.put("/admin/providers/3/archive", headers=ADMIN_HEADERS)
    assert restored.json() == {"message": "Provider unarchived", "lifecycle_status": "ACTIVE"}
    assert admin_client.get("/providers/3").status_code == 200
    assert [event["event_type"] for event in store.activity_events if event["provider_id"] == 3][-2:] == [
        "ARCHIVED",
        "ARCHIVED",
    ]


def test_lifecycle_recompute_applies_activity_windows(admin_client: TestClient, store: InMemoryStore) -> None:
    response = admin_client.post("/admin/jobs/recompute-provider-lifecycle", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert response.json() == {"message": "Lifecycle recomputed for 2 providers", "updated": 2}

    assert {row["id"]: row["lifecycle_status"] for row in store.providers.values()} == {
        1: "ARCHIVED",
        2: "INACTIVE",
        3: "ACTIVE",
        4: "ARCHIVED",
    }

    again = admin_client.post("/admin/jobs/recompute-provider-lifecycle", headers=ADMIN_HEADERS)
    assert again.json()["updated"] == 0
