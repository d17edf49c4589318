from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from directory.main import app
from directory.services.errors import StorageError
from directory.services.repository import get_repository
from directory.services.store import InMemoryStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class UnavailableStore:
    async def fetch_snapshot(self, *, provider_id: int | None = None) -> Any:
        raise StorageError("provider store unavailable")

    async def list_areas(self, *, island: str) -> list[dict[str, Any]]:
        raise StorageError("provider store unavailable")

    async def update_status(self, *, provider_id: int, status: str) -> None:
        raise StorageError("provider store unavailable")

    async def update_profile(self, *, provider_id: int, update: Any) -> None:
        raise StorageError("provider store unavailable")


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore(clock=lambda: NOW)
    store.add_area(id=1, name="Charlotte Amalie", island="STT")
    store.add_area(id=2, name="Cruz Bay", island="STJ")
    store.add_category(id=5, name="Electrician")

    store.add_provider(id=10, name="Island Sparks", island="STT")
    store.assign_badge(10, "VERIFIED")
    store.link_area(10, 1)
    store.link_category(10, 5)
    store.log_activity(10, "PROFILE_UPDATED", created_at=NOW - timedelta(days=1))

    store.add_provider(id=11, name="Harbor Power", island="STT", plan="PREMIUM", trial_end_at=NOW + timedelta(days=3))
    store.assign_badge(11, "GOV_APPROVED")
    store.link_area(11, 1)

    store.add_provider(id=12, name="Retired Wiring", island="STT", lifecycle_status="ARCHIVED")
    store.assign_badge(12, "GOV_APPROVED")
    return store


@pytest.fixture
def client(store: InMemoryStore) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_list_providers_ranks_and_hides_archived(client: TestClient) -> None:
    response = client.get("/providers", params={"island": "STT"})
    assert response.status_code == 200

    body = response.json()
    assert body["error"] is None
    assert body["data"]["suggestions"] is None
    providers = body["data"]["providers"]
    assert [row["id"] for row in providers] == [11, 10]
    assert providers[0]["trust_score"] == 360
    assert providers[0]["is_premium"] is True
    assert providers[0]["trial_days_left"] == 3
    assert providers[1]["badges"] == ["VERIFIED"]
    assert providers[1]["last_active_at"] is not None


def test_list_providers_accepts_camel_case_filters(client: TestClient) -> None:
    response = client.get("/providers", params={"areaId": 1, "categoryId": 5, "status": "OPEN_NOW"})
    assert response.status_code == 200
    assert [row["id"] for row in response.json()["data"]["providers"]] == [10]


def test_list_providers_rejects_unknown_island(client: TestClient) -> None:
    response = client.get("/providers", params={"island": "St. Thomas"})
    assert response.status_code == 400
    assert response.json()["detail"] == {
        "code": "INVALID_ISLAND",
        "message": "Island must be one of: STT, STJ, STX",
    }


def test_list_providers_rejects_unknown_status(client: TestClient) -> None:
    response = client.get("/providers", params={"status": "CLOSED"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_STATUS"


def test_empty_listing_carries_suggestions(client: TestClient) -> None:
    response = client.get("/providers", params={"island": "STX", "status": "OPEN_NOW"})
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["providers"] == []
    assert [item["id"] for item in data["suggestions"]] == ["any_status", "nearby_areas"]


def test_store_outage_is_503() -> None:
    app.dependency_overrides[get_repository] = lambda: UnavailableStore()
    try:
        client = TestClient(app)
        assert client.get("/providers").status_code == 503
        assert client.get("/providers/10").status_code == 503
        assert client.get("/areas", params={"island": "STT"}).status_code == 503
        assert client.put("/providers/10/status", json={"status": "BUSY_LIMITED"}).status_code == 503
        assert client.put("/providers/10", json={"area_ids": [1]}).status_code == 503
    finally:
        app.dependency_overrides.clear()


def test_get_provider_detail_includes_links(client: TestClient) -> None:
    response = client.get("/providers/10")
    assert response.status_code == 200

    body = response.json()
    assert body["trust_score"] == 110
    assert body["areas"] == [{"id": 1, "name": "Charlotte Amalie", "island": "STT"}]
    assert body["categories"] == [{"id": 5, "name": "Electrician"}]


def test_get_provider_is_404_for_archived_or_missing(client: TestClient) -> None:
    assert client.get("/providers/12").status_code == 404
    assert client.get("/providers/404").status_code == 404


def test_status_update_records_activity(client: TestClient, store: InMemoryStore) -> None:
    response = client.put("/providers/11/status", json={"status": "BUSY_LIMITED"})
    assert response.status_code == 200
    assert response.json() == {"message": "Status updated"}

    assert store.providers[11]["status"] == "BUSY_LIMITED"
    assert store.activity_events[-1]["provider_id"] == 11
    assert store.activity_events[-1]["event_type"] == "STATUS_UPDATED"


def test_status_update_validates_value_and_provider(client: TestClient) -> None:
    invalid = client.put("/providers/11/status", json={"status": "ON_VACATION"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"]["code"] == "INVALID_STATUS"

    missing = client.put("/providers/999/status", json={"status": "OPEN_NOW"})
    assert missing.status_code == 404


def test_list_areas_requires_valid_island(client: TestClient) -> None:
    missing = client.get("/areas")
    assert missing.status_code == 400
    assert missing.json()["detail"]["code"] == "ISLAND_REQUIRED"

    invalid = client.get("/areas", params={"island": "PR"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"]["code"] == "INVALID_ISLAND"

    response = client.get("/areas", params={"island": "STJ"})
    assert response.status_code == 200
    assert response.json() == [{"id": 2, "name": "Cruz Bay"}]


def test_empty_listing_suggestions_clear_camel_case_filters(client: TestClient) -> None:
    response = client.get("/providers", params={"island": "STJ", "areaId": 2, "categoryId": 5})
    assert response.status_code == 200

    patches = {item["id"]: item["patch"] for item in response.json()["data"]["suggestions"]}
    assert patches["all_areas"] == {"areaId": None}
    assert patches["all_categories"] == {"categoryId": None}


def test_profile_update_changes_fields_links_and_activity(client: TestClient, store: InMemoryStore) -> None:
    before = client.get("/providers/11").json()
    assert before["last_active_at"] is None

    response = client.put(
        "/providers/11",
        json={"name": "Harbor Power & Light", "area_ids": [1, 2], "category_ids": [5], "preferred_contact_method": "SMS"},
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Profile updated"}

    after = client.get("/providers/11").json()
    assert after["name"] == "Harbor Power & Light"
    assert after["preferred_contact_method"] == "SMS"
    assert after["last_active_at"] is not None
    assert [area["id"] for area in after["areas"]] == [1]
    assert [category["id"] for category in after["categories"]] == [5]
    assert store.activity_events[-1]["event_type"] == "PROFILE_UPDATED"


def test_profile_update_validation(client: TestClient) -> None:
    no_areas = client.put("/providers/10", json={"name": "Island Sparks"})
    assert no_areas.status_code == 400
    assert no_areas.json()["detail"]["code"] == "AREA_REQUIRED"

    no_contacts = client.put(
        "/providers/10",
        json={
            "area_ids": [1],
            "contact_call_enabled": False,
            "contact_whatsapp_enabled": False,
            "contact_sms_enabled": False,
        },
    )
    assert no_contacts.status_code == 400
    assert no_contacts.json()["detail"]["code"] == "CONTACT_METHOD_REQUIRED"

    bad_island = client.put("/providers/10", json={"area_ids": [1], "island": "PR"})
    assert bad_island.status_code == 400
    assert bad_island.json()["detail"]["code"] == "INVALID_ISLAND"

    missing = client.put("/providers/999", json={"area_ids": [1]})
    assert missing.status_code == 404
