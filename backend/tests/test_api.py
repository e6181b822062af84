"""Tests for the admin import API."""

from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from fastapi import HTTPException

from okazje.api.v1 import imports
from okazje.api.v1.imports import reset_trigger_throttle
from okazje.config import settings
from okazje.db.session import get_db
from okazje.main import app
from okazje.services.import_run_service import ImportRunService

API_KEY = "test-ingest-key"


@pytest_asyncio.fixture
async def client(test_db, monkeypatch):
    async def _override_get_db():
        yield test_db

    monkeypatch.setattr(settings, "INGEST_API_KEY", API_KEY)
    monkeypatch.setattr(settings, "INGEST_RATE_LIMIT_PER_MINUTE", 10)
    reset_trigger_throttle()
    app.dependency_overrides[get_db] = _override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as http:
        yield http

    app.dependency_overrides.clear()
    reset_trigger_throttle()


def _run_body(**overrides):
    body = {"api_key": API_KEY, "profile_id": "no-such-profile"}
    body.update(overrides)
    return body


class TestRunImportEndpoint:
    async def test_wrong_key_forbidden(self, client):
        response = await client.post("/api/v1/imports/run", json=_run_body(api_key="nope"))

        assert response.status_code == 403
        assert response.json()["detail"] == "Invalid API key"

    async def test_disabled_when_key_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INGEST_API_KEY", "")

        response = await client.post("/api/v1/imports/run", json=_run_body())

        assert response.status_code == 403
        assert "not configured" in response.json()["detail"]

    async def test_unknown_profile(self, client):
        response = await client.post("/api/v1/imports/run", json=_run_body())

        assert response.status_code == 404

    async def test_disabled_profile(self, client, make_profile):
        profile = await make_profile(enabled=False)

        response = await client.post("/api/v1/imports/run", json=_run_body(profile_id=profile.id))

        assert response.status_code == 409

    async def test_max_items_bounds(self, client):
        response = await client.post("/api/v1/imports/run", json=_run_body(max_items=500))

        assert response.status_code == 422

    async def test_trigger_throttled(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INGEST_RATE_LIMIT_PER_MINUTE", 1)

        first = await client.post("/api/v1/imports/run", json=_run_body())
        second = await client.post("/api/v1/imports/run", json=_run_body())

        assert first.status_code == 404
        assert second.status_code == 429


class TestTriggerThrottle:
    @pytest.fixture(autouse=True)
    def _clean_throttle(self, monkeypatch):
        monkeypatch.setattr(settings, "INGEST_RATE_LIMIT_PER_MINUTE", 1)
        reset_trigger_throttle()
        yield
        reset_trigger_throttle()

    def _at(self, monkeypatch, seconds):
        monkeypatch.setattr(imports, "time", SimpleNamespace(monotonic=lambda: seconds))

    def test_budget_restored_after_window(self, monkeypatch):
        self._at(monkeypatch, 1000.0)
        imports._check_trigger_rate("10.0.0.1")
        with pytest.raises(HTTPException) as exc_info:
            imports._check_trigger_rate("10.0.0.1")
        assert exc_info.value.status_code == 429

        self._at(monkeypatch, 1060.0)
        imports._check_trigger_rate("10.0.0.1")

    def test_idle_clients_are_forgotten(self, monkeypatch):
        self._at(monkeypatch, 1000.0)
        imports._check_trigger_rate("10.0.0.1")
        imports._check_trigger_rate("10.0.0.2")
        assert set(imports._recent_triggers) == {"10.0.0.1", "10.0.0.2"}

        self._at(monkeypatch, 1061.0)
        imports._check_trigger_rate("10.0.0.3")

        assert set(imports._recent_triggers) == {"10.0.0.3"}


class TestRunStatusEndpoints:
    async def test_run_status(self, client, test_db, make_profile):
        profile = await make_profile()
        run = await ImportRunService(test_db).start_run(
            profile_id=profile.id,
            vendor_id="allegro",
            dry_run=True,
            triggered_by="manual",
            triggered_by_uid="admin-1",
            stats={"fetched": 0},
        )

        response = await client.get(
            f"/api/v1/imports/runs/{run.id}", headers={"X-Ingest-Key": API_KEY}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == run.id
        assert data["status"] == "running"
        assert data["dry_run"] is True

        listing = await client.get(
            f"/api/v1/imports/profiles/{profile.id}/runs", headers={"X-Ingest-Key": API_KEY}
        )
        assert listing.status_code == 200
        assert [r["id"] for r in listing.json()] == [run.id]

    async def test_run_status_requires_key(self, client):
        response = await client.get("/api/v1/imports/runs/anything")

        assert response.status_code == 403

    async def test_unknown_run(self, client):
        response = await client.get(
            "/api/v1/imports/runs/missing", headers={"X-Ingest-Key": API_KEY}
        )

        assert response.status_code == 404


@pytest.mark.parametrize("path", ["/", "/api/v1/health"])
async def test_service_endpoints(client, path):
    response = await client.get(path)

    assert response.status_code == 200
