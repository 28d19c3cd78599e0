from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from planforge.config import settings
from planforge.modules.health.routes import configuration_report


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "supabase_url", "https://abc.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "anon-key")
    monkeypatch.setattr(settings, "google_ai_api_key", "gemini-key")


def test_report_without_configuration():
    report = configuration_report()

    assert report["configured"] is False
    assert report["message"] == "Supabase URL and key are required"
    assert report["aiModels"] == {"gemini": False, "chatgpt": False, "claude": False}
    assert report["environment"] == "test"


def test_report_when_configured(configured):
    report = configuration_report()

    assert report["configured"] is True
    assert report["database"]["supabase"] is True
    assert report["aiModels"]["gemini"] is True
    assert "anon-key" not in str(report)


def test_report_rejects_foreign_url(configured, monkeypatch):
    monkeypatch.setattr(settings, "supabase_url", "https://db.example.com")

    report = configuration_report()

    assert report["configured"] is False
    assert report["message"] == "Supabase URL does not look like a Supabase project URL"


def test_report_requires_an_ai_key(configured, monkeypatch):
    monkeypatch.setattr(settings, "google_ai_api_key", None)

    assert configuration_report()["message"] == "At least one AI provider API key is required"


@pytest.mark.asyncio
async def test_health_check_endpoints(client: AsyncClient):
    """Test GET reports configuration and HEAD maps it to a status code"""
    response = await client.get("/api/health-check")
    assert response.status_code == 200
    assert response.json()["configured"] is False

    head = await client.head("/api/health-check")
    assert head.status_code == 503


@pytest.mark.asyncio
async def test_health_check_head_when_configured(client: AsyncClient, configured):
    head = await client.head("/api/health-check")

    assert head.status_code == 200


@pytest.mark.asyncio
async def test_root_and_health_routes(client: AsyncClient):
    root = await client.get("/")
    assert root.json()["status"] == "healthy"

    health = await client.get("/health")
    assert health.json() == {"status": "healthy"}

    ready = await client.get("/ready")
    assert ready.json() == {"status": "degraded"}


@pytest.mark.asyncio
async def test_ready_when_database_answers(client: AsyncClient, fake_db, configured):
    response = await client.get("/ready")
    assert response.json() == {"status": "ready"}

    fake_db.failing_tables.add("projects")
    response = await client.get("/ready")
    assert response.json() == {"status": "degraded"}


@pytest.mark.asyncio
async def test_security_headers_and_error_envelope(client: AsyncClient):
    response = await client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"


def test_report_timestamp_is_utc():
    timestamp = datetime.fromisoformat(configuration_report()["timestamp"])

    assert timestamp.utcoffset() == timedelta(0)
