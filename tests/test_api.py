from datetime import datetime, timezone

from fastapi.testclient import TestClient

from workledger.config import get_settings
from workledger.main import app


def test_health_reports_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "staging")
    get_settings.cache_clear()
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "env": "staging"}


def test_current_date_time_is_utc_iso():
    client = TestClient(app)
    before = datetime.now(timezone.utc)
    response = client.get("/api/currentDateTime")
    assert response.status_code == 200
    stamp = datetime.fromisoformat(response.json()["dateTime"])
    assert stamp.tzinfo is not None
    assert stamp >= before


def test_unmatched_api_routes_answer_with_message():
    client = TestClient(app)
    response = client.post("/api/novareparmaq", json={})
    assert response.status_code == 404
    assert response.json()["message"].startswith("API route")
