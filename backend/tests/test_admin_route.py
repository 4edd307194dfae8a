from fastapi.testclient import TestClient

from scan_proxy.config import settings
from scan_proxy.main import app

client = TestClient(app)

RESET_URL = "/api/admin/reset-bandwidth"


def test_reset_with_admin_key(app_resolver, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_KEY", "s3cret")
    app_resolver.gate.record_bytes(app_resolver.gate.limit)

    response = client.post(RESET_URL, headers={"X-Admin-Key": "s3cret"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["bandwidth"]["used"] == 0
    assert app_resolver.gate.check_admit() is True


def test_reset_rejects_wrong_key(app_resolver, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_KEY", "s3cret")
    app_resolver.gate.record_bytes(500)

    response = client.post(RESET_URL, headers={"X-Admin-Key": "guess"})

    assert response.status_code == 401
    assert app_resolver.gate.current_usage().used == 500


def test_reset_disabled_without_configured_key(app_resolver, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_KEY", None)

    response = client.post(RESET_URL, headers={"X-Admin-Key": ""})

    assert response.status_code == 401
