from fastapi.testclient import TestClient

from scan_proxy.main import app

from conftest import PNG_BYTES

client = TestClient(app)


def test_stats_after_traffic(app_resolver, origin):
    origin.pages["/files/scans/OP1050/03.png"] = PNG_BYTES
    client.get("/api/proxy/1050/3")
    client.get("/api/proxy/1050/3")
    client.get("/api/proxy/1050/99")

    data = client.get("/api/stats").json()

    assert data["cache"] == {"hits": 1, "misses": 2, "keys": 2}
    assert data["bandwidth"]["used"] == 2 * len(PNG_BYTES)
    assert data["bandwidth"]["limit"] == app_resolver.gate.limit
    assert data["bandwidth"]["remaining"] == app_resolver.gate.limit - 2 * len(PNG_BYTES)
    assert 0 < data["bandwidth"]["percent_used"] < 100
    assert data["upstream"]["max_concurrent"] == 5
    assert data["upstream"]["in_flight"] == 0


def test_stats_is_read_only(app_resolver):
    client.get("/api/stats")
    data = client.get("/api/stats").json()

    assert data["cache"] == {"hits": 0, "misses": 0, "keys": 0}
    assert data["bandwidth"]["used"] == 0
