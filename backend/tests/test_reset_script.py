import httpx
import pytest

from scripts.reset_bandwidth import main, reset_bandwidth

USAGE = {
    "used": 0,
    "limit": 100,
    "remaining": 100,
    "percent_used": 0.0,
    "remaining_percent": 100.0,
    "last_reset": "2026-10-01T00:00:00Z",
    "next_reset": "2026-10-31T00:00:00Z",
}


def make_client(expected_key, seen):
    def handler(request):
        seen.append(request)
        if request.headers.get("X-Admin-Key") != expected_key:
            return httpx.Response(401, json={"detail": "Invalid or missing admin key"})
        return httpx.Response(200, json={"status": "ok", "bandwidth": USAGE})

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_posts_to_admin_endpoint():
    seen = []
    result = reset_bandwidth("http://proxy.test/", "s3cret", client=make_client("s3cret", seen))

    assert result["status"] == "ok"
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://proxy.test/api/admin/reset-bandwidth"


def test_wrong_key_raises():
    with pytest.raises(httpx.HTTPStatusError):
        reset_bandwidth("http://proxy.test", "guess", client=make_client("s3cret", []))


def test_main_requires_admin_key(monkeypatch):
    monkeypatch.delenv("ADMIN_KEY", raising=False)
    assert main() == 1
