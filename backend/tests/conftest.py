import asyncio

import httpx
import pytest

from scan_proxy.limiter import limiter
from scan_proxy.services.bandwidth import BandwidthGate
from scan_proxy.services.cache import ContentCache
from scan_proxy.services.origin import OriginClient
from scan_proxy.services.resolver import Resolver
from scan_proxy.services.upstream import UpstreamLimiter

ORIGIN_URL = "https://origin.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 120


class FakeClock:
    """Reloj controlable para probar TTLs sin esperar."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOrigin:
    """
    Origen simulado para httpx.MockTransport.

    `pages` mapea el path ("/files/scans/OP1050/03.png") a bytes. Cualquier
    path que no este ahi responde 404, salvo que `status` fuerce otro codigo.
    `delay` simula un origen lento.
    """

    def __init__(self):
        self.pages: dict[str, bytes] = {}
        self.status: int | None = None
        self.delay = 0.0
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.status is not None:
            return httpx.Response(self.status)
        content = self.pages.get(request.url.path)
        if content is None:
            return httpx.Response(404)
        if request.method == "HEAD":
            return httpx.Response(200, headers={"Content-Length": str(len(content))})
        return httpx.Response(200, content=content, headers={"Content-Type": "image/png"})

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture(autouse=True)
def disable_ip_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def origin_client(origin):
    client = httpx.AsyncClient(transport=httpx.MockTransport(origin))
    return OriginClient(client=client, base_url=ORIGIN_URL)


@pytest.fixture
def resolver(clock, origin_client):
    return Resolver(
        cache=ContentCache(max_bytes=1024 * 1024, hit_ttl=86400, negative_ttl=3600, timer=clock),
        gate=BandwidthGate(limit=10_000),
        limiter=UpstreamLimiter(max_concurrent=5, min_interval=0),
        origin=origin_client,
    )


@pytest.fixture
def app_resolver(monkeypatch, resolver):
    """Reemplaza el Resolver global en todas las rutas por el de test."""
    for module in ("proxy", "stats", "admin"):
        monkeypatch.setattr(f"scan_proxy.routes.{module}.resolver", resolver)
    return resolver
