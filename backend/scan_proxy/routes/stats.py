"""
Modulo de ruta de estadisticas: GET /api/stats.

Expone, para monitoreo, una foto del estado del proxy:
- Cache: hits, misses y cantidad de claves vigentes.
- Ancho de banda: usado, limite, restante y porcentajes.
- Limitador del origen: descargas en curso y parametros.

Es de solo lectura: no modifica ningun contador.
"""

from dataclasses import asdict

from fastapi import APIRouter

from scan_proxy.models.schemas import (
    BandwidthResponse,
    CacheStatsResponse,
    StatsResponse,
    UpstreamResponse,
)
from scan_proxy.services.resolver import resolver

router = APIRouter()


@router.get("/api/stats", response_model=StatsResponse)
async def get_stats():
    limiter = resolver.limiter
    return StatsResponse(
        cache=CacheStatsResponse(**asdict(resolver.cache.stats())),
        bandwidth=BandwidthResponse(**asdict(resolver.gate.current_usage())),
        upstream=UpstreamResponse(
            in_flight=limiter.in_flight,
            max_concurrent=limiter.max_concurrent,
            min_interval_ms=round(limiter.min_interval * 1000),
        ),
    )
