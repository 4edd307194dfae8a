"""
Modulo de ruta del proxy de paginas.

Define GET y HEAD /api/proxy/{chapter}/{page}:

    GET  -> descarga la imagen (desde el cache o desde el origen)
    HEAD -> solo verifica si la pagina existe, sin body

Un HEAD exitoso no guarda nada en el cache (no hay bytes): si la pagina
no fue pedida antes por GET, cada HEAD vuelve a consultar al origen y
ocupa un turno del UpstreamLimiter. Un 404 si queda cacheado.

Este archivo es una capa DELGADA: toda la logica (cache, cuota, rate
limiting hacia el origen) vive en services/resolver.py. Aqui solo:
1. Se aplica el rate limit por IP (SlowAPI) y la API key (si existe).
2. Se llama al Resolver.
3. Se traduce el resultado (o la excepcion) a una respuesta HTTP.

Headers de respuesta:
- X-Cache: HIT o MISS.
- X-Bandwidth-Used / X-Bandwidth-Limit / X-Bandwidth-Remaining-Percent:
  estado de la cuota despues de servir esta respuesta.
"""

import logging
import math
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from starlette.requests import Request

from scan_proxy.auth import require_api_key
from scan_proxy.config import settings
from scan_proxy.limiter import limiter
from scan_proxy.models.schemas import ErrorResponse
from scan_proxy.services.errors import (
    InvalidInput,
    OriginTransientFailure,
    QuotaExceeded,
)
from scan_proxy.services.resolver import Mode, Outcome, resolver

logger = logging.getLogger(__name__)

router = APIRouter()


def _bandwidth_headers() -> dict[str, str]:
    usage = resolver.gate.current_usage()
    return {
        "X-Bandwidth-Used": str(usage.used),
        "X-Bandwidth-Limit": str(usage.limit),
        "X-Bandwidth-Remaining-Percent": f"{usage.remaining_percent:.2f}",
    }


@router.api_route(
    "/api/proxy/{chapter}/{page}",
    methods=["GET", "HEAD"],
    dependencies=[Depends(require_api_key)],
    responses={code: {"model": ErrorResponse} for code in (400, 401, 404, 502, 503)},
)
@limiter.limit(settings.PROXY_RATE_LIMIT)
async def proxy_page(request: Request, chapter: str, page: str):
    """
    Sirve una pagina de un capitulo.

    Los parametros llegan como texto (str) a proposito: si los declararamos
    como int, FastAPI responderia 422 con su propio formato. Queremos 400
    y reglas propias (forma canonica, rango de capitulos), que aplica el
    validador del Resolver.

    Raises:
        HTTPException(400): Parametros invalidos.
        HTTPException(404): La pagina no existe (cacheado o recien consultado).
        HTTPException(502): El origen fallo (timeout, conexion, status raro).
        HTTPException(503): Cuota de ancho de banda agotada.
        HTTPException(500): Cualquier error inesperado.
    """
    mode = Mode.EXISTENCE if request.method == "HEAD" else Mode.FULL

    try:
        resolution = await resolver.resolve(chapter, page, mode)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuotaExceeded as e:
        retry_after = max(math.ceil((e.resets_at - datetime.now(timezone.utc)).total_seconds()), 0)
        raise HTTPException(
            status_code=503,
            detail=f"Bandwidth quota exceeded. Service resumes after {e.resets_at.isoformat()}",
            headers={"Retry-After": str(retry_after), **_bandwidth_headers()},
        )
    except OriginTransientFailure as e:
        raise HTTPException(status_code=502, detail=f"Upstream error: {e}")
    except Exception:
        logger.exception("Unexpected error proxying chapter=%s page=%s", chapter, page)
        raise HTTPException(status_code=500, detail="Proxy error")

    headers = {"X-Cache": resolution.cache_status.value, **_bandwidth_headers()}

    if resolution.outcome is Outcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Not Found", headers=headers)

    headers["Cache-Control"] = "public, max-age=86400"
    if mode is Mode.EXISTENCE:
        return Response(status_code=200, media_type="image/png", headers=headers)
    return Response(content=resolution.content, media_type="image/png", headers=headers)
