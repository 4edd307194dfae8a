"""
Modulo de ruta de administracion: POST /api/admin/reset-bandwidth.

Resetea el contador de ancho de banda a 0, reabriendo la compuerta de
cuota. Requiere el header X-Admin-Key (ver auth.require_admin_key); sin
la clave correcta responde 401 y el contador no se toca.

Normalmente lo llama el script de cron scripts/reset_bandwidth.py al
inicio de cada periodo, pero tambien se puede llamar a mano:

    curl -X POST -H "X-Admin-Key: $ADMIN_KEY" https://proxy/api/admin/reset-bandwidth
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from scan_proxy.auth import require_admin_key
from scan_proxy.models.schemas import BandwidthResponse, ResetResponse
from scan_proxy.services.resolver import resolver

router = APIRouter()


@router.post(
    "/api/admin/reset-bandwidth",
    response_model=ResetResponse,
    dependencies=[Depends(require_admin_key)],
)
async def reset_bandwidth():
    resolver.gate.reset()
    return ResetResponse(
        status="ok",
        bandwidth=BandwidthResponse(**asdict(resolver.gate.current_usage())),
    )
