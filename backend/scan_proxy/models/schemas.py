"""
Modulo de esquemas (schemas) de las respuestas JSON de la API.

Define la ESTRUCTURA EXACTA del JSON que devuelven /api/stats y
/api/admin/reset-bandwidth, usando Pydantic. Las respuestas del proxy en
si no usan schemas: son bytes de imagen (o un JSON de error).

Patron de diseno: Data Transfer Objects (DTOs)
----------------------------------------------
Estos schemas no tienen logica: solo transportan datos desde los
servicios (dataclasses internas) hacia el cliente. FastAPI los usa
tambien para la documentacion automatica en /docs.
"""

from datetime import datetime

from pydantic import BaseModel


class CacheStatsResponse(BaseModel):
    """
    Atributos:
        hits (int): Lecturas del cache que encontraron una entrada vigente
            (positiva o negativa).
        misses (int): Lecturas sin entrada (o con la entrada vencida).
        keys (int): Entradas vigentes en este momento.
    """
    hits: int
    misses: int
    keys: int


class BandwidthResponse(BaseModel):
    """
    Estado de la cuota de ancho de banda.

    Atributos:
        used (int): Bytes servidos desde el ultimo reset.
        limit (int): Cuota total en bytes.
        remaining (int): Bytes que quedan antes de cerrar la compuerta.
        percent_used (float): Porcentaje consumido (0-100).
        remaining_percent (float): Porcentaje restante (0-100).
        last_reset (datetime): Ultimo reset (o arranque del proceso).
        next_reset (datetime): Proximo reset programado.
    """
    used: int
    limit: int
    remaining: int
    percent_used: float
    remaining_percent: float
    last_reset: datetime
    next_reset: datetime


class UpstreamResponse(BaseModel):
    in_flight: int
    max_concurrent: int
    min_interval_ms: int


class StatsResponse(BaseModel):
    """Respuesta de GET /api/stats."""
    cache: CacheStatsResponse
    bandwidth: BandwidthResponse
    upstream: UpstreamResponse


class ResetResponse(BaseModel):
    """Respuesta de POST /api/admin/reset-bandwidth."""
    status: str
    bandwidth: BandwidthResponse


class ErrorResponse(BaseModel):
    """
    Schema estandar para respuestas de error.

    Es el formato que ya produce HTTPException de FastAPI:
    {"detail": "mensaje"}. Lo declaramos para documentarlo en /docs.
    """
    detail: str
