"""
Excepciones del dominio del proxy.

Los servicios NO conocen HTTP: lanzan estas excepciones y son las rutas
(routes/proxy.py) las que las traducen a HTTPException con el codigo de
estado correcto:

    InvalidInput            -> 400
    QuotaExceeded           -> 503 (+ Retry-After)
    OriginNotFound          -> 404 (y se guarda en el cache negativo)
    OriginTransientFailure  -> 502 (NUNCA se cachea)
"""

from datetime import datetime


class ProxyError(Exception):
    """Clase base de todos los errores del pipeline."""


class InvalidInput(ProxyError):
    """Capitulo o pagina con formato invalido o fuera de rango."""


class QuotaExceeded(ProxyError):
    """
    La cuota de ancho de banda esta agotada.

    Atributos:
        resets_at (datetime): Momento (UTC) en que se espera el proximo
            reset de la cuota. Se informa al cliente en la respuesta 503.
    """

    def __init__(self, resets_at: datetime):
        super().__init__(f"Bandwidth quota exceeded, resets at {resets_at.isoformat()}")
        self.resets_at = resets_at


class OriginNotFound(ProxyError):
    """El origen respondio 404: la pagina (todavia) no existe."""


class OriginTransientFailure(ProxyError):
    """Timeout, error de conexion o status inesperado del origen."""
