"""
Compuerta de cuota de ancho de banda (Bandwidth Gate).

Lleva la cuenta de cuantos bytes de imagen le servimos a los clientes.
Cuando el contador llega a la cuota configurada, la compuerta se "cierra":
las peticiones que necesitan ir al origen reciben 503 hasta que un
administrador resetee el contador (POST /api/admin/reset-bandwidth, o el
script de cron scripts/reset_bandwidth.py).

Importante: la compuerta solo bloquea trafico NUEVO hacia el origen. Las
paginas que ya estan en el cache (positivas o negativas) se siguen
sirviendo normalmente.

Que bytes se cuentan?
---------------------
Todos los bytes de imagen que salen en una respuesta 200 a un GET, sean
HIT o MISS. La cuota protege el ancho de banda de SALIDA del servidor
(lo que cobra el hosting), no solo el trafico hacia el origen.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from scan_proxy.config import settings

logger = logging.getLogger(__name__)


@dataclass
class BandwidthUsage:
    """Foto de solo lectura del contador, para monitoreo (/api/stats)."""
    used: int
    limit: int
    remaining: int
    percent_used: float
    remaining_percent: float
    last_reset: datetime
    next_reset: datetime


class BandwidthGate:
    """
    Contador de bytes servidos con tope fijo.

    El contador es compartido por todas las peticiones concurrentes, asi
    que cada lectura-modificacion pasa por un lock.

    Parametros:
        limit (int): Cuota en bytes.
        reset_interval (timedelta): Periodo del reset programado. Solo se
            usa para calcular next_reset() e informarlo en el 503.
    """

    def __init__(
        self,
        limit: int = settings.BANDWIDTH_LIMIT_BYTES,
        reset_interval: timedelta = timedelta(hours=settings.BANDWIDTH_RESET_INTERVAL_HOURS),
    ):
        self.limit = limit
        self.reset_interval = reset_interval
        self._used = 0
        self._last_reset = datetime.now(timezone.utc)
        self._lock = threading.Lock()

    def check_admit(self) -> bool:
        """True si todavia queda cuota para ir al origen."""
        with self._lock:
            return self._used < self.limit

    def record_bytes(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"Byte count must be non-negative, got {n}")
        if n == 0:
            return
        with self._lock:
            was_open = self._used < self.limit
            self._used += n
            used = self._used
            exhausted = was_open and used >= self.limit
        if exhausted:
            logger.warning("Bandwidth quota exhausted (%d/%d bytes)", used, self.limit)

    def reset(self) -> None:
        """
        Vuelve el contador a 0.

        La validacion de la credencial de administrador NO ocurre aqui:
        la hace la dependencia require_admin_key antes de llamar a reset().
        """
        with self._lock:
            previous = self._used
            self._used = 0
            self._last_reset = datetime.now(timezone.utc)
        logger.info("Bandwidth counter reset (was %d bytes)", previous)

    def next_reset(self) -> datetime:
        with self._lock:
            return self._last_reset + self.reset_interval

    def current_usage(self) -> BandwidthUsage:
        with self._lock:
            used = self._used
            last_reset = self._last_reset
        remaining = max(self.limit - used, 0)
        # Evitamos division por cero si alguien configura una cuota de 0.
        percent_used = min(used / self.limit * 100, 100.0) if self.limit else 100.0
        return BandwidthUsage(
            used=used,
            limit=self.limit,
            remaining=remaining,
            percent_used=round(percent_used, 2),
            remaining_percent=round(100.0 - percent_used, 2),
            last_reset=last_reset,
            next_reset=last_reset + self.reset_interval,
        )
