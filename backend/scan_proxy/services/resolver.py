"""
Pipeline de resolucion de paginas (Resolver).

Une todos los servicios para responder una peticion (capitulo, pagina):

    VALIDATING
        |
    CACHE_LOOKUP --> HIT positivo ---------------------------+
        |        --> HIT negativo ---------------------------+
        | MISS                                               |
    QUOTA_CHECK --> cuota agotada: QuotaExceeded (503)        |
        |                                                    |
    FETCHING (a traves del UpstreamLimiter)                  |
        |--> OK        : guarda Hit en cache                 |
        |--> 404       : guarda Negative en cache            |
        |--> otro error: OriginTransientFailure, NO cachea   |
        |                                                    |
    RESPONDING <---------------------------------------------+
        (mide los bytes de imagen que salen y los reporta a la
         BandwidthGate)

Dos modos:
- FULL (GET): descarga la imagen completa.
- EXISTENCE (HEAD): solo pregunta al origen si la pagina existe. Comparte
  el cache con FULL: un Hit o un Negative guardado por cualquiera de los
  dos modos sirve para el otro. Un HEAD exitoso no guarda nada (no hay
  bytes que guardar), pero un 404 si se guarda como Negative.

Los errores se lanzan como excepciones del dominio (services/errors.py);
"pagina no encontrada" NO es un error sino un resultado esperado, por eso
viaja dentro de Resolution con outcome NOT_FOUND.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from scan_proxy.services.bandwidth import BandwidthGate
from scan_proxy.services.cache import CacheKey, ContentCache, Hit, Negative
from scan_proxy.services.errors import InvalidInput, OriginNotFound, QuotaExceeded
from scan_proxy.services.origin import OriginClient
from scan_proxy.services.upstream import UpstreamLimiter
from scan_proxy.services.validator import validate_page_request

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    FULL = "full"
    EXISTENCE = "existence"


class Outcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"


@dataclass
class Resolution:
    """
    Resultado de resolver una pagina.

    Atributos:
        key (CacheKey): Clave de la pagina.
        outcome (Outcome): FOUND o NOT_FOUND.
        cache_status (CacheStatus): HIT si se respondio desde el cache.
        content (bytes | None): Bytes de la imagen. Solo en modo FULL con
            outcome FOUND.
    """
    key: CacheKey
    outcome: Outcome
    cache_status: CacheStatus
    content: bytes | None = None


class Resolver:
    """
    Orquestador del pipeline. Recibe sus colaboradores por constructor
    (inyeccion de dependencias) para que los tests puedan armar uno con
    un origen simulado y relojes controlados.
    """

    def __init__(
        self,
        cache: ContentCache,
        gate: BandwidthGate,
        limiter: UpstreamLimiter,
        origin: OriginClient,
    ):
        self.cache = cache
        self.gate = gate
        self.limiter = limiter
        self.origin = origin
        # Descargas en curso. asyncio solo guarda referencias debiles a las
        # tasks; sin este set una descarga huerfana podria desaparecer.
        self._fetches: set[asyncio.Task] = set()

    async def resolve(self, chapter: str, page: str, mode: Mode = Mode.FULL) -> Resolution:
        """
        Resuelve una pagina a partir de los parametros crudos de la URL.

        Raises:
            InvalidInput: Parametros invalidos (antes de tocar el cache).
            QuotaExceeded: Cache miss con la cuota agotada.
            OriginTransientFailure: Fallo del origen que no es 404.
        """
        # --- VALIDATING ---
        validation = validate_page_request(chapter, page)
        if not validation.is_valid:
            raise InvalidInput(validation.error)
        key = validation.key

        # --- CACHE_LOOKUP ---
        entry = self.cache.get(key)
        if isinstance(entry, Hit):
            logger.debug("Cache hit for %s", key)
            content = entry.content if mode is Mode.FULL else None
            resolution = Resolution(key, Outcome.FOUND, CacheStatus.HIT, content)
        elif isinstance(entry, Negative):
            logger.debug("Negative cache hit for %s", key)
            resolution = Resolution(key, Outcome.NOT_FOUND, CacheStatus.HIT)
        else:
            # --- QUOTA_CHECK ---
            if not self.gate.check_admit():
                raise QuotaExceeded(self.gate.next_reset())

            # --- FETCHING ---
            # shield(): si el cliente se desconecta y la peticion se
            # cancela, la descarga sigue y llena el cache para la proxima.
            fetch = asyncio.ensure_future(self._fetch(key, mode))
            self._fetches.add(fetch)
            fetch.add_done_callback(self._fetch_done)
            resolution = await asyncio.shield(fetch)

        return self._respond(resolution)

    def _fetch_done(self, fetch: asyncio.Task) -> None:
        self._fetches.discard(fetch)
        # Retirar la excepcion: si el cliente ya se fue nadie la espera.
        if not fetch.cancelled() and fetch.exception() is not None:
            logger.debug("Origin fetch failed: %s", fetch.exception())

    async def _fetch(self, key: CacheKey, mode: Mode) -> Resolution:
        content = None
        try:
            if mode is Mode.FULL:
                content = await self.limiter.schedule(
                    lambda: self.origin.fetch(key.chapter, key.page_label)
                )
            else:
                await self.limiter.schedule(
                    lambda: self.origin.probe(key.chapter, key.page_label)
                )
        except OriginNotFound:
            logger.info("Origin has no page for %s, caching negative result", key)
            self.cache.put_negative(key)
            return Resolution(key, Outcome.NOT_FOUND, CacheStatus.MISS)

        if content is not None:
            self.cache.put_hit(key, content)
            logger.info("Fetched %s from origin (%d bytes)", key, len(content))
        return Resolution(key, Outcome.FOUND, CacheStatus.MISS, content)

    def _respond(self, resolution: Resolution) -> Resolution:
        # --- RESPONDING ---
        # Solo cuentan los bytes de imagen que realmente salen al cliente.
        if resolution.content is not None:
            self.gate.record_bytes(len(resolution.content))
        return resolution


# Instancia global del pipeline (Singleton implicito), con sus servicios
# configurados desde settings. Las rutas la importan; los tests la
# reemplazan con monkeypatch por una armada con un origen simulado.
resolver = Resolver(
    cache=ContentCache(),
    gate=BandwidthGate(),
    limiter=UpstreamLimiter(),
    origin=OriginClient(),
)
