"""
Cache en memoria de paginas con entradas positivas y negativas.

Cada entrada del cache es una de dos cosas:

- **Hit:** los bytes de la imagen descargada del origen (TTL largo, 24h).
- **Negative:** la constancia de que el origen respondio 404 para esa
  pagina (TTL corto, 1h). Asi evitamos preguntar una y otra vez por
  paginas que todavia no se publicaron.

Por que cachetools.TLRUCache?
-----------------------------
TTLCache (el de proxy_cache en muchos proyectos) usa UN solo TTL para
todo el cache. Nosotros necesitamos un TTL distinto por entrada, y
TLRUCache lo permite con una funcion "ttu" (time-to-use) que calcula la
expiracion de cada item al insertarlo. Ademas:

- La expiracion es "perezosa": una entrada vencida simplemente deja de
  aparecer en get(), sin necesidad de un hilo de limpieza.
- Es LRU: cuando se llena el presupuesto de memoria, descarta primero
  lo menos usado.

cachetools NO es thread-safe, por eso todas las operaciones pasan por
un threading.Lock (secciones criticas cortas, sin await adentro).
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from cachetools import TLRUCache

from scan_proxy.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """
    Clave compuesta (capitulo, pagina).

    La pagina se rellena con ceros a 2 digitos; el relleno solo agrega,
    nunca trunca (pagina 123 -> "123").

        >>> str(CacheKey(1050, 3))
        'ch_1050_pg_03'
    """
    chapter: int
    page: int

    @property
    def page_label(self) -> str:
        return f"{self.page:02d}"

    def __str__(self) -> str:
        return f"ch_{self.chapter}_pg_{self.page_label}"


@dataclass(frozen=True)
class CacheEntry:
    """Entrada inmutable; expires_at usa el mismo reloj que el cache."""
    expires_at: float

    @property
    def size(self) -> int:
        return 1


@dataclass(frozen=True)
class Hit(CacheEntry):
    content: bytes

    @property
    def size(self) -> int:
        return max(len(self.content), 1)


@dataclass(frozen=True)
class Negative(CacheEntry):
    pass


@dataclass
class CacheStats:
    hits: int
    misses: int
    keys: int


def _time_to_use(key, entry: CacheEntry, now: float) -> float:
    return entry.expires_at


class ContentCache:
    """
    Cache de paginas con TTL por entrada.

    Parametros:
        max_bytes (int): Presupuesto total de memoria (suma de bytes de
            las imagenes). Las entradas negativas cuentan como 1 byte.
        hit_ttl (float): TTL por defecto de las entradas positivas.
        negative_ttl (float): TTL por defecto de las entradas negativas.
        timer: Reloj en segundos. Inyectable para los tests.
    """

    def __init__(
        self,
        max_bytes: int = settings.CACHE_MAX_BYTES,
        hit_ttl: float = settings.CACHE_HIT_TTL,
        negative_ttl: float = settings.CACHE_NEGATIVE_TTL,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.hit_ttl = hit_ttl
        self.negative_ttl = negative_ttl
        self._timer = timer
        self._entries = TLRUCache(
            maxsize=max_bytes,
            ttu=_time_to_use,
            timer=timer,
            getsizeof=lambda entry: entry.size,
        )
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Retorna la entrada vigente o None. Las vencidas cuentan como miss."""
        with self._lock:
            entry = self._entries.get(str(key))
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    def put_hit(self, key: CacheKey, content: bytes, ttl: float | None = None) -> None:
        ttl = self.hit_ttl if ttl is None else ttl
        self._store(key, Hit(expires_at=self._timer() + ttl, content=content))

    def put_negative(self, key: CacheKey, ttl: float | None = None) -> None:
        ttl = self.negative_ttl if ttl is None else ttl
        self._store(key, Negative(expires_at=self._timer() + ttl))

    def _store(self, key: CacheKey, entry: CacheEntry) -> None:
        with self._lock:
            try:
                # Reemplaza cualquier entrada anterior de la misma clave.
                self._entries[str(key)] = entry
            except ValueError:
                # La imagen sola supera el presupuesto completo del cache.
                self._entries.pop(str(key), None)
                logger.warning("Not caching %s: %d bytes exceeds cache budget", key, entry.size)

    def expire(self) -> None:
        """Purga las entradas vencidas (barrido explicito, opcional)."""
        with self._lock:
            self._entries.expire()

    def stats(self) -> CacheStats:
        with self._lock:
            self._entries.expire()
            return CacheStats(hits=self._hits, misses=self._misses, keys=len(self._entries))
