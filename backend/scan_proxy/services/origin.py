"""
Cliente HTTP del sitio de origen.

Este modulo encapsula TODA la comunicacion con el origen. Ningun otro
archivo deberia usar httpx directamente para hablar con el sitio de scans.

Dos operaciones:
- fetch(): GET completo, retorna los bytes de la imagen.
- probe(): HEAD, solo verifica que la pagina exista (sin descargar nada).

Clasificacion de resultados:
    2xx            -> exito
    404            -> OriginNotFound (el pipeline lo guarda en cache negativo)
    cualquier otro -> OriginTransientFailure (timeout, conexion, 403, 5xx...)

Patron de diseno: Inyeccion de dependencias
-------------------------------------------
El constructor acepta un `client` opcional. En produccion se crea un
httpx.AsyncClient real; en los tests se pasa uno con httpx.MockTransport
que simula el origen sin hacer peticiones de red.
"""

import asyncio
import logging

import httpx

from scan_proxy.config import settings
from scan_proxy.services.errors import OriginNotFound, OriginTransientFailure

logger = logging.getLogger(__name__)


class OriginClient:

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = settings.SOURCE_BASE_URL,
        fetch_timeout: float = settings.ORIGIN_FETCH_TIMEOUT,
        probe_timeout: float = settings.ORIGIN_PROBE_TIMEOUT,
        user_agent: str = settings.USER_AGENT,
    ):
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.base_url = base_url.rstrip("/")
        self.fetch_timeout = fetch_timeout
        self.probe_timeout = probe_timeout
        # Va en cada peticion (y no en el cliente) para que tambien lo
        # lleve un cliente inyectado.
        self.user_agent = user_agent

    def url_for(self, chapter: int, page_label: str) -> str:
        """
        Arma la URL de una pagina.

            >>> origin_client.url_for(1050, "03")
            'https://mangamoins.com/files/scans/OP1050/03.png'
        """
        return f"{self.base_url}/files/scans/OP{chapter}/{page_label}.png"

    async def fetch(self, chapter: int, page_label: str) -> bytes:
        response = await self._request("GET", self.url_for(chapter, page_label), self.fetch_timeout)
        return response.content

    async def probe(self, chapter: int, page_label: str) -> None:
        await self._request("HEAD", self.url_for(chapter, page_label), self.probe_timeout)

    async def _request(self, method: str, url: str, timeout: float) -> httpx.Response:
        # El timeout de httpx aplica por fase (conexion, lectura...). El
        # wait_for agrega un tope TOTAL para que un origen que responde
        # gota a gota no ocupe un slot del limitador indefinidamente.
        try:
            response = await asyncio.wait_for(
                self.client.request(method, url, headers={"User-Agent": self.user_agent}, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Origin timeout after %ss: %s %s", timeout, method, url)
            raise OriginTransientFailure(f"Timeout fetching {url}") from e
        except httpx.HTTPError as e:
            logger.warning("Origin transport error for %s %s: %s", method, url, e)
            raise OriginTransientFailure(f"Error fetching {url}: {e}") from e

        if response.status_code == 404:
            raise OriginNotFound(url)
        if not response.is_success:
            logger.warning("Origin returned %d for %s %s", response.status_code, method, url)
            raise OriginTransientFailure(f"Origin returned {response.status_code} for {url}")
        return response

    async def aclose(self) -> None:
        await self.client.aclose()
