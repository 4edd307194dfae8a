"""
Modulo de configuracion centralizada del proxy.

Este archivo define TODAS las constantes y configuraciones que el proxy
necesita para funcionar: la URL del origen, los TTL del cache, los limites
del rate limiter hacia el origen, la cuota de ancho de banda y las claves
de acceso.

Por que centralizar la configuracion?
-------------------------------------
1. **Un solo lugar para cambiar valores:** si el sitio de origen cambia de
   dominio, solo se modifica SOURCE_BASE_URL (o la variable de entorno).

2. **Configuracion por entorno:** usamos variables de entorno (os.getenv)
   para que la misma imagen Docker sirva en desarrollo y en produccion sin
   cambiar el codigo fuente.

3. **Seguridad:** las claves (API_KEY, ADMIN_KEY) NUNCA se hardcodean.
   Si no estan definidas, la API publica queda abierta y el endpoint de
   administracion queda cerrado para todos.

Patron de diseno: **Singleton implicito**
La instancia `settings` se crea UNA sola vez al importar este modulo.
Todos los modulos que hagan `from scan_proxy.config import settings`
reciben la MISMA instancia (y los tests pueden modificar sus atributos).
"""

import os


def _optional_int(name: str) -> int | None:
    # Variables vacias o ausentes significan "sin limite".
    value = os.getenv(name, "").strip()
    return int(value) if value else None


class Settings:
    """
    Clase que encapsula toda la configuracion del proxy.

    Usamos una clase simple con atributos de clase (igual que una tabla de
    constantes) en vez de pydantic-settings: no necesitamos validacion
    sofisticada, solo valores por defecto razonables y overrides por entorno.
    """

    # ---------- Origen (sitio de scans) ----------

    # Host fijo del que se descargan las imagenes. La URL completa de cada
    # pagina se arma como:
    #   {SOURCE_BASE_URL}/files/scans/OP{capitulo}/{pagina:02}.png
    SOURCE_BASE_URL: str = os.getenv("SOURCE_BASE_URL", "https://mangamoins.com").rstrip("/")

    # User-Agent identificable. Nos presentamos como bot para que el
    # administrador del origen sepa quien hace las peticiones.
    USER_AGENT: str = os.getenv("USER_AGENT", "Mozilla/5.0 (compatible; OPScraperBot/1.0)")

    # Timeouts en segundos. El GET descarga la imagen completa, el HEAD
    # solo pide headers, por eso tiene un limite mas corto.
    ORIGIN_FETCH_TIMEOUT: float = float(os.getenv("ORIGIN_FETCH_TIMEOUT", "10"))
    ORIGIN_PROBE_TIMEOUT: float = float(os.getenv("ORIGIN_PROBE_TIMEOUT", "5"))

    # ---------- Cache en memoria ----------

    # TTL de una imagen encontrada: 24 horas (86400 segundos).
    # Una pagina publicada practicamente nunca cambia.
    CACHE_HIT_TTL: float = float(os.getenv("CACHE_HIT_TTL", "86400"))

    # TTL del "cache negativo" (pagina que el origen respondio con 404): 1 hora.
    # Es mas corto porque los capitulos nuevos se publican por paginas y una
    # pagina que hoy no existe puede existir en un rato.
    CACHE_NEGATIVE_TTL: float = float(os.getenv("CACHE_NEGATIVE_TTL", "3600"))

    # Presupuesto de memoria del cache (suma de bytes de las imagenes).
    # 512 * 1024 * 1024 = 536,870,912 bytes.
    CACHE_MAX_BYTES: int = int(os.getenv("CACHE_MAX_BYTES", str(512 * 1024 * 1024)))

    # ---------- Rate limiting hacia el origen ----------

    # Maximo de descargas simultaneas al origen.
    UPSTREAM_MAX_CONCURRENT: int = int(os.getenv("UPSTREAM_MAX_CONCURRENT", "5"))

    # Separacion minima entre el inicio de dos descargas consecutivas (ms).
    # 200 ms = como mucho 5 peticiones nuevas por segundo.
    UPSTREAM_MIN_INTERVAL_MS: int = int(os.getenv("UPSTREAM_MIN_INTERVAL_MS", "200"))

    # ---------- Cuota de ancho de banda ----------

    # Bytes que podemos servir antes de cortar las descargas nuevas al origen.
    # 10 GB por defecto.
    BANDWIDTH_LIMIT_BYTES: int = int(os.getenv("BANDWIDTH_LIMIT_BYTES", str(10 * 1024 * 1024 * 1024)))

    # Cada cuanto se resetea la cuota (lo hace el script de cron
    # scripts/reset_bandwidth.py). Solo se usa para informar al cliente
    # cuando volvera a estar disponible el servicio.
    BANDWIDTH_RESET_INTERVAL_HOURS: float = float(os.getenv("BANDWIDTH_RESET_INTERVAL_HOURS", "720"))

    # ---------- Validacion de parametros ----------

    # Capitulo minimo aceptado. El maximo es opcional (None = sin limite).
    MIN_CHAPTER: int = int(os.getenv("MIN_CHAPTER", "1"))
    MAX_CHAPTER: int | None = _optional_int("MAX_CHAPTER")

    # ---------- Autenticacion ----------

    # Si API_KEY esta definida, los endpoints del proxy exigen el header
    # X-API-Key. ADMIN_KEY protege POST /api/admin/reset-bandwidth.
    API_KEY: str | None = os.getenv("API_KEY") or None
    ADMIN_KEY: str | None = os.getenv("ADMIN_KEY") or None

    # ---------- Capa HTTP ----------

    # Origenes permitidos para CORS, separados por coma.
    # Ejemplo: CORS_ORIGINS="https://lector.vercel.app,https://lector.netlify.app"
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    # Limite por IP (formato de la libreria "limits" que usa SlowAPI).
    PROXY_RATE_LIMIT: str = os.getenv("PROXY_RATE_LIMIT", "120/minute")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))


# Instancia unica de configuracion (patron Singleton implicito).
settings = Settings()
