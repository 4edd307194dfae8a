"""
Punto de entrada principal del proxy (aplicacion FastAPI).

Aqui se:
1. Configura el logging del proceso.
2. Crea la instancia de la aplicacion FastAPI.
3. Configura los middlewares (CORS, rate limiting por IP).
4. Registra las rutas (proxy, stats, admin).
5. Define los endpoints de liveness (/) y health check (/api/health).

Arquitectura de la aplicacion:
------------------------------
    main.py (punto de entrada)
        |
        +-- routes/         (Capa HTTP delgada)
        |    +-- proxy.py      GET/HEAD /api/proxy/{chapter}/{page}
        |    +-- stats.py      GET /api/stats
        |    +-- admin.py      POST /api/admin/reset-bandwidth
        |
        +-- services/       (Logica del proxy, sin HTTP)
        |    +-- resolver.py   pipeline cache -> cuota -> origen
        |    +-- cache.py      cache con entradas positivas y negativas
        |    +-- upstream.py   rate limiter hacia el origen
        |    +-- bandwidth.py  cuota de ancho de banda
        |    +-- origin.py     cliente HTTP del origen
        |    +-- validator.py  validacion de capitulo/pagina
        |    +-- errors.py     excepciones del dominio
        |
        +-- models/schemas.py  (Respuestas JSON)
        +-- auth.py            (API key / admin key)
        +-- config.py          (Configuracion centralizada)
        +-- limiter.py         (Rate limiting por IP)

El flujo de una peticion HTTP es:
    Cliente -> CORS -> Rate limiter por IP -> API key -> Router -> Resolver
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

# Handler de SlowAPI que genera respuestas HTTP 429 (Too Many Requests)
# cuando una IP excede su limite.
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from scan_proxy.config import settings
from scan_proxy.limiter import limiter
from scan_proxy.routes.admin import router as admin_router
from scan_proxy.routes.proxy import router as proxy_router
from scan_proxy.routes.stats import router as stats_router
from scan_proxy.services.resolver import resolver

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # El cliente httpx del origen se crea al importar services/origin.py;
    # aqui solo nos aseguramos de cerrar sus conexiones al apagar.
    logger.info("Proxying %s (cache ttl %ss, quota %d bytes)",
                settings.SOURCE_BASE_URL, settings.CACHE_HIT_TTL, settings.BANDWIDTH_LIMIT_BYTES)
    yield
    await resolver.origin.aclose()
    logger.info("Origin HTTP client closed.")


app = FastAPI(title="OP Scan Proxy", lifespan=lifespan)

# ---------- Rate limiter por IP ----------

# SlowAPI busca el limiter en app.state desde el decorador de cada ruta.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ---------- CORS ----------

# Por defecto "*" (cualquier frontend puede leer las imagenes). En
# produccion conviene limitarlo al dominio del lector:
#   CORS_ORIGINS="https://mi-lector.vercel.app"
# Exponemos los headers propios para que el frontend pueda leerlos.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "HEAD", "POST"],
    allow_headers=["*"],
    expose_headers=[
        "X-Cache",
        "X-Bandwidth-Used",
        "X-Bandwidth-Limit",
        "X-Bandwidth-Remaining-Percent",
        "Retry-After",
    ],
)


# ---------- Liveness y health check ----------

@app.get("/", response_class=PlainTextResponse)
async def root():
    """Texto plano para verificar a mano que el proxy esta vivo."""
    return "OP Scraper Proxy is Active"


@app.get("/api/health")
async def health_check():
    """
    Endpoint de verificacion de salud para load balancers y plataformas
    como Render o Railway.

    Retorna:
        dict: {"status": "ok"} si el servidor esta funcionando.
    """
    return {"status": "ok"}


# ---------- Registro de rutas ----------

app.include_router(proxy_router)
app.include_router(stats_router)
app.include_router(admin_router)


def run():
    """Arranca uvicorn (console script `op-scan-proxy`)."""
    uvicorn.run("scan_proxy.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
