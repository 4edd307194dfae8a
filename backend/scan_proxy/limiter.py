"""
Modulo de limitacion de tasa por cliente (Rate Limiting por IP).

No confundir con el limitador hacia el ORIGEN (services/upstream.py):

- Este modulo protege a NUESTRO servidor: cuantas peticiones puede hacer
  una misma IP al proxy por unidad de tiempo.
- services/upstream.py protege al sitio de ORIGEN: cuantas descargas
  hacemos nosotros hacia el, sin importar cuantos clientes haya.

Usamos SlowAPI, un wrapper de la libreria "limits" para FastAPI. Si una IP
excede el limite, SlowAPI responde HTTP 429 (Too Many Requests) sin
ejecutar el endpoint.

Arquitectura: Patron Singleton implicito
-----------------------------------------
UNA instancia global de Limiter, importada por las rutas, para que todas
compartan el mismo estado de conteo.
"""

from slowapi import Limiter

# get_remote_address extrae la IP del cliente del objeto Request.
# Detras de un reverse proxy (Render, Railway, Nginx) habria que confiar
# en X-Forwarded-For; uvicorn lo resuelve con --proxy-headers.
from slowapi.util import get_remote_address

# Contadores en memoria: el proxy corre en un solo proceso y todo su
# estado (cache, cuota) tambien es local, asi que no tiene sentido Redis.
limiter = Limiter(key_func=get_remote_address)
