"""
Dependencias de autenticacion (API key y admin key).

FastAPI ejecuta estas funciones ANTES del endpoint (Depends). Si la clave
no coincide, lanzan HTTPException(401) y el endpoint nunca corre, asi que
no se modifica ningun estado.

- require_api_key: opcional. Si settings.API_KEY no esta definida, el
  proxy es publico (como el servicio original). Si esta definida, el
  cliente debe mandar el header X-API-Key.
- require_admin_key: obligatoria. Si settings.ADMIN_KEY no esta definida,
  NADIE puede usar los endpoints de administracion.

Usamos secrets.compare_digest para comparar claves en tiempo constante y
no filtrar informacion por timing.
"""

import secrets

from fastapi import Header, HTTPException

from scan_proxy.config import settings


def _matches(provided: str | None, expected: str) -> bool:
    if provided is None:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


async def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    if settings.API_KEY is None:
        return
    if not _matches(x_api_key, settings.API_KEY):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    if settings.ADMIN_KEY is None or not _matches(x_admin_key, settings.ADMIN_KEY):
        raise HTTPException(status_code=401, detail="Invalid or missing admin key")
