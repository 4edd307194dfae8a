"""
Script de reset periodico de la cuota de ancho de banda.

Llama a POST /api/admin/reset-bandwidth del proxy para volver a 0 el
contador de bytes servidos. Esta disenado para ejecutarse via cron al
inicio de cada periodo de facturacion del hosting.

Por que un script externo y no un timer dentro del proxy?
----------------------------------------------------------
El proxy no guarda estado en disco: si se reinicia, el contador vuelve a 0
y cualquier timer interno se perderia. Un cron externo es simple, visible
y no depende del ciclo de vida del proceso.

Configuracion del crontab (el dia 1 de cada mes a las 00:00 UTC):
    0 0 1 * * cd /ruta/proyecto && python scripts/reset_bandwidth.py

Variables de entorno:
    PROXY_URL  URL base del proxy (por defecto http://localhost:3001)
    ADMIN_KEY  Clave de administrador (obligatoria)

Uso:
    ADMIN_KEY=... python scripts/reset_bandwidth.py
"""

import os
import sys

# httpx: el mismo cliente HTTP que usa el proxy para hablar con el origen.
# Aqui usamos su API sincrona porque el script hace una sola peticion.
import httpx

DEFAULT_PROXY_URL = "http://localhost:3001"


def reset_bandwidth(proxy_url: str, admin_key: str, client: httpx.Client | None = None) -> dict:
    """
    Resetea la cuota y retorna el JSON de confirmacion del proxy.

    Parametros:
        proxy_url (str): URL base del proxy (sin la ruta del endpoint).
        admin_key (str): Valor del header X-Admin-Key.
        client (httpx.Client | None): Cliente opcional (inyectable en tests).

    Raises:
        httpx.HTTPStatusError: Si el proxy responde con error (ej: 401).
    """
    client = client or httpx.Client(timeout=10)
    with client:
        response = client.post(
            f"{proxy_url.rstrip('/')}/api/admin/reset-bandwidth",
            headers={"X-Admin-Key": admin_key},
        )
        response.raise_for_status()
        return response.json()


def main() -> int:
    admin_key = os.getenv("ADMIN_KEY")
    if not admin_key:
        print("ADMIN_KEY is not set", file=sys.stderr)
        return 1

    proxy_url = os.getenv("PROXY_URL", DEFAULT_PROXY_URL)
    try:
        result = reset_bandwidth(proxy_url, admin_key)
    except httpx.HTTPError as e:
        print(f"Reset failed: {e}", file=sys.stderr)
        return 1

    bandwidth = result["bandwidth"]
    print(f"Bandwidth reset: {bandwidth['used']}/{bandwidth['limit']} bytes, next reset {bandwidth['next_reset']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
