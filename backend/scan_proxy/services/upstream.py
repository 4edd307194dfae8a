"""
Limitador de peticiones hacia el origen (Upstream Limiter).

Garantiza dos cosas, sin importar cuantos clientes esten pidiendo paginas
que no estan en el cache al mismo tiempo:

1. Como maximo N descargas en curso a la vez (N=5 por defecto).
2. Entre el INICIO de dos descargas consecutivas pasan al menos M
   milisegundos (M=200 por defecto). Se mide de despacho a despacho, no
   de fin a inicio.

Las tareas que no pueden arrancar esperan en orden FIFO; ninguna se
descarta. El resultado (o la excepcion) de la tarea llega al caller tal
cual.

Como funciona?
--------------
- Una cola (deque) de futures guarda a los que esperan un slot. Al
  liberar un slot se le ENTREGA directamente al primero de la cola, sin
  pasar por el contador de slots libres. Asi alguien que llega tarde
  nunca se cuela delante de uno que ya estaba esperando.
  (asyncio.Semaphore no garantiza esto en todas las versiones de Python
  que soportamos.)
- La separacion minima se reserva en el mismo orden en que se obtienen
  los slots: cada tarea anota su hora de despacho (la ultima + M) de forma
  sincronica y duerme hasta esa hora. No hace falta un lock.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, TypeVar

from scan_proxy.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamLimiter:
    """
    Cola FIFO con tope de concurrencia y separacion minima entre despachos.

    Parametros:
        max_concurrent (int): Maximo de tareas ejecutandose a la vez (>= 1).
        min_interval (float): Segundos minimos entre dos despachos.
        clock (Callable[[], float]): Reloj monotono (inyectable en tests).

    Raises:
        ValueError: Si max_concurrent es menor a 1.
    """

    def __init__(
        self,
        max_concurrent: int = settings.UPSTREAM_MAX_CONCURRENT,
        min_interval: float = settings.UPSTREAM_MIN_INTERVAL_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self._clock = clock
        self._free_slots = max_concurrent
        self._waiters: deque[asyncio.Future] = deque()
        self._last_dispatch: float | None = None
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def _acquire_slot(self) -> None:
        if self._free_slots > 0 and not self._waiters:
            self._free_slots -= 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # El slot ya nos fue entregado: pasarlo al siguiente.
                self._release_slot()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release_slot(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._free_slots += 1

    async def schedule(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Ejecuta `task` respetando el tope de concurrencia y la separacion
        minima entre despachos.

        Parametros:
            task: Funcion sin argumentos que retorna un awaitable
                (ej: lambda: client.get(url)).

        Retorna:
            Lo que retorne la tarea. Si la tarea lanza, la excepcion se
            propaga sin modificar.
        """
        await self._acquire_slot()
        try:
            now = self._clock()
            dispatch_at = now
            if self._last_dispatch is not None:
                dispatch_at = max(now, self._last_dispatch + self.min_interval)
            self._last_dispatch = dispatch_at
            if dispatch_at > now:
                await asyncio.sleep(dispatch_at - now)

            self._in_flight += 1
            logger.debug("Upstream dispatch (%d/%d in flight)", self._in_flight, self.max_concurrent)
            try:
                return await task()
            finally:
                self._in_flight -= 1
        finally:
            self._release_slot()
