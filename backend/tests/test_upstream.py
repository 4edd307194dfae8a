import asyncio
import time

import pytest

from scan_proxy.services.upstream import UpstreamLimiter

# Margen para el jitter del event loop al medir tiempos reales.
TOLERANCE = 0.005


class Recorder:
    """Tarea de prueba que registra inicio, fin y concurrencia maxima."""

    def __init__(self, duration: float):
        self.duration = duration
        self.starts: list[float] = []
        self.ends: list[float] = []
        self.order: list[int] = []
        self.active = 0
        self.peak = 0

    def task(self, n: int):
        async def run():
            self.starts.append(time.monotonic())
            self.order.append(n)
            self.active += 1
            self.peak = max(self.peak, self.active)
            await asyncio.sleep(self.duration)
            self.active -= 1
            self.ends.append(time.monotonic())
            return n
        return run


def test_concurrency_ceiling_with_n_plus_one_tasks():
    limiter = UpstreamLimiter(max_concurrent=5, min_interval=0.02)
    recorder = Recorder(duration=0.3)

    async def main():
        return await asyncio.gather(*(limiter.schedule(recorder.task(n)) for n in range(6)))

    results = asyncio.run(main())

    assert results == [0, 1, 2, 3, 4, 5]
    assert recorder.peak == 5
    # La sexta tarea solo arranca cuando termina alguna de las primeras.
    assert recorder.starts[5] >= min(recorder.ends[:5]) - TOLERANCE
    assert limiter.in_flight == 0


def test_dispatches_are_spaced():
    limiter = UpstreamLimiter(max_concurrent=5, min_interval=0.05)
    recorder = Recorder(duration=0)

    async def main():
        await asyncio.gather(*(limiter.schedule(recorder.task(n)) for n in range(4)))

    asyncio.run(main())

    gaps = [b - a for a, b in zip(recorder.starts, recorder.starts[1:])]
    assert all(gap >= 0.05 - TOLERANCE for gap in gaps)


def test_tasks_dispatch_in_fifo_order():
    limiter = UpstreamLimiter(max_concurrent=1, min_interval=0)
    recorder = Recorder(duration=0.01)

    async def main():
        await asyncio.gather(*(limiter.schedule(recorder.task(n)) for n in range(5)))

    asyncio.run(main())

    assert recorder.order == [0, 1, 2, 3, 4]


def test_late_arrival_does_not_jump_the_queue():
    limiter = UpstreamLimiter(max_concurrent=2, min_interval=0)
    order = []
    release_first = asyncio.Event()
    late = []

    def record(name):
        async def run():
            order.append(name)
        return run

    async def first():
        order.append("a")
        await release_first.wait()
        # Llega una tarea nueva en el mismo tick en que se libera el slot.
        late.append(asyncio.ensure_future(limiter.schedule(record("late"))))

    async def second():
        order.append("b")
        await asyncio.sleep(1)

    async def main():
        running = [
            asyncio.ensure_future(limiter.schedule(first)),
            asyncio.ensure_future(limiter.schedule(second)),
        ]
        await asyncio.sleep(0)
        queued = asyncio.ensure_future(limiter.schedule(record("queued")))
        await asyncio.sleep(0)
        release_first.set()
        await asyncio.gather(running[0], queued)
        await late[0]
        running[1].cancel()

    asyncio.run(main())

    assert order == ["a", "b", "queued", "late"]


def test_cancelled_waiter_leaves_the_queue():
    limiter = UpstreamLimiter(max_concurrent=1, min_interval=0)
    gate = asyncio.Event()

    async def hold():
        await gate.wait()
        return "held"

    async def ok():
        return "ok"

    async def main():
        holder = asyncio.ensure_future(limiter.schedule(hold))
        await asyncio.sleep(0)
        waiter = asyncio.ensure_future(limiter.schedule(ok))
        await asyncio.sleep(0)
        waiter.cancel()
        gate.set()
        assert await holder == "held"
        return await limiter.schedule(ok)

    assert asyncio.run(main()) == "ok"
    assert limiter.in_flight == 0


def test_errors_propagate_and_free_the_slot():
    limiter = UpstreamLimiter(max_concurrent=1, min_interval=0)

    async def boom():
        raise RuntimeError("origin down")

    async def ok():
        return "ok"

    async def main():
        with pytest.raises(RuntimeError, match="origin down"):
            await limiter.schedule(boom)
        return await limiter.schedule(ok)

    assert asyncio.run(main()) == "ok"
    assert limiter.in_flight == 0


def test_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        UpstreamLimiter(max_concurrent=0)
