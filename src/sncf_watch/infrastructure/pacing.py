from __future__ import annotations

import asyncio


class Pacer:
    """Cancellable timer for the poll loop's waits.

    stop() wakes any pending sleep at once; every later sleep returns
    immediately.
    """

    def __init__(self) -> None:
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def sleep(self, seconds: float) -> bool:
        """Wait for seconds; return True if the full delay elapsed, False if stopped."""
        if self._stop.is_set():
            return False
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False
