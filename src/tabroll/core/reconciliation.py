"""Periodic sweep that drops history entries for tabs the host no longer has."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Callable

from .navigation import NavigationEngine

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.host import BrowserHost

__all__ = ["ReconciliationLoop", "DEFAULT_RECONCILE_INTERVAL"]

LOGGER = logging.getLogger(__name__)

DEFAULT_RECONCILE_INTERVAL = 1.0

# Called with (window_id, dropped_entry_count).
PruneListener = Callable[[int, int], None]


class ReconciliationLoop:
    """Intersects tracked history with the live tab set every ``interval`` seconds.

    Removal notifications can be missed or arrive out of order; this pass is
    what eventually heals the store. Windows the host reports but the store
    does not track are skipped.
    """

    def __init__(
        self,
        host: "BrowserHost",
        engine: NavigationEngine,
        *,
        interval: float = DEFAULT_RECONCILE_INTERVAL,
        on_pruned: PruneListener | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._host = host
        self._engine = engine
        self._interval = interval
        self._on_pruned = on_pruned
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        return self._ticks

    async def tick(self) -> int:
        """Run one reconciliation pass; returns how many tracked windows were checked."""

        self._ticks += 1
        try:
            windows = await self._host.list_windows(normal_only=True)
        except Exception as exc:
            LOGGER.debug("Reconciliation skipped, window enumeration failed: %s", exc)
            return 0

        store = self._engine.store
        checked = 0
        for window in windows:
            if window.id not in store:
                continue
            before = sum(map(len, store.get(window.id)))
            self._engine.prune_dead(window.id, window.tab_ids)
            dropped = before - sum(map(len, store.get(window.id)))
            if dropped and self._on_pruned is not None:
                self._on_pruned(window.id, dropped)
            checked += 1
        return checked

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        LOGGER.debug("Reconciliation loop started (interval=%.2fs)", self._interval)
        return self._task

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        LOGGER.debug("Reconciliation loop stopped after %d tick(s)", self._ticks)

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Reconciliation tick %d failed; retrying next interval", self._ticks)
            await asyncio.sleep(self._interval)
