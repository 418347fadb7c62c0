"""Gate that keeps engine-initiated tab activations out of the history.

Activating a tab makes the host raise the same activation event a user click
would. While the controller is :attr:`SuppressionState.SUPPRESSING` the
recording path drops those events. Suppression ends ``timeout`` seconds after
the host finished (or failed) the most recent activation request.

The timeout is a debounce for event delivery latency, not a handshake with
the host: activations the user makes inside the window are dropped too, and a
host slower than ``timeout`` leaks the engine's own activation into history.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Set

from .history import TabId

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.host import BrowserHost

__all__ = ["SuppressionState", "SuppressionController", "DEFAULT_SUPPRESSION_TIMEOUT"]

LOGGER = logging.getLogger(__name__)

DEFAULT_SUPPRESSION_TIMEOUT = 2.0


class SuppressionState(Enum):
    IDLE = auto()
    SUPPRESSING = auto()


class SuppressionController:
    """Issues tab activations to the host and suppresses their echo."""

    def __init__(
        self,
        host: "BrowserHost",
        *,
        timeout: float = DEFAULT_SUPPRESSION_TIMEOUT,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._host = host
        self._timeout = timeout
        self._loop = loop
        self._state = SuppressionState.IDLE
        self._timer: asyncio.TimerHandle | None = None
        self._expires_at: float | None = None
        self._tasks: Set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------
    @property
    def state(self) -> SuppressionState:
        return self._state

    @property
    def is_suppressing(self) -> bool:
        return self._state is SuppressionState.SUPPRESSING

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def expires_at(self) -> float | None:
        """Loop time at which suppression ends, ``None`` while no timer is armed."""
        return self._expires_at

    @property
    def pending_activations(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------
    def request_activation(self, tab_id: TabId | None) -> asyncio.Task[None] | None:
        """Ask the host to focus ``tab_id`` without recording the resulting event.

        Returns the task performing the request so callers may await it; the
        caller is never required to.
        """

        if tab_id is None:
            return None
        loop = self._resolve_loop()
        self._enter_suppressing()
        task = loop.create_task(self._activate(tab_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _activate(self, tab_id: TabId) -> None:
        try:
            await self._host.activate_tab(tab_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.debug("Activation of tab %s failed: %s", tab_id, exc)
        self._arm_timer()

    def release(self) -> None:
        """End suppression immediately and drop any armed timer."""
        self._cancel_timer()
        if self._state is not SuppressionState.IDLE:
            LOGGER.debug("Suppression released")
        self._state = SuppressionState.IDLE

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _enter_suppressing(self) -> None:
        if self._state is SuppressionState.IDLE:
            LOGGER.debug("Suppressing activation events")
        self._state = SuppressionState.SUPPRESSING

    def _arm_timer(self) -> None:
        loop = self._resolve_loop()
        self._cancel_timer()
        self._expires_at = loop.time() + self._timeout
        self._timer = loop.call_later(self._timeout, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._expires_at = None
        if self._tasks:
            # Another request is still in flight; its completion re-arms the timer.
            return
        self.release()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._expires_at = None

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
