"""Wires the history core to the host's events and the user's commands."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Coroutine, Set

from ..core.history import HistoryStore, WindowHistory, WindowId
from ..core.navigation import NavigationEngine
from ..core.reconciliation import ReconciliationLoop
from ..core.suppression import SuppressionController
from ..events import (
    CommandInvoked,
    EventBus,
    HistoryChanged,
    HistoryCleared,
    TabActivated,
    ToolbarClicked,
    WindowRemoved,
)
from ..utils.telemetry import NavigationTelemetry
from .commands import Command, CommandDispatcher, CommandOutcome
from .host import BrowserHost
from .settings import Settings

__all__ = ["TabHistoryTracker"]

LOGGER = logging.getLogger(__name__)

class TabHistoryTracker:
    """Owns one history store and everything that reads or writes it.

    Lifecycle::

        tracker = TabHistoryTracker(host, bus, settings)
        await tracker.start()      # seed from active tabs, start reconciliation
        ...
        await tracker.aclose()     # stop loop, cancel pending work

    Bus subscriptions are made in the constructor. Handlers are synchronous;
    anything that must talk to the host is scheduled as a task owned by the
    tracker and cancelled on :meth:`aclose`.
    """

    def __init__(
        self,
        host: BrowserHost,
        bus: EventBus,
        settings: Settings | None = None,
        *,
        telemetry: NavigationTelemetry | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._host = host
        self._bus = bus
        self._telemetry = telemetry or NavigationTelemetry(enabled=False)
        self._store = HistoryStore(max_length=self._settings.max_stack_length)
        self._engine = NavigationEngine(self._store)
        self._suppression = SuppressionController(host, timeout=self._settings.suppression_timeout)
        self._dispatcher = CommandDispatcher(
            host,
            self._engine,
            self._suppression,
            on_history_changed=self._publish_history,
            on_cleared=self._publish_cleared,
        )
        self._reconciler = ReconciliationLoop(
            host,
            self._engine,
            interval=self._settings.reconcile_interval,
            on_pruned=self._on_pruned,
        )
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._started = False
        self._closed = False

        bus.subscribe(TabActivated, self._on_tab_activated)
        bus.subscribe(WindowRemoved, self._on_window_removed)
        bus.subscribe(CommandInvoked, self._on_command_invoked)
        bus.subscribe(ToolbarClicked, self._on_toolbar_clicked)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def store(self) -> HistoryStore:
        return self._store

    @property
    def engine(self) -> NavigationEngine:
        return self._engine

    @property
    def suppression(self) -> SuppressionController:
        return self._suppression

    @property
    def reconciler(self) -> ReconciliationLoop:
        return self._reconciler

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def settings(self) -> Settings:
        return self._settings

    def history(self, window_id: WindowId) -> WindowHistory:
        return self._store.history(window_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        seeded = await self._dispatcher.seed_windows()
        LOGGER.info("Tracking %d window(s)", seeded)
        self._reconciler.start()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        for event_type, handler in (
            (TabActivated, self._on_tab_activated),
            (WindowRemoved, self._on_window_removed),
            (CommandInvoked, self._on_command_invoked),
            (ToolbarClicked, self._on_toolbar_clicked),
        ):
            self._bus.unsubscribe(event_type, handler)
        await self._reconciler.aclose()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._suppression.aclose()
        self._telemetry.flush()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def run_command(self, name: "str | Command") -> CommandOutcome:
        outcome = await self._dispatcher.dispatch(name)
        if outcome is CommandOutcome.CLEARED:
            self._telemetry.history_cleared(len(self._store))
        elif outcome is CommandOutcome.NAVIGATED:
            window_id = self._dispatcher.last_window_id
            if window_id is not None:
                back, forward = self._store.get(window_id)
                self._telemetry.navigated(
                    window_id,
                    forward=Command.parse(name) is Command.ROLL_RIGHT,
                    back_depth=len(back),
                    forward_depth=len(forward),
                )
        return outcome

    # ------------------------------------------------------------------
    # Bus handlers
    # ------------------------------------------------------------------
    def _on_tab_activated(self, event: TabActivated) -> None:
        if self._suppression.is_suppressing:
            LOGGER.debug("Ignoring activation of tab %s during suppression", event.tab_id)
            return
        self._engine.record_activation(event.window_id, event.tab_id)
        self._publish_history(event.window_id)

    def _on_window_removed(self, event: WindowRemoved) -> None:
        LOGGER.debug("Window %s removed, dropping its history", event.window_id)
        self._store.delete(event.window_id)
        self._publish_history(event.window_id)

    def _on_command_invoked(self, event: CommandInvoked) -> None:
        LOGGER.debug("Command %s from %s", event.name, event.source)
        self._spawn(self.run_command(event.name))

    def _on_toolbar_clicked(self, event: ToolbarClicked) -> None:
        del event
        self._spawn(self.run_command(Command.ROLL_LEFT))

    def _on_pruned(self, window_id: WindowId, dropped: int) -> None:
        LOGGER.debug("Reconciliation dropped %d stale entries from window %s", dropped, window_id)
        self._telemetry.reconcile_pruned(window_id, dropped)
        self._publish_history(window_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._closed:
            coro.close()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            LOGGER.debug("No running event loop; command dropped")
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _publish_history(self, window_id: WindowId) -> None:
        back, forward = self._store.get(window_id)
        self._bus.publish(HistoryChanged(window_id=window_id, back=tuple(back), forward=tuple(forward)))

    def _publish_cleared(self) -> None:
        self._bus.publish(HistoryCleared())
