"""User-facing commands: navigate back, navigate forward, clear all history."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from ..core.history import HistoryStore, TabId, WindowId
from ..core.navigation import NavigationEngine
from ..core.suppression import SuppressionController
from .host import BrowserHost, WindowInfo

__all__ = ["Command", "CommandDispatcher", "CommandOutcome"]

LOGGER = logging.getLogger(__name__)

HistoryListener = Callable[[WindowId], None]


class Command(str, Enum):
    """Commands registered with the shortcut layer, valued by their wire names."""

    ROLL_LEFT = "roll-left"
    ROLL_RIGHT = "roll-right"
    CLEAR_STACKS = "clear-stacks"

    @classmethod
    def parse(cls, name: "str | Command") -> "Command | None":
        if isinstance(name, Command):
            return name
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


class CommandOutcome(str, Enum):
    NAVIGATED = "navigated"
    CLEARED = "cleared"
    IGNORED = "ignored"


class CommandDispatcher:
    """Resolves the current window and applies a command to its history.

    A command that cannot be served (unknown name, no focused window, a popup
    or panel in focus, a window with no history, a host failure) is inert: it
    is logged on the debug channel and reported as
    :attr:`CommandOutcome.IGNORED`.
    """

    def __init__(
        self,
        host: BrowserHost,
        engine: NavigationEngine,
        suppression: SuppressionController,
        *,
        on_history_changed: HistoryListener | None = None,
        on_cleared: Callable[[], None] | None = None,
    ) -> None:
        self._host = host
        self._engine = engine
        self._suppression = suppression
        self._on_history_changed = on_history_changed
        self._on_cleared = on_cleared
        self._last_window_id: WindowId | None = None

    @property
    def store(self) -> HistoryStore:
        return self._engine.store

    @property
    def last_window_id(self) -> WindowId | None:
        """Window the most recent successful navigation acted on."""
        return self._last_window_id

    async def dispatch(self, name: "str | Command") -> CommandOutcome:
        command = Command.parse(name)
        if command is None:
            LOGGER.debug("Ignoring unknown command %r", name)
            return CommandOutcome.IGNORED
        if command is Command.CLEAR_STACKS:
            await self.clear_all()
            return CommandOutcome.CLEARED
        if command is Command.ROLL_LEFT:
            return await self.navigate(self._engine.roll_back)
        return await self.navigate(self._engine.roll_forward)

    async def navigate_back(self) -> CommandOutcome:
        return await self.navigate(self._engine.roll_back)

    async def navigate_forward(self) -> CommandOutcome:
        return await self.navigate(self._engine.roll_forward)

    async def navigate(self, roll: Callable[[WindowId], TabId | None]) -> CommandOutcome:
        window = await self._current_window()
        if window is None:
            return CommandOutcome.IGNORED
        target = roll(window.id)
        self._last_window_id = window.id
        self._notify(window.id)
        self._suppression.request_activation(target)
        return CommandOutcome.NAVIGATED

    async def clear_all(self) -> int:
        """Drop every window's history and reseed from the live active tabs."""

        self.store.clear()
        if self._on_cleared is not None:
            self._on_cleared()
        return await self.seed_windows()

    async def seed_windows(self) -> int:
        """Record the active tab of each live normal window; returns how many were seeded."""

        try:
            windows = await self._host.list_windows(normal_only=True)
        except Exception as exc:
            LOGGER.debug("Cannot seed history, window enumeration failed: %s", exc)
            return 0
        seeded = 0
        for window in windows:
            active = window.active_tab
            if active is None:
                LOGGER.debug(
                    "Window %s has %d active tabs, not seeding",
                    window.id,
                    len(window.active_tabs),
                )
                continue
            LOGGER.debug("Window %s has active tab %s", window.id, active.id)
            self._engine.record_activation(window.id, active.id)
            self._notify(window.id)
            seeded += 1
        return seeded

    async def _current_window(self) -> WindowInfo | None:
        try:
            window = await self._host.get_current_window()
        except Exception as exc:
            LOGGER.debug("Cannot read current window: %s", exc)
            return None
        if window is None:
            LOGGER.debug("No focused window")
            return None
        if not window.is_normal:
            LOGGER.debug("Current window is of type '%s', ignoring", window.type.value)
            return None
        if window.id not in self.store:
            LOGGER.debug("Nothing known about window %s", window.id)
            return None
        return window

    def _notify(self, window_id: WindowId) -> None:
        if self._on_history_changed is not None:
            self._on_history_changed(window_id)
