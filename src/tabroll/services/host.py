"""Contract with the host windowing/tab system plus an in-process implementation.

The tracker only ever talks to the host through :class:`BrowserHost`:
enumerate windows, read the focused window and ask for a tab to be
activated. Observations travel the other way as :class:`~tabroll.events.TabActivated`
and :class:`~tabroll.events.WindowRemoved` events on the shared bus.

:class:`InMemoryBrowserHost` is a complete host kept in process memory. The
desktop demo drives it from the toolbar and the test-suite uses it to script
windows, tabs, delayed event delivery and failures.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Protocol

from ..events import EventBus, TabActivated, WindowRemoved

__all__ = [
    "WindowType",
    "TabInfo",
    "WindowInfo",
    "BrowserHost",
    "HostError",
    "WindowEnumerationError",
    "TabActivationError",
    "InMemoryBrowserHost",
]

LOGGER = logging.getLogger(__name__)


class WindowType(str, Enum):
    """Kinds of top-level windows a host may report."""

    NORMAL = "normal"
    POPUP = "popup"
    PANEL = "panel"
    APP = "app"
    DEVTOOLS = "devtools"


@dataclass(slots=True)
class TabInfo:
    id: int
    window_id: int
    active: bool = False
    title: str = ""
    url: str = ""


@dataclass(slots=True)
class WindowInfo:
    """A window as reported by the host, with its tabs populated."""

    id: int
    type: WindowType = WindowType.NORMAL
    focused: bool = False
    tabs: List[TabInfo] = field(default_factory=list)

    @property
    def is_normal(self) -> bool:
        return self.type is WindowType.NORMAL

    @property
    def tab_ids(self) -> List[int]:
        return [tab.id for tab in self.tabs]

    @property
    def active_tabs(self) -> List[TabInfo]:
        return [tab for tab in self.tabs if tab.active]

    @property
    def active_tab(self) -> TabInfo | None:
        """The active tab when exactly one tab is active, otherwise ``None``."""
        active = self.active_tabs
        return active[0] if len(active) == 1 else None


class HostError(RuntimeError):
    """Base class for failures reported by the host system."""


class WindowEnumerationError(HostError):
    """The host could not list its windows or read the focused window."""


class TabActivationError(HostError):
    """The host rejected a request to activate a tab."""

    def __init__(self, tab_id: int, reason: str = "") -> None:
        message = f"Cannot activate tab {tab_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.tab_id = tab_id
        self.reason = reason


class BrowserHost(Protocol):
    """Operations the tracker consumes from the host."""

    async def list_windows(self, *, normal_only: bool = True) -> List[WindowInfo]:  # pragma: no cover - protocol
        ...

    async def get_current_window(self) -> WindowInfo | None:  # pragma: no cover - protocol
        ...

    async def activate_tab(self, tab_id: int) -> None:  # pragma: no cover - protocol
        ...


class InMemoryBrowserHost:
    """Host whose windows and tabs live in a dictionary.

    Every activation, whether user-driven through :meth:`select_tab` or
    engine-driven through :meth:`activate_tab`, publishes
    :class:`TabActivated` on ``bus``. With ``event_delay`` set, the event is
    delivered that many seconds later on the running loop, mimicking a host
    whose notifications lag behind the action that caused them.
    """

    def __init__(self, bus: EventBus, *, event_delay: float = 0.0) -> None:
        self._bus = bus
        self.event_delay = max(0.0, event_delay)
        self._windows: Dict[int, WindowInfo] = {}
        self._focused_window: int | None = None
        self._ids = itertools.count(1)
        self.fail_enumeration = False
        self.failing_tabs: set[int] = set()
        self.activation_requests: List[int] = []

    # ------------------------------------------------------------------
    # BrowserHost
    # ------------------------------------------------------------------
    async def list_windows(self, *, normal_only: bool = True) -> List[WindowInfo]:
        if self.fail_enumeration:
            raise WindowEnumerationError("window enumeration unavailable")
        windows = [self._snapshot(window) for window in self._windows.values()]
        if normal_only:
            windows = [window for window in windows if window.is_normal]
        return windows

    async def get_current_window(self) -> WindowInfo | None:
        if self.fail_enumeration:
            raise WindowEnumerationError("current window unavailable")
        if self._focused_window is None:
            return None
        return self._snapshot(self._windows[self._focused_window])

    async def activate_tab(self, tab_id: int) -> None:
        self.activation_requests.append(tab_id)
        if tab_id in self.failing_tabs:
            raise TabActivationError(tab_id, "rejected by host")
        tab = self._find_tab(tab_id)
        if tab is None:
            raise TabActivationError(tab_id, "no such tab")
        self._activate(tab)

    # ------------------------------------------------------------------
    # Scripting helpers
    # ------------------------------------------------------------------
    def open_window(self, window_type: WindowType = WindowType.NORMAL, *, focus: bool = True) -> int:
        window_id = next(self._ids)
        self._windows[window_id] = WindowInfo(id=window_id, type=window_type)
        if focus or self._focused_window is None:
            self.focus_window(window_id)
        return window_id

    def open_tab(
        self,
        window_id: int,
        *,
        title: str = "",
        url: str = "about:blank",
        activate: bool = True,
    ) -> int:
        window = self._require_window(window_id)
        tab = TabInfo(id=next(self._ids), window_id=window_id, title=title, url=url)
        window.tabs.append(tab)
        if activate or len(window.tabs) == 1:
            self._activate(tab)
        return tab.id

    def select_tab(self, tab_id: int) -> None:
        """User-driven activation (a click on the tab strip)."""
        tab = self._find_tab(tab_id)
        if tab is None:
            raise KeyError(tab_id)
        self._activate(tab)

    def close_tab(self, tab_id: int) -> None:
        """Remove a tab. No activation event is raised for the replacement tab."""
        tab = self._find_tab(tab_id)
        if tab is None:
            return
        window = self._windows[tab.window_id]
        index = window.tabs.index(tab)
        window.tabs.remove(tab)
        if tab.active and window.tabs:
            window.tabs[min(index, len(window.tabs) - 1)].active = True

    def close_window(self, window_id: int) -> None:
        if self._windows.pop(window_id, None) is None:
            return
        if self._focused_window == window_id:
            self._focused_window = next(iter(self._windows), None)
            if self._focused_window is not None:
                self._windows[self._focused_window].focused = True
        self._bus.publish(WindowRemoved(window_id=window_id))

    def focus_window(self, window_id: int) -> None:
        self._require_window(window_id)
        for window in self._windows.values():
            window.focused = window.id == window_id
        self._focused_window = window_id

    def window(self, window_id: int) -> WindowInfo:
        return self._snapshot(self._require_window(window_id))

    @property
    def focused_window_id(self) -> int | None:
        return self._focused_window

    def active_tab_id(self, window_id: int) -> int | None:
        active = self._require_window(window_id).active_tab
        return active.id if active is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _activate(self, tab: TabInfo) -> None:
        window = self._windows[tab.window_id]
        for candidate in window.tabs:
            candidate.active = candidate is tab
        event = TabActivated(window_id=window.id, tab_id=tab.id)
        if self.event_delay <= 0:
            self._bus.publish(event)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop; delivering %s immediately", event)
            self._bus.publish(event)
            return
        loop.call_later(self.event_delay, self._bus.publish, event)

    def _find_tab(self, tab_id: int) -> TabInfo | None:
        for window in self._windows.values():
            for tab in window.tabs:
                if tab.id == tab_id:
                    return tab
        return None

    def _require_window(self, window_id: int) -> WindowInfo:
        try:
            return self._windows[window_id]
        except KeyError:
            raise KeyError(f"Unknown window {window_id}") from None

    @staticmethod
    def _snapshot(window: WindowInfo) -> WindowInfo:
        return replace(window, tabs=[replace(tab) for tab in window.tabs])
