"""Service layer: host contract, settings, command dispatch and the tracker."""

from .commands import Command, CommandDispatcher, CommandOutcome
from .host import (
    BrowserHost,
    HostError,
    InMemoryBrowserHost,
    TabActivationError,
    TabInfo,
    WindowEnumerationError,
    WindowInfo,
    WindowType,
)
from .settings import Settings, SettingsStore
from .tracker import TabHistoryTracker

__all__ = [
    "BrowserHost",
    "Command",
    "CommandDispatcher",
    "CommandOutcome",
    "HostError",
    "InMemoryBrowserHost",
    "Settings",
    "SettingsStore",
    "TabActivationError",
    "TabHistoryTracker",
    "TabInfo",
    "WindowEnumerationError",
    "WindowInfo",
    "WindowType",
]
