"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from tabroll.events import EventBus
from tabroll.services.host import InMemoryBrowserHost


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("TABROLL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TABROLL_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("TABROLL_TELEMETRY_DIR", str(tmp_path / "telemetry"))


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def host(bus: EventBus) -> InMemoryBrowserHost:
    return InMemoryBrowserHost(bus)


@pytest.fixture
def window_with_tabs(host: InMemoryBrowserHost) -> tuple[int, list[int]]:
    """A focused normal window holding three tabs; the first one is active."""

    window_id = host.open_window()
    tabs = [host.open_tab(window_id, title=f"Tab {index}", activate=index == 0) for index in range(3)]
    return window_id, tabs


@pytest.fixture
def restore_root_logging():
    """Undo handler and level changes made by ``setup_logging``."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    channel_level = logging.getLogger("tabroll").level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("tabroll").setLevel(channel_level)
