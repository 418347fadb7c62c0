"""Toolbar window driving the tracker through the event bus.

Back / Forward / Clear buttons and the keyboard shortcuts only publish
events; the tracker decides what happens. A tab strip mirrors the focused
window of an :class:`~tabroll.services.host.InMemoryBrowserHost` so the demo
has something to click between.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import QHBoxLayout, QLabel, QTabBar, QToolButton, QWidget

from ..events import (
    CommandInvoked,
    EventBus,
    HistoryChanged,
    HistoryCleared,
    TabActivated,
    ToolbarClicked,
    WindowRemoved,
)
from ..services.commands import Command
from ..services.host import InMemoryBrowserHost
from ..services.settings import DEFAULT_SHORTCUTS

__all__ = ["RollToolbar", "WINDOW_TITLE"]

LOGGER = logging.getLogger(__name__)

WINDOW_TITLE = "tabroll"


class RollToolbar(QWidget):
    """Compact window with navigation buttons and the focused window's tab strip."""

    def __init__(
        self,
        bus: EventBus,
        host: InMemoryBrowserHost,
        *,
        shortcuts: Mapping[str, str] | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._bus = bus
        self._host = host
        self._shortcuts: Dict[str, QShortcut] = {}
        self._syncing = False

        self.setWindowTitle(WINDOW_TITLE)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(6, 4, 6, 4)

        self.back_button = self._make_button("◀", "Previous tab in this window")
        self.forward_button = self._make_button("▶", "Next tab in this window")
        self.clear_button = self._make_button("⟲", "Forget tab history for all windows")
        self.back_button.clicked.connect(lambda: self._bus.publish(ToolbarClicked()))
        self.forward_button.clicked.connect(lambda: self._publish_command(Command.ROLL_RIGHT, "toolbar"))
        self.clear_button.clicked.connect(lambda: self._publish_command(Command.CLEAR_STACKS, "toolbar"))

        self.tab_bar = QTabBar(self)
        self.tab_bar.setExpanding(False)
        self.tab_bar.currentChanged.connect(self._on_tab_bar_changed)

        self.depth_label = QLabel("", self)
        self.depth_label.setObjectName("tabroll-depth")

        for widget in (self.back_button, self.forward_button, self.clear_button):
            layout.addWidget(widget)
        layout.addWidget(self.tab_bar, 1)
        layout.addWidget(self.depth_label)

        self.install_shortcuts(shortcuts or DEFAULT_SHORTCUTS)
        self._set_navigation_state(can_go_back=False, can_go_forward=False)

        bus.subscribe(HistoryChanged, self._on_history_changed)
        bus.subscribe(HistoryCleared, self._on_history_cleared)
        bus.subscribe(TabActivated, self._on_tab_activated)
        bus.subscribe(WindowRemoved, self._on_window_removed)
        self.refresh_tabs()

    # ------------------------------------------------------------------
    # Shortcuts
    # ------------------------------------------------------------------
    def install_shortcuts(self, mapping: Mapping[str, str]) -> None:
        for shortcut in self._shortcuts.values():
            shortcut.setEnabled(False)
            shortcut.deleteLater()
        self._shortcuts.clear()
        for name, sequence in mapping.items():
            command = Command.parse(name)
            if command is None or not sequence:
                LOGGER.debug("Skipping shortcut for unknown command %r", name)
                continue
            shortcut = QShortcut(QKeySequence(sequence), self)
            shortcut.setContext(Qt.ShortcutContext.ApplicationShortcut)
            shortcut.activated.connect(lambda cmd=command: self._publish_command(cmd, "shortcut"))
            self._shortcuts[command.value] = shortcut

    def shortcut_for(self, name: str) -> str:
        shortcut = self._shortcuts.get(name)
        return shortcut.key().toString() if shortcut is not None else ""

    # ------------------------------------------------------------------
    # Tab strip
    # ------------------------------------------------------------------
    def refresh_tabs(self) -> None:
        """Rebuild the tab strip from the host's focused window."""

        window_id = self._host.focused_window_id
        self._syncing = True
        try:
            while self.tab_bar.count():
                self.tab_bar.removeTab(0)
            if window_id is None:
                return
            window = self._host.window(window_id)
            for tab in window.tabs:
                index = self.tab_bar.addTab(tab.title or f"Tab {tab.id}")
                self.tab_bar.setTabData(index, tab.id)
                if tab.active:
                    self.tab_bar.setCurrentIndex(index)
        finally:
            self._syncing = False

    def _on_tab_bar_changed(self, index: int) -> None:
        if self._syncing or index < 0:
            return
        tab_id = self.tab_bar.tabData(index)
        if tab_id is None:
            return
        self._host.select_tab(int(tab_id))

    def _select_in_strip(self, tab_id: int) -> None:
        self._syncing = True
        try:
            for index in range(self.tab_bar.count()):
                if self.tab_bar.tabData(index) == tab_id:
                    self.tab_bar.setCurrentIndex(index)
                    return
        finally:
            self._syncing = False

    # ------------------------------------------------------------------
    # Bus handlers
    # ------------------------------------------------------------------
    def _on_tab_activated(self, event: TabActivated) -> None:
        if event.window_id == self._host.focused_window_id:
            self._select_in_strip(event.tab_id)

    def _on_window_removed(self, event: WindowRemoved) -> None:
        del event
        self.refresh_tabs()

    def _on_history_changed(self, event: HistoryChanged) -> None:
        if event.window_id != self._host.focused_window_id:
            return
        self._set_navigation_state(
            can_go_back=event.can_go_back,
            can_go_forward=event.can_go_forward,
        )
        self.depth_label.setText(f"{len(event.back)} · {len(event.forward)}")

    def _on_history_cleared(self, event: HistoryCleared) -> None:
        del event
        self._set_navigation_state(can_go_back=False, can_go_forward=False)
        self.depth_label.setText("")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _publish_command(self, command: Command, source: str) -> None:
        self._bus.publish(CommandInvoked(name=command.value, source=source))

    def _set_navigation_state(self, *, can_go_back: bool, can_go_forward: bool) -> None:
        self.back_button.setEnabled(can_go_back)
        self.forward_button.setEnabled(can_go_forward)

    def _make_button(self, text: str, tooltip: str) -> QToolButton:
        button = QToolButton(self)
        button.setText(text)
        button.setToolTip(tooltip)
        button.setAutoRaise(True)
        return button
