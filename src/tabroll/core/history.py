"""Per-window back/forward stacks of tab ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

__all__ = ["TabId", "WindowId", "MAX_STACK_LENGTH", "WindowHistory", "HistoryStore"]

LOGGER = logging.getLogger(__name__)

TabId = int
WindowId = int

MAX_STACK_LENGTH = 20


@dataclass(slots=True)
class WindowHistory:
    """Visited-tab order for one window.

    ``back`` holds the most recently activated tab at the end; its last item is
    the tab the tracker believes is focused. ``forward`` holds tabs undone by
    backward navigation, the next redo target last.
    """

    back: List[TabId] = field(default_factory=list)
    forward: List[TabId] = field(default_factory=list)

    @property
    def current(self) -> TabId | None:
        return self.back[-1] if self.back else None

    def copy(self) -> "WindowHistory":
        return WindowHistory(back=list(self.back), forward=list(self.forward))


class HistoryStore:
    """Owns the history of every tracked window.

    Reads hand out copies, so a caller can compute a new state from a full
    snapshot and write it back in one :meth:`set` call without the store ever
    observing a half-applied mutation.
    """

    def __init__(self, max_length: int = MAX_STACK_LENGTH) -> None:
        if max_length < 1:
            raise ValueError("max_length must be >= 1")
        self._max_length = max_length
        self._windows: Dict[WindowId, WindowHistory] = {}

    @property
    def max_length(self) -> int:
        return self._max_length

    def get(self, window_id: WindowId) -> Tuple[List[TabId], List[TabId]]:
        """Return ``(back, forward)`` for ``window_id``; unknown windows yield two empty lists."""

        entry = self._windows.get(window_id)
        if entry is None:
            return [], []
        return list(entry.back), list(entry.forward)

    def history(self, window_id: WindowId) -> WindowHistory:
        entry = self._windows.get(window_id)
        return entry.copy() if entry is not None else WindowHistory()

    def set(self, window_id: WindowId, back: Iterable[TabId], forward: Iterable[TabId]) -> None:
        """Replace the stacks for ``window_id``.

        Both sequences lose the same number of leading entries: however many
        ``back`` exceeds ``max_length`` by. ``forward`` is not bounded on its
        own.
        """

        back_list = list(back)
        forward_list = list(forward)
        overflow = max(0, len(back_list) - self._max_length)
        if overflow:
            LOGGER.debug(
                "Window %s history overflow, dropping %d oldest entr%s",
                window_id,
                overflow,
                "y" if overflow == 1 else "ies",
            )
            del back_list[:overflow]
            del forward_list[:overflow]
        self._windows[window_id] = WindowHistory(back=back_list, forward=forward_list)

    def delete(self, window_id: WindowId) -> None:
        self._windows.pop(window_id, None)

    def clear(self) -> None:
        self._windows.clear()

    def window_ids(self) -> List[WindowId]:
        return list(self._windows)

    def __contains__(self, window_id: object) -> bool:
        return window_id in self._windows

    def __len__(self) -> int:
        return len(self._windows)
