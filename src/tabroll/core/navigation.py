"""Push, roll and prune operations over a :class:`HistoryStore`."""

from __future__ import annotations

import logging
from typing import Collection, List

from .history import HistoryStore, TabId, WindowId

__all__ = ["NavigationEngine"]

LOGGER = logging.getLogger(__name__)


def _top(stack: List[TabId]) -> TabId | None:
    return stack[-1] if stack else None


class NavigationEngine:
    """Browser-style back/forward semantics applied to tab focus order.

    Every operation reads the window's stacks once, computes the new pair and
    writes it back with a single :meth:`HistoryStore.set`. The result is the
    tab that should now be focused (top of the back stack), or ``None`` when
    the window has no history.

    Recording is not gated here: callers must skip :meth:`record_activation`
    while the suppression controller reports an engine-initiated activation.
    """

    def __init__(self, store: HistoryStore) -> None:
        self._store = store

    @property
    def store(self) -> HistoryStore:
        return self._store

    def record_activation(self, window_id: WindowId, tab_id: TabId) -> TabId:
        back, _forward = self._store.get(window_id)
        back.append(tab_id)
        # A fresh activation invalidates redo history.
        self._store.set(window_id, back, [])
        LOGGER.debug("Recorded tab %s in window %s (depth=%d)", tab_id, window_id, len(back))
        return tab_id

    def roll_back(self, window_id: WindowId) -> TabId | None:
        back, forward = self._store.get(window_id)
        if len(back) > 1:
            forward.append(back.pop())
        else:
            LOGGER.debug("Window %s has nothing before tab %s", window_id, _top(back))
        self._store.set(window_id, back, forward)
        return _top(back)

    def roll_forward(self, window_id: WindowId) -> TabId | None:
        back, forward = self._store.get(window_id)
        if forward:
            back.append(forward.pop())
        else:
            LOGGER.debug("Window %s has no forward history", window_id)
        self._store.set(window_id, back, forward)
        return _top(back)

    def prune_dead(self, window_id: WindowId, alive_tab_ids: Collection[TabId]) -> TabId | None:
        alive = set(alive_tab_ids)
        back, forward = self._store.get(window_id)
        kept_back = [tab for tab in back if tab in alive]
        kept_forward = [tab for tab in forward if tab in alive]
        dropped = (len(back) - len(kept_back)) + (len(forward) - len(kept_forward))
        if dropped:
            LOGGER.debug("Pruned %d stale entr%s from window %s", dropped, "y" if dropped == 1 else "ies", window_id)
        self._store.set(window_id, kept_back, kept_forward)
        return _top(kept_back)
