"""Tests for :mod:`tabroll.core.history`."""

from __future__ import annotations

import pytest

from tabroll.core.history import MAX_STACK_LENGTH, HistoryStore, WindowHistory


class TestHistoryStoreReads:
    def test_unknown_window_yields_empty_stacks(self) -> None:
        store = HistoryStore()

        assert store.get(99) == ([], [])
        assert 99 not in store
        assert len(store) == 0

    def test_get_returns_copies(self) -> None:
        """Mutating a returned list never leaks into the store."""
        store = HistoryStore()
        store.set(1, [10, 11], [12])

        back, forward = store.get(1)
        back.append(99)
        forward.clear()

        assert store.get(1) == ([10, 11], [12])

    def test_history_snapshot(self) -> None:
        store = HistoryStore()
        store.set(1, [10, 11], [])

        snapshot = store.history(1)

        assert snapshot == WindowHistory(back=[10, 11], forward=[])
        assert snapshot.current == 11
        assert store.history(2).current is None


class TestHistoryStoreWrites:
    def test_set_within_bound_is_stored_verbatim(self) -> None:
        store = HistoryStore()
        store.set(1, [1, 2, 3], [4])

        assert store.get(1) == ([1, 2, 3], [4])

    def test_set_truncates_oldest_entries_of_both_stacks(self) -> None:
        store = HistoryStore(max_length=3)

        store.set(7, [1, 2, 3, 4, 5], [10, 11, 12])

        assert store.get(7) == ([3, 4, 5], [12])

    def test_forward_is_not_bounded_on_its_own(self) -> None:
        store = HistoryStore(max_length=2)
        forward = list(range(10))

        store.set(1, [1], forward)

        assert store.get(1) == ([1], forward)

    def test_default_bound(self) -> None:
        store = HistoryStore()
        store.set(1, range(MAX_STACK_LENGTH + 5), [])

        back, _ = store.get(1)
        assert len(back) == MAX_STACK_LENGTH
        assert back[0] == 5

    def test_delete_and_clear(self) -> None:
        store = HistoryStore()
        store.set(1, [1], [])
        store.set(2, [2], [])

        store.delete(1)
        store.delete(42)
        assert store.window_ids() == [2]

        store.clear()
        assert len(store) == 0
        assert store.window_ids() == []

    def test_invalid_bound_rejected(self) -> None:
        with pytest.raises(ValueError):
            HistoryStore(max_length=0)
