"""Unit tests for :mod:`tabroll.events`."""

from __future__ import annotations

import gc
import logging

import pytest

from tabroll.events import (
    CommandInvoked,
    Event,
    EventBus,
    HistoryChanged,
    TabActivated,
    ToolbarClicked,
    WindowRemoved,
)


class _Listener:
    def __init__(self) -> None:
        self.seen: list[TabActivated] = []

    def on_tab(self, event: TabActivated) -> None:
        self.seen.append(event)


class TestEventTypes:
    """Tests for the event payloads."""

    def test_events_use_slots(self) -> None:
        assert hasattr(TabActivated(window_id=1, tab_id=2), "__slots__")
        assert isinstance(ToolbarClicked(), Event)

    def test_command_invoked_defaults_to_shortcut(self) -> None:
        assert CommandInvoked(name="roll-left").source == "shortcut"

    def test_history_changed_navigation_flags(self) -> None:
        """A single back entry cannot be rolled back from."""
        single = HistoryChanged(window_id=1, back=(5,))
        assert not single.can_go_back
        assert not single.can_go_forward
        assert single.current == 5

        deep = HistoryChanged(window_id=1, back=(5, 6), forward=(7,))
        assert deep.can_go_back
        assert deep.can_go_forward
        assert deep.current == 6

        assert HistoryChanged(window_id=1).current is None


class TestEventBusSubscription:
    def test_subscribe_and_unsubscribe(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[WindowRemoved] = []

        bus.subscribe(WindowRemoved, received.append)
        assert bus.handler_count(WindowRemoved) == 1

        bus.unsubscribe(WindowRemoved, received.append)
        bus.publish(WindowRemoved(window_id=3))

        assert received == []
        assert bus.handler_count() == 0

    def test_unsubscribe_unknown_handler_is_safe(self) -> None:
        bus: EventBus[Event] = EventBus()

        bus.unsubscribe(WindowRemoved, print)
        bus.subscribe(TabActivated, print)
        bus.unsubscribe(WindowRemoved, print)

        assert bus.handler_count(TabActivated) == 1

    def test_unsubscribe_removes_one_duplicate(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[int] = []

        def handler(event: WindowRemoved) -> None:
            calls.append(event.window_id)

        bus.subscribe(WindowRemoved, handler)
        bus.subscribe(WindowRemoved, handler)
        bus.unsubscribe(WindowRemoved, handler)
        bus.publish(WindowRemoved(window_id=9))

        assert calls == [9]


class TestEventBusPublish:
    def test_handlers_run_in_registration_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        order: list[str] = []

        bus.subscribe(ToolbarClicked, lambda _e: order.append("first"))
        bus.subscribe(ToolbarClicked, lambda _e: order.append("second"))
        bus.publish(ToolbarClicked())

        assert order == ["first", "second"]

    def test_only_exact_type_is_dispatched(self) -> None:
        bus: EventBus[Event] = EventBus()
        tabs: list[Event] = []
        windows: list[Event] = []
        bus.subscribe(TabActivated, tabs.append)
        bus.subscribe(WindowRemoved, windows.append)

        bus.publish(TabActivated(window_id=1, tab_id=2))

        assert tabs == [TabActivated(window_id=1, tab_id=2)]
        assert windows == []

    def test_handler_exception_is_logged_and_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []

        def broken(_event: Event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(WindowRemoved, broken)
        bus.subscribe(WindowRemoved, received.append)

        with caplog.at_level(logging.ERROR, logger="tabroll.events"):
            bus.publish(WindowRemoved(window_id=1))

        assert received == [WindowRemoved(window_id=1)]
        assert "broken" in caplog.text


class TestEventBusWeakReferences:
    def test_bound_method_handler_cleaned_up_on_gc(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(TabActivated, listener.on_tab)

        bus.publish(TabActivated(window_id=1, tab_id=1))
        assert len(listener.seen) == 1

        del listener
        gc.collect()
        bus.publish(TabActivated(window_id=1, tab_id=2))

        assert bus.handler_count(TabActivated) == 0

    def test_unsubscribe_bound_method(self) -> None:
        bus: EventBus[Event] = EventBus()
        listener = _Listener()
        bus.subscribe(TabActivated, listener.on_tab)

        bus.unsubscribe(TabActivated, listener.on_tab)
        bus.publish(TabActivated(window_id=1, tab_id=1))

        assert listener.seen == []

    def test_clear_drops_everything(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(TabActivated, print)
        bus.subscribe(WindowRemoved, print)

        bus.clear()

        assert bus.handler_count() == 0
