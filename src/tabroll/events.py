"""Event bus connecting the host adapter, the history tracker and the UI.

The host adapter publishes what it observes (tab activations, window
removals); the toolbar and shortcut layer publish user intent (commands,
toolbar clicks); the tracker publishes :class:`HistoryChanged` after every
mutation so presentation code can refresh without polling the store.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for everything travelling over the :class:`EventBus`."""


# Event types published often enough that per-publish logging is noise.
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Host events
# =============================================================================


@dataclass(slots=True)
class TabActivated(Event):
    """The host reports that ``tab_id`` became the active tab of ``window_id``."""

    window_id: int
    tab_id: int


@dataclass(slots=True)
class WindowRemoved(Event):
    """The host reports that ``window_id`` was closed."""

    window_id: int


_QUIET_EVENT_TYPES.add(TabActivated)


# =============================================================================
# User intent
# =============================================================================


@dataclass(slots=True)
class CommandInvoked(Event):
    """A named command (``roll-left``, ``roll-right``, ``clear-stacks``) was triggered.

    Attributes:
        name: The command name as registered with the shortcut layer.
        source: Free-form origin label used for logging (``shortcut``, ``toolbar``).
    """

    name: str
    source: str = "shortcut"


@dataclass(slots=True)
class ToolbarClicked(Event):
    """The toolbar button was clicked. Bound to navigate back."""


# =============================================================================
# Tracker notifications
# =============================================================================


@dataclass(slots=True)
class HistoryChanged(Event):
    """Snapshot of a window's stacks after a mutation.

    Attributes:
        window_id: The window whose history changed.
        back: Back stack, most recent last. Empty when the window was dropped.
        forward: Forward stack, next redo target last.
    """

    window_id: int
    back: tuple[int, ...] = ()
    forward: tuple[int, ...] = ()

    @property
    def can_go_back(self) -> bool:
        return len(self.back) > 1

    @property
    def can_go_forward(self) -> bool:
        return bool(self.forward)

    @property
    def current(self) -> int | None:
        return self.back[-1] if self.back else None


@dataclass(slots=True)
class HistoryCleared(Event):
    """Every window's history was discarded (``clear-stacks``)."""


class EventBus(Generic[E]):
    """Typed publish/subscribe bus.

    Bound-method handlers are held through :class:`WeakMethod` so a component
    that goes away stops receiving events without explicit unsubscription.
    Plain functions and lambdas are held strongly.

    The bus is not thread-safe; publish from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                del handlers[index]
                logger.debug(
                    "Unsubscribed %s from %s", _handler_name(handler), event_type.__name__
                )
                return

    def publish(self, event: E) -> None:
        """Invoke every handler for ``type(event)`` synchronously, in registration order.

        A handler that raises is logged and skipped; the remaining handlers
        still run.
        """
        event_type = type(event)
        quiet = event_type in _QUIET_EVENT_TYPES
        handlers = self._handlers.get(event_type)
        if not handlers:
            if not quiet:
                logger.debug("No handlers for %s", event_type.__name__)
            return
        if not quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised while handling %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        """Drop all subscriptions."""
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, target: Any, is_weak: bool) -> None:
        self._ref = target
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if self._is_weak:
            return self._ref()
        return self._ref

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "TabActivated",
    "WindowRemoved",
    "CommandInvoked",
    "ToolbarClicked",
    "HistoryChanged",
    "HistoryCleared",
]
