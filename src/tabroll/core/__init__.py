"""History model and the operations that keep it consistent."""

from .history import MAX_STACK_LENGTH, HistoryStore, TabId, WindowHistory, WindowId
from .navigation import NavigationEngine
from .reconciliation import DEFAULT_RECONCILE_INTERVAL, ReconciliationLoop
from .suppression import DEFAULT_SUPPRESSION_TIMEOUT, SuppressionController, SuppressionState

__all__ = [
    "MAX_STACK_LENGTH",
    "DEFAULT_RECONCILE_INTERVAL",
    "DEFAULT_SUPPRESSION_TIMEOUT",
    "HistoryStore",
    "WindowHistory",
    "TabId",
    "WindowId",
    "NavigationEngine",
    "ReconciliationLoop",
    "SuppressionController",
    "SuppressionState",
]
