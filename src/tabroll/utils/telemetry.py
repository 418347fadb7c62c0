"""Opt-in usage counters for history navigation.

Each record says which history operation ran, in which window, and how deep
the stacks were afterwards. Tab ids, titles and URLs are never written. Records
are appended as JSON lines to ``telemetry.jsonl`` under
``~/.tabroll/telemetry`` (or ``TABROLL_TELEMETRY_DIR``).
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

__all__ = ["HistoryMetric", "MetricRecord", "NavigationTelemetry", "telemetry_enabled"]

LOGGER = logging.getLogger(__name__)

_DEFAULT_TELEMETRY_DIR = Path.home() / ".tabroll" / "telemetry"
_TRUE_VALUES = {"1", "true", "yes", "on"}


class HistoryMetric(str, Enum):
    NAVIGATION_BACK = "navigation.back"
    NAVIGATION_FORWARD = "navigation.forward"
    HISTORY_CLEARED = "history.cleared"
    RECONCILE_PRUNED = "reconcile.pruned"


@dataclass(slots=True)
class MetricRecord:
    metric: HistoryMetric
    window_id: int | None = None
    counts: Dict[str, int] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self, session_id: str) -> str:
        payload: Dict[str, Any] = {
            "session_id": session_id,
            "metric": self.metric.value,
            "timestamp": self.timestamp.isoformat(),
            "counts": self.counts,
        }
        if self.window_id is not None:
            payload["window_id"] = self.window_id
        return json.dumps(payload, sort_keys=True)


@dataclass(slots=True)
class NavigationTelemetry:
    """Buffers :class:`MetricRecord` entries and appends them to disk in batches.

    A sink that cannot be written disables the collector for the rest of the
    session; navigation never fails because of telemetry.
    """

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 32
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _buffer: List[MetricRecord] = field(default_factory=list, init=False, repr=False)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def navigated(self, window_id: int, *, forward: bool, back_depth: int, forward_depth: int) -> None:
        metric = HistoryMetric.NAVIGATION_FORWARD if forward else HistoryMetric.NAVIGATION_BACK
        self._record(MetricRecord(metric, window_id, {"back": back_depth, "forward": forward_depth}))

    def history_cleared(self, reseeded_windows: int) -> None:
        self._record(MetricRecord(HistoryMetric.HISTORY_CLEARED, None, {"reseeded": reseeded_windows}))

    def reconcile_pruned(self, window_id: int, dropped: int) -> None:
        self._record(MetricRecord(HistoryMetric.RECONCILE_PRUNED, window_id, {"dropped": dropped}))

    def pending(self) -> List[MetricRecord]:
        return list(self._buffer)

    # ------------------------------------------------------------------
    # Sink
    # ------------------------------------------------------------------
    @property
    def path(self) -> Path:
        return _resolve_storage_dir(self.storage_dir) / "telemetry.jsonl"

    def flush(self) -> Path | None:
        """Append buffered records; returns the file written, if any."""

        if not self.enabled or not self._buffer:
            return None
        records, self._buffer = self._buffer, []
        target = self.path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding="utf-8") as handle:
                handle.writelines(record.to_json(self.session_id) + "\n" for record in records)
        except OSError as exc:
            LOGGER.warning("Disabling telemetry, cannot write %s: %s", target, exc)
            self.enabled = False
            return None
        return target

    def _record(self, record: MetricRecord) -> None:
        if not self.enabled:
            return
        self._buffer.append(record)
        if len(self._buffer) >= self.max_buffer:
            self.flush()


def telemetry_enabled(settings: Any | None = None) -> bool:
    """``TABROLL_TELEMETRY`` wins over the ``telemetry_opt_in`` setting."""

    env_value = os.environ.get("TABROLL_TELEMETRY")
    if env_value is not None:
        return env_value.strip().lower() in _TRUE_VALUES
    return bool(getattr(settings, "telemetry_opt_in", False))


def _resolve_storage_dir(storage_dir: Path | str | None) -> Path:
    env_override = os.environ.get("TABROLL_TELEMETRY_DIR")
    return Path(storage_dir or env_override or _DEFAULT_TELEMETRY_DIR).expanduser()
