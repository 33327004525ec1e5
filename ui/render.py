"""Rendering surface that keeps the latest JSON view of every chart."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from livecharts.export import series_records
from livecharts.store import ChartInstance

from .schemas import SeriesResponse

LOGGER = logging.getLogger(__name__)


class SnapshotRenderer:
    """``redraw`` collaborator serialising charts for HTTP clients.

    Each redraw replaces the stored snapshot and bumps the chart revision so
    polling clients can tell when to refresh.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: Dict[str, SeriesResponse] = {}
        self._revisions: Dict[str, int] = {}

    def redraw(self, instance: ChartInstance) -> None:
        with self._lock:
            revision = self._revisions.get(instance.id, 0) + 1
            self._revisions[instance.id] = revision
            payload = series_records(instance)
            self._snapshots[instance.id] = SeriesResponse(
                revision=revision,
                meta={"points": {item["name"]: len(item["data"]) for item in payload["series"]}},
                **payload,
            )
        LOGGER.debug("Chart '%s' redrawn (revision %d)", instance.id, revision)

    def snapshot(self, chart_id: str) -> Optional[SeriesResponse]:
        with self._lock:
            return self._snapshots.get(chart_id)

    def revision(self, chart_id: str) -> int:
        with self._lock:
            return self._revisions.get(chart_id, 0)

    def forget(self, chart_id: str) -> None:
        with self._lock:
            self._snapshots.pop(chart_id, None)
            self._revisions.pop(chart_id, None)

    def chart_ids(self) -> List[str]:
        with self._lock:
            return list(self._snapshots)
