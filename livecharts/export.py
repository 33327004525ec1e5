"""Tabular and JSON views of a chart instance."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import pandas as pd

from .store import ChartInstance, Point


def _json_value(value: Any) -> Optional[Any]:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def instance_frame(instance: ChartInstance) -> pd.DataFrame:
    """One column per role on the union of all timestamps, sorted ascending."""
    columns = {
        role: pd.Series(
            [point.value for point in series.points],
            index=[point.timestamp for point in series.points],
            dtype=object,
        )
        for role, series in instance.series.items()
    }
    frame = pd.DataFrame(columns, columns=list(instance.series)).sort_index().infer_objects()
    frame.index.name = "timestamp"
    return frame


def point_records(points: List[Point]) -> List[Dict[str, Any]]:
    return [{"timestamp": point.timestamp, "value": _json_value(point.value)} for point in points]


def series_records(instance: ChartInstance) -> Dict[str, Any]:
    """JSON-ready description of every series, styled by the variant."""
    series = []
    for spec in instance.variant.roles:
        series.append(
            {
                "name": spec.role,
                "label": spec.label,
                "kind": spec.kind.value,
                "color": spec.color,
                "axis": spec.axis,
                "unit": spec.unit,
                "data": point_records(instance[spec.role].points),
            }
        )
    return {"id": instance.id, "title": instance.title, "variant": instance.variant.name, "series": series}


__all__ = ["instance_frame", "point_records", "series_records"]
