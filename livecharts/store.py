"""In-memory registry of chart instances and their series."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Union

from .errors import TimestampMismatch
from .variants import VALUE, ChartVariant, SeriesKind

LOGGER = logging.getLogger(__name__)

Timestamp = Union[int, float, str]
PointValue = Union[float, int, bool, None]


@dataclass(frozen=True)
class Point:
    timestamp: Timestamp
    value: PointValue


def timestamp_family(timestamp: Timestamp) -> str:
    """Return ``"numeric"`` for epoch values and ``"iso"`` for ISO strings."""
    if isinstance(timestamp, bool):
        raise TimestampMismatch("Boolean is not a valid timestamp")
    if isinstance(timestamp, Real):
        if not math.isfinite(timestamp):
            raise TimestampMismatch(f"Timestamp {timestamp!r} is not finite")
        return "numeric"
    if isinstance(timestamp, str):
        return "iso"
    raise TimestampMismatch(f"Unsupported timestamp type {type(timestamp).__name__}")


@dataclass
class Series:
    name: str
    kind: SeriesKind = SeriesKind.CONTINUOUS
    points: List[Point] = field(default_factory=list)
    _seen: Set[Timestamp] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self._seen = {point.timestamp for point in self.points}

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def contains(self, timestamp: Timestamp) -> bool:
        return timestamp in self._seen

    def last(self) -> Optional[Point]:
        return self.points[-1] if self.points else None

    def timestamp_family(self) -> Optional[str]:
        if not self.points:
            return None
        return timestamp_family(self.points[0].timestamp)

    def _push(self, point: Point) -> None:
        self.points.append(point)
        self._seen.add(point.timestamp)


@dataclass
class ChartInstance:
    id: str
    title: str
    variant: ChartVariant
    series: Dict[str, Series] = field(default_factory=dict)

    def __getitem__(self, role: str) -> Series:
        return self.series[role]

    def points(self, role: str) -> List[Point]:
        return list(self.series[role].points)

    def timestamp_family(self) -> Optional[str]:
        """Family shared by every series, taken from the first non-empty one."""
        for series in self.series.values():
            family = series.timestamp_family()
            if family is not None:
                return family
        return None


class SeriesStore:
    """Registry of live chart instances; the only place series are mutated."""

    def __init__(self) -> None:
        self._instances: Dict[str, ChartInstance] = {}

    def __contains__(self, chart_id: object) -> bool:
        return chart_id in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def ids(self) -> List[str]:
        return list(self._instances)

    def get(self, chart_id: str) -> Optional[ChartInstance]:
        return self._instances.get(chart_id)

    def initialize(
        self,
        chart_id: str,
        title: str,
        series_seed: Mapping[str, Sequence[Point]],
        variant: ChartVariant,
    ) -> ChartInstance:
        """Create (or re-create) an instance from a bulk snapshot.

        The seed is trusted verbatim; an existing instance with the same id
        is discarded.
        """
        if VALUE not in series_seed:
            raise ValueError("series_seed must supply a 'value' series")
        series: Dict[str, Series] = {}
        for spec in variant.roles:
            seed = list(series_seed.get(spec.role, ()))
            series[spec.role] = Series(name=spec.role, kind=spec.kind, points=seed)
        instance = ChartInstance(id=chart_id, title=title, variant=variant, series=series)
        if chart_id in self._instances:
            LOGGER.info("Re-initialising chart '%s'", chart_id)
        self._instances[chart_id] = instance
        return instance

    def check_timestamp(self, instance: ChartInstance, role: str, timestamp: Timestamp) -> None:
        if role not in instance.series:
            raise KeyError(role)
        expected = instance.timestamp_family()
        actual = timestamp_family(timestamp)
        if expected is not None and expected != actual:
            raise TimestampMismatch(
                f"Chart '{instance.id}' holds {expected} timestamps, got {actual} ({timestamp!r}) for '{role}'"
            )

    def append(self, instance: ChartInstance, role: str, point: Point) -> bool:
        """Append ``point`` unless its timestamp is already present.

        Returns ``True`` when the point was stored; duplicates are skipped
        silently.
        """
        series = instance.series[role]
        self.check_timestamp(instance, role, point.timestamp)
        if series.contains(point.timestamp):
            LOGGER.debug("Skipping duplicate %s point at %s on chart '%s'", role, point.timestamp, instance.id)
            return False
        series._push(point)
        return True

    def set_title(self, instance: ChartInstance, text: str) -> None:
        instance.title = text

    def destroy(self, chart_id: str) -> bool:
        removed = self._instances.pop(chart_id, None)
        if removed is not None:
            LOGGER.info("Destroyed chart '%s'", chart_id)
        return removed is not None


__all__ = [
    "ChartInstance",
    "Point",
    "PointValue",
    "Series",
    "SeriesStore",
    "Timestamp",
    "timestamp_family",
]
