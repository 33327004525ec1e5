"""Merge incoming chart payloads into the series store."""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Union

from .errors import ChartError, MalformedPayload, TimestampMismatch, UnknownInstance
from .payloads import BulkPayload, UpdatePayload, normalize_series, parse_bulk, parse_update
from .settings import DEFAULT_VARIANT
from .store import ChartInstance, Point, SeriesStore, Timestamp, timestamp_family
from .variants import EXPECTED_VALUE, STATE, VALUE, ChartVariant, ContinuationPolicy, get_variant, load_variants

LOGGER = logging.getLogger(__name__)

ErrorHook = Callable[[str, ChartError, Any], None]


class Renderer(Protocol):
    def redraw(self, instance: ChartInstance) -> None:
        """Re-render ``instance`` from its current series."""


class NullRenderer:
    """Renderer that only logs; used when no drawing surface is attached."""

    def redraw(self, instance: ChartInstance) -> None:
        LOGGER.debug("Redraw requested for chart '%s'", instance.id)


@dataclass
class UpdateResult:
    chart_id: str
    appended: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    continued: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EngineStats:
    bulk: int = 0
    updates: int = 0
    malformed: int = 0
    unknown: int = 0


def _log_dropped(kind: str, exc: ChartError, raw: Any) -> None:
    LOGGER.warning("Dropped %s payload: %s", kind, exc)


class MergeEngine:
    """Apply bulk snapshots and incremental events to chart instances.

    Points are only ever appended or skipped, in arrival order. Each
    processed payload triggers exactly one ``redraw`` of its instance.
    """

    def __init__(
        self,
        store: Optional[SeriesStore] = None,
        renderer: Optional[Renderer] = None,
        *,
        variants: Optional[Mapping[str, ChartVariant]] = None,
        default_variant: str = DEFAULT_VARIANT,
        on_error: Optional[ErrorHook] = None,
    ) -> None:
        self.store = store if store is not None else SeriesStore()
        self.renderer: Renderer = renderer if renderer is not None else NullRenderer()
        self.variants: Dict[str, ChartVariant] = dict(variants) if variants is not None else load_variants()
        self.default_variant = get_variant(default_variant, self.variants)
        self.on_error: ErrorHook = on_error or _log_dropped
        self.stats = EngineStats()

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> "MergeEngine":
        return cls(
            variants=load_variants(config),
            default_variant=config.get("default_variant", DEFAULT_VARIANT),
            **kwargs,
        )

    def resolve_variant(self, variant: Union[ChartVariant, str, None]) -> ChartVariant:
        if variant is None:
            return self.default_variant
        if isinstance(variant, ChartVariant):
            return variant
        return get_variant(variant, self.variants)

    def apply_bulk(self, snapshot: BulkPayload, variant: Union[ChartVariant, str, None] = None) -> ChartInstance:
        chart_variant = self.resolve_variant(variant)
        seeds = normalize_series(chart_variant, snapshot.series_data)
        instance = self.store.initialize(snapshot.id, snapshot.title, seeds, chart_variant)
        self.stats.bulk += 1
        LOGGER.info(
            "Initialised chart '%s' (%s) with %d value points",
            snapshot.id,
            chart_variant.name,
            len(instance[VALUE]),
        )
        self.renderer.redraw(instance)
        return instance

    def _plan(self, instance: ChartInstance, event: UpdatePayload) -> Tuple[Optional[Point], Optional[Point], Dict[str, Point]]:
        variant = instance.variant
        expected: Optional[Point] = None
        if variant.has_role(EXPECTED_VALUE):
            if event.expected_value is not None:
                expected = Point(event.timestamp, event.expected_value)
            elif variant.expected_placeholder:
                expected = Point(event.timestamp, math.nan)

        state = event.state_point() if variant.has_role(STATE) else None

        auxiliary: Dict[str, Point] = {}
        for role in variant.auxiliary_roles:
            point = event.auxiliary_point(role)
            if point is not None:
                auxiliary[role] = point
        unknown = sorted(set(event.auxiliary) - set(variant.auxiliary_roles))
        if unknown:
            LOGGER.debug("Chart '%s' ignores auxiliary readings %s", instance.id, unknown)

        checks: List[Tuple[str, Timestamp]] = [(VALUE, event.timestamp)]
        if expected is not None:
            checks.append((EXPECTED_VALUE, expected.timestamp))
        if state is not None:
            checks.append((STATE, state.timestamp))
        if state is not None or (variant.has_role(STATE) and variant.continuation is ContinuationPolicy.ALWAYS):
            checks.append((STATE, event.timestamp))
        checks.extend((role, point.timestamp) for role, point in auxiliary.items())
        try:
            families = {timestamp_family(timestamp) for _, timestamp in checks}
            if len(families) > 1:
                raise TimestampMismatch(f"Event for chart '{instance.id}' mixes timestamp types {sorted(families)}")
            for role, timestamp in checks:
                self.store.check_timestamp(instance, role, timestamp)
        except TimestampMismatch as exc:
            raise MalformedPayload(str(exc)) from exc
        return expected, state, auxiliary

    def _continue_state(self, instance: ChartInstance, timestamp: Timestamp, result: UpdateResult) -> None:
        last = instance[STATE].last()
        if last is None:
            return
        if self.store.append(instance, STATE, Point(timestamp, last.value)):
            result.continued.append(STATE)
        else:
            result.skipped.append(STATE)

    def apply_update(self, event: UpdatePayload) -> UpdateResult:
        instance = self.store.get(event.id)
        if instance is None:
            raise UnknownInstance(event.id)
        variant = instance.variant
        expected, state, auxiliary = self._plan(instance, event)
        result = UpdateResult(chart_id=instance.id)

        if self.store.append(instance, VALUE, event.value_point()):
            result.appended.append(VALUE)
            if expected is not None:
                target = result.appended if self.store.append(instance, EXPECTED_VALUE, expected) else result.skipped
                target.append(EXPECTED_VALUE)
            if event.label is not None:
                self.store.set_title(instance, event.label)
        else:
            result.skipped.append(VALUE)

        if state is not None:
            if self.store.append(instance, STATE, state):
                result.appended.append(STATE)
            else:
                # Keep the step line running up to the newest measurement when
                # the relay reports less often than the sensor.
                self._continue_state(instance, event.timestamp, result)
        elif variant.has_role(STATE) and variant.continuation is ContinuationPolicy.ALWAYS:
            self._continue_state(instance, event.timestamp, result)

        for role, point in auxiliary.items():
            target = result.appended if self.store.append(instance, role, point) else result.skipped
            target.append(role)

        self.stats.updates += 1
        self.renderer.redraw(instance)
        return result

    def report(self, kind: str, exc: ChartError, raw: Any) -> None:
        if kind == "unknown_instance":
            self.stats.unknown += 1
        else:
            self.stats.malformed += 1
        self.on_error(kind, exc, raw)

    def receive_bulk(self, raw: Any, variant: Union[ChartVariant, str, None] = None) -> Optional[ChartInstance]:
        """Parse and apply a bulk payload; malformed payloads are reported and dropped."""
        try:
            return self.apply_bulk(parse_bulk(raw), variant)
        except MalformedPayload as exc:
            self.report("malformed", exc, raw)
        return None

    def receive_update(self, raw: Any) -> Optional[UpdateResult]:
        """Parse and apply an incremental payload; bad events are reported and dropped."""
        try:
            return self.apply_update(parse_update(raw))
        except MalformedPayload as exc:
            self.report("malformed", exc, raw)
        except UnknownInstance as exc:
            self.report("unknown_instance", exc, raw)
        return None

    def destroy(self, chart_id: str) -> bool:
        return self.store.destroy(chart_id)


__all__ = [
    "EngineStats",
    "MergeEngine",
    "NullRenderer",
    "Renderer",
    "UpdateResult",
]
