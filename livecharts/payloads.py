"""Pydantic models and parsers for inbound chart payloads."""
from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Mapping, Optional, Union

from dateutil import parser as date_parser
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    confloat,
    field_validator,
)

from .errors import MalformedPayload, TimestampMismatch
from .store import Point, Timestamp, timestamp_family
from .variants import BulkShape, ChartVariant, RoleSpec, SeriesKind

LOGGER = logging.getLogger(__name__)


def _check_iso(value: Any) -> Any:
    if isinstance(value, str):
        try:
            date_parser.isoparse(value)
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"timestamp '{value}' is not an ISO-8601 instant") from exc
    return value


FiniteFloat = confloat(strict=True, allow_inf_nan=False)
TimestampField = Annotated[Union[StrictInt, FiniteFloat, StrictStr], AfterValidator(_check_iso)]
NumberField = Union[StrictInt, StrictFloat]
ValueField = Union[StrictBool, StrictInt, StrictFloat, None]


def _as_reading(value: Any) -> Any:
    if value is None or isinstance(value, Mapping):
        return value
    return {"value": value}


class Reading(BaseModel):
    """A single independently timestamped reading (state or auxiliary)."""

    model_config = ConfigDict(extra="ignore")

    timestamp: Optional[TimestampField] = None
    value: ValueField = None


class UpdatePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictStr = Field(..., min_length=1)
    timestamp: TimestampField
    value: ValueField
    expected_value: Optional[NumberField] = None
    state: Optional[Reading] = None
    auxiliary: Dict[str, Optional[Reading]] = Field(default_factory=dict)
    label: Optional[StrictStr] = None

    @field_validator("state", mode="before")
    @classmethod
    def _wrap_state(cls, value: Any) -> Any:
        return _as_reading(value)

    @field_validator("auxiliary", mode="before")
    @classmethod
    def _wrap_auxiliary(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {role: _as_reading(reading) for role, reading in value.items()}
        return value

    def value_point(self) -> Point:
        return Point(self.timestamp, self.value)

    def state_point(self) -> Optional[Point]:
        """Numeric 0/1 state point, or ``None`` when no reading is carried."""
        if self.state is None or self.state.value is None:
            return None
        timestamp = self.state.timestamp if self.state.timestamp is not None else self.timestamp
        return Point(timestamp, 1 if self.state.value else 0)

    def auxiliary_point(self, role: str) -> Optional[Point]:
        reading = self.auxiliary.get(role)
        if reading is None or reading.value is None:
            return None
        timestamp = reading.timestamp if reading.timestamp is not None else self.timestamp
        return Point(timestamp, reading.value)


class BulkPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: StrictStr = Field(..., min_length=1)
    title: StrictStr = ""
    series_data: Dict[str, Any] = Field(default_factory=dict, alias="seriesData")


def _validate(model: type[BaseModel], raw: Any) -> Any:
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return model.model_validate_json(raw)
        if isinstance(raw, Mapping):
            return model.model_validate(dict(raw))
        if isinstance(raw, model):
            return raw
    except ValidationError as exc:
        raise MalformedPayload(f"{model.__name__}: {exc}") from exc
    raise MalformedPayload(f"{model.__name__}: unsupported payload type {type(raw).__name__}")


def parse_update(raw: Any) -> UpdatePayload:
    """Parse JSON text, bytes or a mapping into an incremental payload."""
    return _validate(UpdatePayload, raw)


def parse_bulk(raw: Any) -> BulkPayload:
    """Parse JSON text, bytes or a mapping into a bulk payload."""
    return _validate(BulkPayload, raw)


def _point_value(spec: RoleSpec, value: Any) -> Any:
    if value is not None and not isinstance(value, (bool, int, float)):
        raise MalformedPayload(f"Series '{spec.role}': unsupported value {value!r}")
    if spec.kind is SeriesKind.STEP and value is not None:
        return 1 if value else 0
    return value


def _checked_timestamp(spec: RoleSpec, timestamp: Any) -> Timestamp:
    try:
        family = timestamp_family(timestamp)
    except TimestampMismatch as exc:
        raise MalformedPayload(f"Series '{spec.role}': {exc}") from exc
    if family == "iso":
        try:
            _check_iso(timestamp)
        except ValueError as exc:
            raise MalformedPayload(f"Series '{spec.role}': {exc}") from exc
    return timestamp


def _raw_series(spec: RoleSpec, series_data: Mapping[str, Any]) -> Optional[List[Any]]:
    raw = series_data.get(spec.seed_key, series_data.get(spec.role))
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise MalformedPayload(f"Series '{spec.role}' must be an array, got {type(raw).__name__}")
    return raw


def _index_aligned(variant: ChartVariant, series_data: Mapping[str, Any]) -> Dict[str, List[Point]]:
    labels = series_data.get(variant.labels_key)
    seeds: Dict[str, List[Point]] = {}
    for spec in variant.roles:
        raw = _raw_series(spec, series_data)
        if raw is None:
            continue
        if not isinstance(labels, list):
            raise MalformedPayload(f"Index-aligned snapshot is missing the '{variant.labels_key}' array")
        if len(raw) > len(labels):
            raise MalformedPayload(
                f"Series '{spec.role}' has {len(raw)} values but only {len(labels)} labels"
            )
        seeds[spec.role] = [
            Point(_checked_timestamp(spec, labels[idx]), _point_value(spec, value)) for idx, value in enumerate(raw)
        ]
    return seeds


def _tagged_point(spec: RoleSpec, item: Any) -> Point:
    if not isinstance(item, Mapping):
        raise MalformedPayload(f"Series '{spec.role}' items must be objects, got {item!r}")
    if "timestamp" in item:
        timestamp, value = item["timestamp"], item.get("value")
    elif "x" in item:
        timestamp, value = item["x"], item.get("y")
    else:
        raise MalformedPayload(f"Series '{spec.role}' item without timestamp: {item!r}")
    return Point(_checked_timestamp(spec, timestamp), _point_value(spec, value))


def _timestamp_tagged(variant: ChartVariant, series_data: Mapping[str, Any]) -> Dict[str, List[Point]]:
    seeds: Dict[str, List[Point]] = {}
    for spec in variant.roles:
        raw = _raw_series(spec, series_data)
        if raw is None:
            continue
        seeds[spec.role] = [_tagged_point(spec, item) for item in raw]
    return seeds


def normalize_series(variant: ChartVariant, series_data: Mapping[str, Any]) -> Dict[str, List[Point]]:
    """Turn a bulk ``seriesData`` mapping into ``role -> [Point]``.

    The snapshot shape is fixed by the variant, never guessed per payload.
    A missing ``value`` array yields an empty value series.
    """
    if variant.bulk_shape is BulkShape.INDEX_ALIGNED:
        seeds = _index_aligned(variant, series_data)
        known = {variant.labels_key}
    else:
        seeds = _timestamp_tagged(variant, series_data)
        known = set()
    for spec in variant.roles:
        known.update({spec.role, spec.seed_key})
    ignored = sorted(set(series_data) - known)
    if ignored:
        LOGGER.debug("Ignoring series %s not declared by variant '%s'", ignored, variant.name)
    families = {timestamp_family(point.timestamp) for points in seeds.values() for point in points}
    if len(families) > 1:
        raise MalformedPayload(f"Snapshot mixes timestamp types {sorted(families)}")
    seeds.setdefault("value", [])
    return seeds


__all__ = [
    "BulkPayload",
    "Reading",
    "UpdatePayload",
    "normalize_series",
    "parse_bulk",
    "parse_update",
]
