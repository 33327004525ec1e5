"""Incremental merging of live sensor and actuator streams into chart series."""

from __future__ import annotations

from .errors import ChartError, MalformedPayload, TimestampMismatch, UnknownInstance
from .merge import EngineStats, MergeEngine, NullRenderer, Renderer, UpdateResult
from .payloads import BulkPayload, UpdatePayload, normalize_series, parse_bulk, parse_update
from .settings import ConfigurationError, load_config, setup_logging
from .store import ChartInstance, Point, Series, SeriesStore
from .variants import BUILTIN_VARIANTS, BulkShape, ChartVariant, ContinuationPolicy, SeriesKind, get_variant, load_variants

__all__ = [
    "BUILTIN_VARIANTS",
    "BulkPayload",
    "BulkShape",
    "ChartError",
    "ChartInstance",
    "ChartVariant",
    "ConfigurationError",
    "ContinuationPolicy",
    "EngineStats",
    "MalformedPayload",
    "MergeEngine",
    "NullRenderer",
    "Point",
    "Renderer",
    "Series",
    "SeriesKind",
    "SeriesStore",
    "TimestampMismatch",
    "UnknownInstance",
    "UpdatePayload",
    "UpdateResult",
    "get_variant",
    "load_config",
    "load_variants",
    "normalize_series",
    "parse_bulk",
    "parse_update",
    "setup_logging",
]
