"""Series store tests: initialisation, dedup and lifecycle."""

from __future__ import annotations

import pytest

from livecharts.errors import TimestampMismatch
from livecharts.store import Point, SeriesStore
from livecharts.variants import BUILTIN_VARIANTS, SeriesKind

from tests.conftest import get_test_logger

logger = get_test_logger(__name__)
logger.info("Starting tests for series store")


def test_initialize_creates_every_variant_role(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": [Point(1, 20.0)]}, heating_variant)

    assert set(instance.series) == {"value", "expected_value", "state"}
    assert instance["state"].kind is SeriesKind.STEP
    assert instance["value"].kind is SeriesKind.CONTINUOUS
    assert instance.points("value") == [Point(1, 20.0)]
    assert len(instance["expected_value"]) == 0
    assert "zone-1" in store


def test_initialize_requires_value_series(heating_variant) -> None:
    store = SeriesStore()
    with pytest.raises(ValueError):
        store.initialize("zone-1", "Salon", {"state": []}, heating_variant)


def test_append_skips_duplicate_timestamp(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": []}, heating_variant)

    assert store.append(instance, "value", Point(100, 21.5)) is True
    assert store.append(instance, "value", Point(100, 99.0)) is False
    assert instance.points("value") == [Point(100, 21.5)]


def test_append_keeps_arrival_order(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": []}, heating_variant)
    for ts in (100, 50, 150):
        store.append(instance, "value", Point(ts, float(ts)))

    assert [p.timestamp for p in instance["value"]] == [100, 50, 150]


def test_append_rejects_mixed_timestamp_types(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": [Point(100, 1.0)]}, heating_variant)

    with pytest.raises(TimestampMismatch):
        store.append(instance, "value", Point("2024-01-01T00:00:00Z", 2.0))
    assert len(instance["value"]) == 1


def test_seeded_points_count_for_dedup(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": [Point(5, 1.0)]}, heating_variant)

    assert store.append(instance, "value", Point(5, 2.0)) is False


def test_reinitialize_discards_previous_instance(heating_variant) -> None:
    store = SeriesStore()
    first = store.initialize("x", "A", {"value": [Point(i, float(i)) for i in range(5)]}, heating_variant)
    second = store.initialize("x", "B", {"value": [Point(1, 1.0), Point(2, 2.0)]}, heating_variant)

    assert store.get("x") is second
    assert first is not second
    assert len(second["value"]) == 2
    assert len(store) == 1


def test_set_title_and_destroy(heating_variant) -> None:
    store = SeriesStore()
    instance = store.initialize("zone-1", "Salon", {"value": []}, heating_variant)
    store.set_title(instance, "Kuchnia")
    assert instance.title == "Kuchnia"

    assert store.destroy("zone-1") is True
    assert store.get("zone-1") is None
    assert store.destroy("zone-1") is False


def test_auxiliary_roles_follow_variant() -> None:
    store = SeriesStore()
    instance = store.initialize("boiler", "Kotłownia", {"value": []}, BUILTIN_VARIANTS["heating_pipe_in"])

    assert "pipe_in" in instance.series
    assert store.append(instance, "pipe_in", Point(10, 45.0)) is True
    with pytest.raises(KeyError):
        store.append(instance, "pipe_out", Point(10, 40.0))
