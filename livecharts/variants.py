"""Deployment variants describing which series a chart carries."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .settings import ConfigurationError

LOGGER = logging.getLogger(__name__)

VALUE = "value"
EXPECTED_VALUE = "expected_value"
STATE = "state"
CORE_ROLES: Tuple[str, ...] = (VALUE, EXPECTED_VALUE, STATE)

VALUE_COLOR = "#85144B"
EXPECTED_COLOR = "rgba(255, 220,0, 0.5)"
STATE_COLOR = "rgba(1, 255, 112, 0.25)"
PIPE_IN_COLOR = "#7FDBFF"


class SeriesKind(str, Enum):
    CONTINUOUS = "continuous"
    STEP = "step"


class BulkShape(str, Enum):
    INDEX_ALIGNED = "index_aligned"
    TIMESTAMP_TAGGED = "timestamp_tagged"


class ContinuationPolicy(str, Enum):
    ON_DUPLICATE = "on_duplicate"
    ALWAYS = "always"


@dataclass(frozen=True)
class RoleSpec:
    role: str
    label: str
    kind: SeriesKind = SeriesKind.CONTINUOUS
    color: Optional[str] = None
    axis: str = "temp"
    unit: str = "°C"
    bulk_key: Optional[str] = None

    @property
    def seed_key(self) -> str:
        return self.bulk_key or self.role


@dataclass(frozen=True)
class ChartVariant:
    """One deployment flavour of the live chart."""

    name: str
    roles: Tuple[RoleSpec, ...]
    bulk_shape: BulkShape = BulkShape.TIMESTAMP_TAGGED
    expected_placeholder: bool = False
    continuation: ContinuationPolicy = ContinuationPolicy.ON_DUPLICATE
    labels_key: str = "labels"

    def __post_init__(self) -> None:
        names = [spec.role for spec in self.roles]
        if VALUE not in names:
            raise ConfigurationError(f"Variant '{self.name}' must declare a '{VALUE}' role")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Variant '{self.name}' declares duplicate roles")

    @property
    def role_names(self) -> List[str]:
        return [spec.role for spec in self.roles]

    @property
    def auxiliary_roles(self) -> List[str]:
        return [spec.role for spec in self.roles if spec.role not in CORE_ROLES]

    def has_role(self, role: str) -> bool:
        return any(spec.role == role for spec in self.roles)

    def role(self, role: str) -> RoleSpec:
        for spec in self.roles:
            if spec.role == role:
                return spec
        raise KeyError(role)


VALUE_ROLE = RoleSpec(VALUE, "Temperatura", color=VALUE_COLOR, bulk_key="values")
EXPECTED_ROLE = RoleSpec(EXPECTED_VALUE, "Oczekiwana temperatura", color=EXPECTED_COLOR, bulk_key="expected_values")
STATE_ROLE = RoleSpec(
    STATE,
    "Ogrzewanie",
    kind=SeriesKind.STEP,
    color=STATE_COLOR,
    axis="state",
    unit="",
    bulk_key="states",
)
PIPE_IN_ROLE = RoleSpec("pipe_in", "Temperatura wody na wejściu", color=PIPE_IN_COLOR, bulk_key="pipe_in")

_HEATING = ChartVariant("heating", roles=(VALUE_ROLE, EXPECTED_ROLE, STATE_ROLE))

BUILTIN_VARIANTS: Dict[str, ChartVariant] = {
    "heating": _HEATING,
    "heating_pipe_in": replace(
        _HEATING,
        name="heating_pipe_in",
        roles=(VALUE_ROLE, EXPECTED_ROLE, replace(STATE_ROLE, label="Ogrzewanie strefy"), PIPE_IN_ROLE),
    ),
    "heating_indexed": replace(
        _HEATING,
        name="heating_indexed",
        bulk_shape=BulkShape.INDEX_ALIGNED,
        expected_placeholder=True,
    ),
    "heating_carry_forward": replace(
        _HEATING,
        name="heating_carry_forward",
        continuation=ContinuationPolicy.ALWAYS,
    ),
}


def _enum_value(enum_cls: type, raw: Any, *, field_name: str, variant: str) -> Any:
    try:
        return enum_cls(raw)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Variant '{variant}': invalid {field_name} '{raw}' (expected one of: {allowed})"
        ) from exc


def _role_from_config(name: str, raw: Any, variant: str) -> RoleSpec:
    if isinstance(raw, str):
        raw = {"label": raw}
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Variant '{variant}': role '{name}' must be a mapping")
    base = {VALUE: VALUE_ROLE, EXPECTED_VALUE: EXPECTED_ROLE, STATE: STATE_ROLE}.get(name)
    if base is None:
        base = RoleSpec(name, name.replace("_", " ").capitalize())
    kind = raw.get("kind")
    return replace(
        base,
        label=raw.get("label", base.label),
        kind=_enum_value(SeriesKind, kind, field_name="kind", variant=variant) if kind else base.kind,
        color=raw.get("color", base.color),
        axis=raw.get("axis", base.axis),
        unit=raw.get("unit", base.unit),
        bulk_key=raw.get("bulk_key", base.bulk_key),
    )


def variant_from_config(
    name: str,
    raw: Mapping[str, Any],
    known: Optional[Mapping[str, ChartVariant]] = None,
) -> ChartVariant:
    """Build a variant from one entry of the ``variants:`` config section.

    ``extends`` is resolved against ``known`` (built-ins by default); without
    it an entry overrides the variant of the same name or starts from
    ``heating``.
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Variant '{name}' must be a mapping, got {type(raw).__name__}")
    table = known if known is not None else BUILTIN_VARIANTS
    if "extends" in raw:
        parent = raw.get("extends")
        if not isinstance(parent, str) or parent not in table:
            known_names = ", ".join(sorted(table))
            raise ConfigurationError(f"Variant '{name}' extends unknown variant '{parent}' (known: {known_names})")
        base = table[parent]
    else:
        base = table.get(name, _HEATING)
    roles = base.roles
    if "roles" in raw:
        role_cfg = raw.get("roles") or {}
        if isinstance(role_cfg, list):
            role_cfg = {role: None for role in role_cfg}
        if not isinstance(role_cfg, Mapping):
            raise ConfigurationError(f"Variant '{name}': roles must be a list or mapping")
        roles = tuple(_role_from_config(role, spec, name) for role, spec in role_cfg.items())
    auxiliary = raw.get("auxiliary") or {}
    if not isinstance(auxiliary, Mapping):
        raise ConfigurationError(f"Variant '{name}': auxiliary must be a mapping of role -> settings")
    for aux_name, spec in auxiliary.items():
        roles = roles + (_role_from_config(aux_name, spec, name),)

    shape = raw.get("bulk_shape")
    continuation = raw.get("continuation")
    return ChartVariant(
        name=name,
        roles=roles,
        bulk_shape=_enum_value(BulkShape, shape, field_name="bulk_shape", variant=name) if shape else base.bulk_shape,
        expected_placeholder=bool(raw.get("expected_placeholder", base.expected_placeholder)),
        continuation=(
            _enum_value(ContinuationPolicy, continuation, field_name="continuation", variant=name)
            if continuation
            else base.continuation
        ),
        labels_key=raw.get("labels_key", base.labels_key),
    )


def load_variants(config: Optional[Mapping[str, Any]] = None) -> Dict[str, ChartVariant]:
    """Return built-in variants merged with those declared in ``config``."""
    variants: Dict[str, ChartVariant] = dict(BUILTIN_VARIANTS)
    section = (config or {}).get("variants") or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError("'variants' must be a mapping of name -> settings")
    for name, raw in section.items():
        variants[name] = variant_from_config(name, {} if raw is None else raw, variants)
        LOGGER.debug("Loaded chart variant '%s'", name)
    return variants


def get_variant(name: str, variants: Optional[Mapping[str, ChartVariant]] = None) -> ChartVariant:
    table = variants if variants is not None else BUILTIN_VARIANTS
    try:
        return table[name]
    except KeyError as exc:
        known = ", ".join(sorted(table))
        raise ConfigurationError(f"Unknown chart variant '{name}' (known: {known})") from exc


def describe(variants: Iterable[ChartVariant]) -> List[Dict[str, Any]]:
    return [
        {
            "name": variant.name,
            "roles": variant.role_names,
            "bulk_shape": variant.bulk_shape.value,
            "expected_placeholder": variant.expected_placeholder,
            "continuation": variant.continuation.value,
        }
        for variant in variants
    ]


__all__ = [
    "BUILTIN_VARIANTS",
    "BulkShape",
    "ChartVariant",
    "ContinuationPolicy",
    "EXPECTED_VALUE",
    "RoleSpec",
    "STATE",
    "SeriesKind",
    "VALUE",
    "describe",
    "get_variant",
    "load_variants",
    "variant_from_config",
]
