"""Static metrics: label value combinations fixed ahead of time.

A definition text (see :mod:`promkit.static_parser`) is turned into Python
classes. Each ``label_enum`` becomes an :class:`enum.Enum` whose members know
their label string. Each metric ``struct`` becomes a chain of classes, one per
label. Every possible label value is an attribute that leads to the next level,
and the last level holds the metrics themselves::

    defs = make_static_metric('''
        pub label_enum Methods { post, get }
        pub struct Requests: Counter {
            "method" => Methods,
            "product" => { foo, bar: "bar_name" },
        }
    ''')
    requests = defs["Requests"].from_vec(counter_vec)
    requests.post.foo.inc()
    requests[defs["Methods"].get].bar.inc()
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

from .registry import register
from .static_parser import LabelEnumDef, MetricDef, StaticMetricBody, ValueDef, parse
from .value import MetricsError

__all__ = [
    "StaticMetricError",
    "is_local_metric",
    "to_non_local_metric_type",
    "metric_vec_type",
    "label_struct_name",
    "make_static_metric",
    "register_static_vec",
]

_LOCAL_PREFIX = "Local"
_RESERVED_FIELDS = frozenset({"from_vec", "try_get", "flush", "_spec"})


class StaticMetricError(MetricsError):
    """A static metric definition is well-formed but cannot be built."""


def is_local_metric(metric_type: str) -> bool:
    """Return True for thread-local metric types such as ``LocalIntCounter``."""
    return metric_type.startswith(_LOCAL_PREFIX)


def to_non_local_metric_type(metric_type: str) -> str:
    """Strip the ``Local`` prefix from a metric type name, if present."""
    if metric_type.startswith(_LOCAL_PREFIX):
        return metric_type[len(_LOCAL_PREFIX):]
    return metric_type


def metric_vec_type(metric_type: str) -> str:
    """Return the name of the vector type holding metrics of ``metric_type``."""
    return f"{metric_type}Vec"


def label_struct_name(struct_name: str, label_index: int) -> str:
    """Return the class name for the level of ``struct_name`` at ``label_index``."""
    if label_index > 0:
        return f"{struct_name}{label_index + 1}"
    return struct_name


class _LabelEnum(enum.Enum):
    """Base of generated label enums; each member's value is ``(name, label)``."""

    def get_str(self) -> str:
        """Return the label value this member stands for."""
        return self.value[1]

    def __str__(self) -> str:
        return self.get_str()

    def __repr__(self) -> str:
        return self.get_str()

    def __format__(self, format_spec: str) -> str:
        return format(self.get_str(), format_spec)


@dataclass(frozen=True)
class _LevelSpec:
    struct_name: str
    label_keys: tuple[str, ...]
    value_defs: tuple[ValueDef, ...]
    child: Optional[type]
    enum: Optional[type]
    local: bool


class _StaticLevel:
    """Base of generated metric classes: one instance per label level."""

    __slots__ = ()
    _spec: _LevelSpec

    @classmethod
    def from_vec(cls, vec: Any, *prev_values: str) -> "_StaticLevel":
        """Build this level from ``vec``, given the values of the labels before it."""
        spec = cls._spec
        expected = len(spec.label_keys) - 1
        if len(prev_values) != expected:
            raise TypeError(
                f"{cls.__name__}.from_vec expects {expected} preceding label values, "
                f"got {len(prev_values)}"
            )
        instance = object.__new__(cls)
        for value_def in spec.value_defs:
            values = (*prev_values, value_def.value)
            if spec.child is None:
                metric = vec.with_labels(dict(zip(spec.label_keys, values)))
                if spec.local:
                    metric = metric.local()
            else:
                metric = spec.child.from_vec(vec, *values)
            object.__setattr__(instance, value_def.name, metric)
        return instance

    def try_get(self, value: str) -> Any:
        """Return the member for label value ``value``, or None if there is none."""
        for value_def in self._spec.value_defs:
            if value_def.value == value:
                return getattr(self, value_def.name)
        return None

    def __getitem__(self, value: enum.Enum) -> Any:
        enum_cls = self._spec.enum
        if enum_cls is None:
            raise TypeError(f"{type(self).__name__} is not keyed by a label enum")
        if not isinstance(value, enum_cls):
            raise TypeError(
                f"{type(self).__name__} is keyed by {enum_cls.__name__}, got {value!r}"
            )
        return getattr(self, value.name)

    def _flush_children(self) -> None:
        """Flush every local metric below this level."""
        for value_def in self._spec.value_defs:
            getattr(self, value_def.name).flush()

    def __repr__(self) -> str:
        names = ", ".join(value_def.name for value_def in self._spec.value_defs)
        return f"{type(self).__name__}({names})"


def _check_field_names(owner: str, value_defs: tuple[ValueDef, ...]) -> None:
    seen: set[str] = set()
    for value_def in value_defs:
        name = value_def.name
        if name in seen:
            raise StaticMetricError(f"duplicate value `{name}` in `{owner}`")
        if name in _RESERVED_FIELDS or name.startswith("__"):
            raise StaticMetricError(f"value name `{name}` in `{owner}` is reserved")
        seen.add(name)


def _build_label_enum(definition: LabelEnumDef) -> type:
    members = [(vd.name, (vd.name, vd.value)) for vd in definition.definitions]
    try:
        return _LabelEnum(
            definition.name, members, module=__name__, qualname=definition.name
        )
    except (TypeError, ValueError) as exc:
        raise StaticMetricError(
            f"cannot build label enum `{definition.name}`: {exc}"
        ) from exc


def _check_enum_references(
    metric: MetricDef, enums: dict[str, LabelEnumDef]
) -> None:
    for label in metric.labels:
        enum_name = label.enum_name()
        if enum_name is None:
            continue
        enum_def = enums.get(enum_name)
        if enum_def is None:
            raise StaticMetricError(f"Label enum `{enum_name}` is undefined.")
        if metric.is_public and not enum_def.is_public:
            raise StaticMetricError(
                f"Label enum `{enum_name}` does not have enough visibility because it is "
                f"used in metric `{metric.struct_name}` which has `pub` visibility."
            )


def _build_metric(
    metric: MetricDef,
    enums: dict[str, LabelEnumDef],
    enum_classes: dict[str, type],
) -> type:
    if not metric.labels:
        raise StaticMetricError(f"metric `{metric.struct_name}` has no labels")
    _check_enum_references(metric, enums)

    local = is_local_metric(metric.metric_type)
    keys = tuple(label.key for label in metric.labels)
    child: Optional[type] = None
    for index in reversed(range(len(metric.labels))):
        label = metric.labels[index]
        name = label_struct_name(metric.struct_name, index)
        value_defs = label.value_defs(enums)
        _check_field_names(name, value_defs)
        enum_name = label.enum_name()
        spec = _LevelSpec(
            struct_name=name,
            label_keys=keys[: index + 1],
            value_defs=value_defs,
            child=child,
            enum=enum_classes[enum_name] if enum_name is not None else None,
            local=local,
        )
        namespace: dict[str, Any] = {
            "__slots__": tuple(vd.name for vd in value_defs),
            "__module__": __name__,
            "__qualname__": name,
            "_spec": spec,
        }
        if local:
            namespace["flush"] = _StaticLevel._flush_children
        child = type(name, (_StaticLevel,), namespace)
    assert child is not None
    return child


def make_static_metric(source: Union[str, StaticMetricBody]) -> dict[str, type]:
    """Build the label enums and metric classes defined by ``source``.

    Returns a mapping from each defined name to its generated class, in
    definition order. Syntax errors raise StaticMetricSyntaxError; definitions
    that parse but cannot be built raise StaticMetricError.
    """
    body = source if isinstance(source, StaticMetricBody) else parse(source)
    enums: dict[str, LabelEnumDef] = {}
    enum_classes: dict[str, type] = {}
    generated: dict[str, type] = {}
    for item in body.items:
        name = item.name if isinstance(item, LabelEnumDef) else item.struct_name
        if name in generated:
            raise StaticMetricError(f"`{name}` is defined more than once")
        if isinstance(item, LabelEnumDef):
            enum_cls = _build_label_enum(item)
            enums[name] = item
            enum_classes[name] = enum_cls
            generated[name] = enum_cls
        else:
            generated[name] = _build_metric(item, enums, enum_classes)
    return generated


def register_static_vec(static_class: type, vec: Any) -> Any:
    """Register ``vec`` with the default registry and build ``static_class`` from it."""
    register(vec)
    return static_class.from_vec(vec)