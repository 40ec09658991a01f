"""Collections of metrics that share a descriptor and differ by label values."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .value import (
    InconsistentCardinalityError,
    MetricFamily,
    MetricsError,
    MetricType,
    Value,
    ValueType,
)

__all__ = ["MetricVecBuilder", "MetricVec"]


@dataclass(frozen=True)
class MetricVecBuilder:
    """Creates the child metric for one combination of label values.

    The default creates a :class:`Value`; subclasses may override :meth:`build`.
    """

    value_type: ValueType = ValueType.COUNTER
    initial: float = 0.0

    def build(self, opts: Any, label_values: Sequence[str]) -> Any:
        return Value(opts, self.value_type, self.initial, label_values)


class MetricVec:
    """A collector bundling metrics of one name that differ in their label values."""

    def __init__(self, metric_type: MetricType, builder: MetricVecBuilder, opts: Any) -> None:
        self._desc = opts.describe()
        self.metric_type = metric_type
        self.builder = builder
        self.opts = opts
        self._children: dict[tuple[str, ...], Any] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"MetricVec({self._desc.fq_name!r})"

    def _key_from_values(self, vals: Sequence[str]) -> tuple[str, ...]:
        expected = len(self._desc.variable_labels)
        if len(vals) != expected:
            raise InconsistentCardinalityError(expected, len(vals))
        return tuple(vals)

    def _key_from_labels(self, labels: Mapping[str, str]) -> tuple[str, ...]:
        expected = len(self._desc.variable_labels)
        if len(labels) != expected:
            raise InconsistentCardinalityError(expected, len(labels))
        values = []
        for name in self._desc.variable_labels:
            if name not in labels:
                raise MetricsError(f"label name {name} missing in label map")
            values.append(labels[name])
        return tuple(values)

    def _get_or_create(self, key: tuple[str, ...]) -> Any:
        with self._lock:
            metric = self._children.get(key)
            if metric is None:
                metric = self.builder.build(self.opts, list(key))
                self._children[key] = metric
            return metric

    def get_metric_with_label_values(self, vals: Sequence[str]) -> Any:
        """Return the metric for label values given in descriptor order, creating it if needed."""
        return self._get_or_create(self._key_from_values(vals))

    def get_metric_with(self, labels: Mapping[str, str]) -> Any:
        """Return the metric for a label-name-to-value map, creating it if needed."""
        return self._get_or_create(self._key_from_labels(labels))

    def with_label_values(self, vals: Sequence[str]) -> Any:
        return self.get_metric_with_label_values(vals)

    def with_labels(self, labels: Mapping[str, str]) -> Any:
        return self.get_metric_with(labels)

    def remove_label_values(self, vals: Sequence[str]) -> None:
        """Remove the metric with these label values; raise if there is none."""
        key = self._key_from_values(vals)
        with self._lock:
            if self._children.pop(key, None) is None:
                raise MetricsError(f"missing label values {list(vals)!r}")

    def remove(self, labels: Mapping[str, str]) -> None:
        """Remove the metric with these labels; raise if there is none."""
        key = self._key_from_labels(labels)
        with self._lock:
            if self._children.pop(key, None) is None:
                raise MetricsError(f"missing labels {dict(labels)!r}")

    def reset(self) -> None:
        """Delete every metric in this vector."""
        with self._lock:
            self._children.clear()

    def desc(self) -> list[Any]:
        return [self._desc]

    def collect(self) -> list[MetricFamily]:
        with self._lock:
            children = list(self._children.values())
        family = MetricFamily(
            name=self._desc.fq_name,
            help=self._desc.help,
            type=self.metric_type,
            metrics=[child.metric() for child in children],
        )
        return [family]