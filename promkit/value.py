"""Metric data model and the simple value metric behind counters and gauges."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

__all__ = [
    "MetricsError",
    "InconsistentCardinalityError",
    "AlreadyRegisteredError",
    "MetricType",
    "LabelPair",
    "Metric",
    "MetricFamily",
    "ValueType",
    "Value",
    "make_label_pairs",
]

Number = Union[int, float]


class MetricsError(Exception):
    """Base class for errors raised by this package."""


class InconsistentCardinalityError(MetricsError):
    """The number of label values does not match the number of label names."""

    def __init__(self, expect: int, got: int) -> None:
        super().__init__(
            f"inconsistent label cardinality, expect {expect} label values, but got {got}"
        )
        self.expect = expect
        self.got = got


class AlreadyRegisteredError(MetricsError):
    """A collector with the same descriptors is already registered."""

    def __init__(self, message: str = "duplicate metrics collector registration attempted") -> None:
        super().__init__(message)


class MetricType(enum.IntEnum):
    """Metric family types of the exposition format."""

    COUNTER = 0
    GAUGE = 1
    SUMMARY = 2
    UNTYPED = 3
    HISTOGRAM = 4


@dataclass(frozen=True, order=True)
class LabelPair:
    """A label name with its value."""

    name: str
    value: str


@dataclass
class Metric:
    """One sample of a metric family: its labels and its value."""

    labels: list[LabelPair] = field(default_factory=list)
    counter: Optional[float] = None
    gauge: Optional[float] = None
    timestamp_ms: Optional[int] = None


@dataclass
class MetricFamily:
    """All samples sharing a name, help text and type."""

    name: str
    help: str
    type: MetricType
    metrics: list[Metric] = field(default_factory=list)


class ValueType(enum.Enum):
    """The kinds of simple value metric."""

    COUNTER = "counter"
    GAUGE = "gauge"

    def metric_type(self) -> MetricType:
        """Return the matching metric family type."""
        return MetricType.COUNTER if self is ValueType.COUNTER else MetricType.GAUGE


def make_label_pairs(desc: Any, label_values: Sequence[str]) -> list[LabelPair]:
    """Combine a descriptor's variable label names with ``label_values`` and its constant labels."""
    variable_labels = list(desc.variable_labels)
    const_pairs = list(desc.const_label_pairs)
    if len(variable_labels) != len(label_values):
        raise InconsistentCardinalityError(len(variable_labels), len(label_values))
    if not variable_labels and not const_pairs:
        return []
    if not variable_labels:
        return const_pairs
    pairs = [LabelPair(name, value) for name, value in zip(variable_labels, label_values)]
    pairs.extend(const_pairs)
    return sorted(pairs)


class Value:
    """A thread-safe numeric value exported as a counter or gauge."""

    def __init__(
        self,
        describer: Any,
        val_type: ValueType,
        val: Number,
        label_values: Sequence[str] = (),
    ) -> None:
        self.desc = describer.describe()
        self.label_pairs = make_label_pairs(self.desc, label_values)
        self.val_type = val_type
        self._val = val
        self._lock = threading.Lock()

    def get(self) -> Number:
        return self._val

    def set(self, val: Number) -> None:
        with self._lock:
            self._val = val

    def inc_by(self, val: Number) -> None:
        with self._lock:
            self._val += val

    def inc(self) -> None:
        self.inc_by(1)

    def dec(self) -> None:
        self.dec_by(1)

    def dec_by(self, val: Number) -> None:
        with self._lock:
            self._val -= val

    def metric(self) -> Metric:
        """Return the current sample."""
        value = float(self.get())
        if self.val_type is ValueType.COUNTER:
            return Metric(labels=list(self.label_pairs), counter=value)
        return Metric(labels=list(self.label_pairs), gauge=value)

    def collect(self) -> MetricFamily:
        """Return a family holding just this value's sample."""
        return MetricFamily(
            name=self.desc.fq_name,
            help=self.desc.help,
            type=self.val_type.metric_type(),
            metrics=[self.metric()],
        )