from dataclasses import dataclass, field

import pytest

from promkit.value import (
    InconsistentCardinalityError,
    LabelPair,
    MetricsError,
    MetricType,
    ValueType,
)
from promkit.vec import MetricVec, MetricVecBuilder


@dataclass
class FakeDesc:
    fq_name: str
    help: str
    variable_labels: list = field(default_factory=list)
    const_label_pairs: list = field(default_factory=list)


@dataclass
class FakeOpts:
    name: str
    help: str
    variable_labels: list = field(default_factory=list)

    def describe(self):
        return FakeDesc(self.name, self.help, list(self.variable_labels), [])


def counter_vec(name, help_text, labels):
    return MetricVec(MetricType.COUNTER, MetricVecBuilder(ValueType.COUNTER), FakeOpts(name, help_text, labels))


def gauge_vec(name, help_text, labels):
    return MetricVec(MetricType.GAUGE, MetricVecBuilder(ValueType.GAUGE), FakeOpts(name, help_text, labels))


def test_counter_vec_with_labels():
    vec = counter_vec("test_couter_vec", "test counter vec help", ["l1", "l2"])
    labels = {"l1": "v1", "l2": "v2"}
    with pytest.raises(MetricsError):
        vec.remove(labels)

    vec.with_labels(labels).inc()
    vec.remove(labels)
    with pytest.raises(MetricsError):
        vec.remove(labels)

    labels2 = {"l1": "v2", "l2": "v1"}
    vec.with_labels(labels).inc()
    with pytest.raises(MetricsError):
        vec.remove(labels2)

    vec.with_labels(labels).inc()
    assert vec.with_labels(labels).get() == 2.0
    with pytest.raises(InconsistentCardinalityError):
        vec.remove({"l1": "v1"})


def test_counter_vec_with_label_values():
    vec = counter_vec("test_vec", "test counter vec help", ["l1", "l2"])
    with pytest.raises(MetricsError):
        vec.remove_label_values(["v1", "v2"])
    vec.with_label_values(["v1", "v2"]).inc()
    vec.remove_label_values(["v1", "v2"])

    vec.with_label_values(["v1", "v2"]).inc()
    with pytest.raises(InconsistentCardinalityError):
        vec.remove_label_values(["v1"])
    with pytest.raises(MetricsError):
        vec.remove_label_values(["v1", "v3"])


def test_gauge_vec_with_labels():
    vec = gauge_vec("test_gauge_vec", "test gauge vec help", ["l1", "l2"])
    labels = {"l1": "v1", "l2": "v2"}
    with pytest.raises(MetricsError):
        vec.remove(labels)

    vec.with_labels(labels).inc()
    vec.with_labels(labels).dec()
    vec.with_labels(labels).inc_by(42.0)
    vec.with_labels(labels).dec_by(42.0)
    assert vec.with_labels(labels).get() == 0.0
    vec.with_labels(labels).set(42.0)
    assert vec.with_labels(labels).get() == 42.0

    vec.remove(labels)
    with pytest.raises(MetricsError):
        vec.remove(labels)


def test_gauge_vec_with_label_values():
    vec = gauge_vec("test_gauge_vec", "test gauge vec help", ["l1", "l2"])
    with pytest.raises(MetricsError):
        vec.remove_label_values(["v1", "v2"])
    vec.with_label_values(["v1", "v2"]).inc()
    vec.remove_label_values(["v1", "v2"])

    vec.with_label_values(["v1", "v2"]).inc()
    vec.with_label_values(["v1", "v2"]).dec()
    vec.with_label_values(["v1", "v2"]).inc_by(42.0)
    vec.with_label_values(["v1", "v2"]).dec_by(42.0)
    vec.with_label_values(["v1", "v2"]).set(42.0)
    assert vec.with_label_values(["v1", "v2"]).get() == 42.0

    with pytest.raises(InconsistentCardinalityError):
        vec.remove_label_values(["v1"])
    with pytest.raises(MetricsError):
        vec.remove_label_values(["v1", "v3"])


def test_vec_get_metric_with():
    vec = counter_vec("test_vec", "test counter vec help", ["b", "c", "a"])
    labels = {"a": "b", "b": "c", "c": "a"}
    metric = vec.get_metric_with(labels).metric()
    assert len(metric.labels) == len(labels)
    for pair in metric.labels:
        assert pair.value == labels[pair.name]


def test_same_labels_return_same_child():
    vec = counter_vec("test_vec", "help", ["a", "b"])
    first = vec.with_label_values(["x", "y"])
    assert vec.with_labels({"a": "x", "b": "y"}) is first


def test_missing_label_name_raises():
    vec = counter_vec("test_vec", "help", ["a", "b"])
    with pytest.raises(MetricsError, match="label name b missing"):
        vec.get_metric_with({"a": "1", "c": "2"})


def test_collect_and_reset():
    vec = counter_vec("test_vec", "vec help", ["a"])
    vec.with_label_values(["1"]).inc()
    vec.with_label_values(["2"]).inc_by(3)
    [family] = vec.collect()
    assert family.name == "test_vec"
    assert family.help == "vec help"
    assert family.type is MetricType.COUNTER
    values = {m.labels[0].value: m.counter for m in family.metrics}
    assert values == {"1": 1.0, "2": 3.0}

    vec.reset()
    assert vec.collect()[0].metrics == []


def test_desc_is_the_described_descriptor():
    vec = counter_vec("test_vec", "help", ["a"])
    [desc] = vec.desc()
    assert desc.fq_name == "test_vec"
    assert desc.variable_labels == ["a"]


def test_children_have_label_pairs():
    vec = counter_vec("test_vec", "help", ["a"])
    assert vec.with_label_values(["q"]).metric().labels == [LabelPair("a", "q")]