from dataclasses import dataclass, field

import pytest

from promkit.value import (
    InconsistentCardinalityError,
    LabelPair,
    MetricsError,
    MetricType,
    Value,
    ValueType,
    make_label_pairs,
)


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
    const_labels: dict = field(default_factory=dict)

    def describe(self):
        pairs = sorted(LabelPair(k, v) for k, v in self.const_labels.items())
        return FakeDesc(self.name, self.help, list(self.variable_labels), pairs)


class FailingOpts:
    def describe(self):
        raise MetricsError("bad descriptor")


def test_metric_type_values_follow_format():
    assert ValueType.COUNTER.metric_type() == 0
    assert ValueType.GAUGE.metric_type() == 1
    family = Value(FakeOpts("c", "help"), ValueType.COUNTER, 0).collect()
    assert family.type == 0


def test_value_type_maps_to_metric_type():
    assert ValueType.COUNTER.metric_type() is MetricType.COUNTER
    assert ValueType.GAUGE.metric_type() is MetricType.GAUGE


def test_make_label_pairs_empty():
    assert make_label_pairs(FakeDesc("x", "h"), []) == []


def test_make_label_pairs_const_only():
    desc = FakeDesc("x", "h", [], [LabelPair("a", "1")])
    assert make_label_pairs(desc, []) == [LabelPair("a", "1")]


def test_make_label_pairs_sorted_by_name():
    desc = FakeDesc("x", "h", ["c", "a"], [LabelPair("b", "2")])
    pairs = make_label_pairs(desc, ["vc", "va"])
    assert [p.name for p in pairs] == ["a", "b", "c"]
    assert [p.value for p in pairs] == ["va", "2", "vc"]


def test_make_label_pairs_cardinality_error():
    desc = FakeDesc("x", "h", ["a", "b"])
    with pytest.raises(InconsistentCardinalityError) as info:
        make_label_pairs(desc, ["1"])
    assert info.value.expect == 2
    assert info.value.got == 1


def test_counter_value_operations():
    v = Value(FakeOpts("requests", "help"), ValueType.COUNTER, 0.0)
    v.inc()
    v.inc_by(4.0)
    assert v.get() == 5.0
    v.set(2.5)
    assert v.get() == 2.5


def test_gauge_value_dec():
    v = Value(FakeOpts("temp", "help"), ValueType.GAUGE, 10)
    v.dec()
    v.dec_by(3)
    assert v.get() == 6


def test_counter_metric_carries_counter_only():
    v = Value(FakeOpts("c", "help", ["l"]), ValueType.COUNTER, 3, ["x"])
    m = v.metric()
    assert m.counter == 3.0
    assert m.gauge is None
    assert m.labels == [LabelPair("l", "x")]


def test_gauge_collect_family():
    opts = FakeOpts("g", "gauge help", [], {"env": "test"})
    v = Value(opts, ValueType.GAUGE, 1.5)
    family = v.collect()
    assert family.name == "g"
    assert family.help == "gauge help"
    assert family.type is MetricType.GAUGE
    assert len(family.metrics) == 1
    assert family.metrics[0].gauge == 1.5
    assert family.metrics[0].labels == [LabelPair("env", "test")]


def test_value_propagates_describe_error():
    with pytest.raises(MetricsError):
        Value(FailingOpts(), ValueType.COUNTER, 0)


def test_value_rejects_wrong_label_count():
    with pytest.raises(InconsistentCardinalityError):
        Value(FakeOpts("c", "h", ["a"]), ValueType.COUNTER, 0, [])