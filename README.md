# promkit

Building blocks for Prometheus-style instrumentation, with no dependencies
outside the standard library.

- `promkit.value`: the metric family data model (`MetricType`, `LabelPair`,
  `Metric`, `MetricFamily`), the errors (`MetricsError`,
  `InconsistentCardinalityError`, `AlreadyRegisteredError`), `ValueType`,
  the thread-safe `Value` behind counters and gauges, and
  `make_label_pairs()`.
- `promkit.vec`: `MetricVec`, a collector that groups metrics of one name by
  their label values, and `MetricVecBuilder`, which creates each child.
- `promkit.registry`: `Registry`, the `Collector` protocol and a
  process-wide registry reached through `default_registry()`, `register()`,
  `unregister()` and `gather()`.
- `promkit.static_parser` and `promkit.static_metric`: declare a fixed set
  of label values once and reach every child metric by attribute.
- `promkit.timer`: a cheap monotonic millisecond clock with an optional
  background updater.

## Installing

```
pip install .
```

## Descriptors

`Value`, `MetricVec` and `Registry` work with a descriptor object that you
supply. The object passed as `opts` (or `describer`) must have a
`describe()` method returning a descriptor with these attributes:

- `fq_name`, `help`: the metric name and help text;
- `variable_labels`: the label names, in order;
- `const_label_pairs`: a sequence of `LabelPair` added to every sample;
- `id`, `dim_hash`: integers the registry uses to detect clashes (`id` for
  the name with its constant labels, `dim_hash` for the name with its label
  names and help text).

A minimal one:

```python
import zlib
from dataclasses import dataclass

from promkit.value import LabelPair


@dataclass(frozen=True)
class Opts:
    fq_name: str
    help: str
    variable_labels: tuple[str, ...] = ()
    const_label_pairs: tuple[LabelPair, ...] = ()

    @property
    def id(self) -> int:
        text = self.fq_name + repr(self.const_label_pairs)
        return zlib.crc32(text.encode())

    @property
    def dim_hash(self) -> int:
        text = self.fq_name + self.help + repr(self.variable_labels)
        return zlib.crc32(text.encode())

    def describe(self) -> "Opts":
        return self
```

## Metric vectors

```python
from promkit.value import MetricType, ValueType
from promkit.vec import MetricVec, MetricVecBuilder

requests = MetricVec(
    MetricType.COUNTER,
    MetricVecBuilder(ValueType.COUNTER),
    Opts("http_requests_total", "Number of HTTP requests.", ("code", "method")),
)

requests.with_label_values(["404", "POST"]).inc()
requests.with_labels({"code": "404", "method": "POST"}).inc_by(2)
print(requests.with_label_values(["404", "POST"]).get())   # 3.0

requests.remove_label_values(["404", "POST"])
requests.reset()
```

The default `MetricVecBuilder` creates a `Value` of the given `ValueType`,
starting at `initial` (0.0). A `Value` supports `get`, `set`, `inc`,
`inc_by`, `dec`, `dec_by`, `metric()` and `collect()`. Subclass
`MetricVecBuilder` and override `build(opts, label_values)` to create
other child types; the child must provide `metric()`.

Passing the wrong number of label values raises
`InconsistentCardinalityError`. A missing label name, or removing a child
that does not exist, raises `MetricsError`.

## Registries

```python
from promkit.registry import Registry

registry = Registry(prefix="myapp", labels={"instance": "a"})
registry.register(requests)
for family in registry.gather():
    print(family.name, family.type.name, len(family.metrics))
```

A collector is anything with `desc()` (a list of descriptors) and
`collect()` (a list of `MetricFamily`), such as `MetricVec`.

- Registering a collector whose descriptors are already registered raises
  `AlreadyRegisteredError`. A descriptor whose name is known with a
  different `dim_hash`, or a collector repeating one descriptor, raises
  `MetricsError`.
- `unregister()` removes the collector with the same descriptors and raises
  `MetricsError` if there is none.
- `gather()` leaves out empty families, merges families of the same name,
  orders families by name and metrics by their label values, then adds the
  prefix (`<prefix>_<name>`) and the common labels (appended after each
  metric's own labels).
- An empty prefix raises `MetricsError`.

The module-level `register()`, `unregister()` and `gather()` act on
`default_registry()`.

## Static metrics

`make_static_metric()` reads definition text and returns a dict from each
defined name to a generated class, in definition order:

```python
from promkit.static_metric import make_static_metric, register_static_vec

defs = make_static_metric('''
    pub label_enum Methods { post, get, put, delete }

    pub struct HttpRequests: Counter {
        "method" => Methods,
        "product" => { foo, bar: "bar_name" },
    }
''')
Methods = defs["Methods"]
HttpRequests = defs["HttpRequests"]

vec = MetricVec(
    MetricType.COUNTER,
    MetricVecBuilder(ValueType.COUNTER),
    Opts("http_requests", "Requests.", ("method", "product")),
)
stats = HttpRequests.from_vec(vec)

stats.post.foo.inc()
stats[Methods.put].bar.inc()                  # levels keyed by a label enum
stats.try_get("delete").try_get("bar_name")   # by label value, None if unknown
print(Methods.post.get_str(), str(Methods.put))   # post put
```

- A value written alone is both attribute name and label value;
  `name: "value"` sets them separately.
- The children are looked up by label name, so the vector's label order
  need not match the definition.
- Each label becomes one class level, named by `label_struct_name()`:
  `HttpRequests`, then `HttpRequests2`, and so on.
- For metric types whose name starts with `Local` (see `is_local_metric()`),
  each child is replaced by its `local()` result and the levels get a
  `flush()` method. The children must then provide `local()` and `flush()`;
  the default `Value` has neither.
- `register_static_vec(static_class, vec)` registers `vec` with the default
  registry and returns `static_class.from_vec(vec)`.

Errors:

- Bad syntax raises `StaticMetricSyntaxError`, with `line` and `column`.
- Definitions that parse but cannot be built raise `StaticMetricError`. This
  covers an undefined label enum, a non-`pub` enum used by a `pub` metric, a
  duplicate name, and a value name that is reserved (`from_vec`, `try_get`,
  `flush`, or one starting with `__`).

`promkit.static_parser.parse()` returns the parsed `StaticMetricBody` of
`LabelEnumDef` and `MetricDef` items if you want the structure alone.

## Clock

```python
from datetime import timedelta
from promkit import timer

timer.duration_to_millis(timedelta(seconds=3, milliseconds=103))   # 3103
t = timer.now_millis()       # never goes backwards
timer.recent_millis()        # last value returned by now_millis()
timer.ensure_updater()       # refresh every 200 ms in a daemon thread
```

## What it does not do

promkit has no text or protobuf exposition encoder, no HTTP endpoint, no
push client and no process metrics. It also provides no descriptor or
options type, and no ready-made counter, gauge or histogram classes.
`gather()` returns `MetricFamily` objects, and turning them into an exposition
format is left to the caller.

## Running the tests

```
pip install .[test]
pytest
```