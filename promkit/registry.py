"""Registration of collectors and gathering of their metric families."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from .value import (
    AlreadyRegisteredError,
    LabelPair,
    Metric,
    MetricFamily,
    MetricsError,
)

__all__ = [
    "Collector",
    "Registry",
    "default_registry",
    "register",
    "unregister",
    "gather",
]

_U64_MASK = (1 << 64) - 1


@runtime_checkable
class Collector(Protocol):
    """Anything that describes its metrics and collects them into families.

    Descriptors must carry ``id``, ``fq_name`` and ``dim_hash`` attributes.
    """

    def desc(self) -> list[Any]:
        """Return the descriptors of the metrics this collector produces."""

    def collect(self) -> list[MetricFamily]:
        """Return the current metric families."""


def _metric_sort_key(metric: Metric) -> tuple:
    # Inconsistent label counts are ordered by count; equal label sets fall
    # back to the timestamp, with a missing timestamp ordered first.
    return (
        len(metric.labels),
        tuple(pair.value for pair in metric.labels),
        metric.timestamp_ms is not None,
        metric.timestamp_ms or 0,
    )


class Registry:
    """Holds collectors and gathers their metrics into sorted metric families."""

    def __init__(
        self,
        prefix: Optional[str] = None,
        labels: Optional[Mapping[str, str]] = None,
    ) -> None:
        if prefix is not None and not prefix:
            raise MetricsError("empty prefix namespace")
        self.prefix = prefix
        self.labels = dict(labels) if labels is not None else None
        self._collectors_by_id: dict[int, Any] = {}
        self._dim_hashes_by_name: dict[str, int] = {}
        self._desc_ids: set[int] = set()
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Registry ({len(self._collectors_by_id)} collectors)"

    def register(self, collector: Any) -> None:
        """Add ``collector``; raise if its descriptors clash with registered ones."""
        with self._lock:
            seen: set[int] = set()
            collector_id = 0
            for desc in collector.desc():
                if desc.id in self._desc_ids:
                    raise AlreadyRegisteredError()
                known = self._dim_hashes_by_name.get(desc.fq_name)
                if known is not None and known != desc.dim_hash:
                    raise MetricsError(
                        "a previously registered descriptor with the same "
                        f"fully-qualified name as {desc!r} has different label "
                        "names or a different help string"
                    )
                self._dim_hashes_by_name[desc.fq_name] = desc.dim_hash
                if desc.id in seen:
                    raise MetricsError(
                        "a duplicate descriptor within the same collector the "
                        f"same fully-qualified name: {desc.fq_name!r}"
                    )
                seen.add(desc.id)
                collector_id = (collector_id + desc.id) & _U64_MASK

            if collector_id in self._collectors_by_id:
                raise AlreadyRegisteredError()
            self._desc_ids.update(seen)
            self._collectors_by_id[collector_id] = collector

    def unregister(self, collector: Any) -> None:
        """Remove the collector with the same descriptors; raise if none is registered."""
        with self._lock:
            ids: list[int] = []
            collector_id = 0
            for desc in collector.desc():
                if desc.id not in ids:
                    ids.append(desc.id)
                    collector_id = (collector_id + desc.id) & _U64_MASK

            if self._collectors_by_id.pop(collector_id, None) is None:
                raise MetricsError(f"collector {collector.desc()!r} is not registered")
            self._desc_ids.difference_update(ids)
            # Dimension hashes stay: they must be consistent for the program's lifetime.

    def gather(self) -> list[MetricFamily]:
        """Collect every registered collector into families sorted by name."""
        with self._lock:
            collectors = list(self._collectors_by_id.values())

        by_name: dict[str, MetricFamily] = {}
        for collector in collectors:
            for family in collector.collect():
                if not family.metrics:
                    continue
                existing = by_name.get(family.name)
                if existing is None:
                    by_name[family.name] = replace(family, metrics=list(family.metrics))
                else:
                    existing.metrics.extend(family.metrics)

        common = (
            [LabelPair(name, value) for name, value in self.labels.items()]
            if self.labels is not None
            else None
        )

        result = []
        for name in sorted(by_name):
            family = by_name[name]
            family.metrics.sort(key=_metric_sort_key)
            if self.prefix is not None:
                family.name = f"{self.prefix}_{family.name}"
            if common is not None:
                family.metrics = [
                    replace(metric, labels=[*metric.labels, *common])
                    for metric in family.metrics
                ]
            result.append(family)
        return result


_DEFAULT_REGISTRY = Registry()


def default_registry() -> Registry:
    """Return the process-wide registry."""
    return _DEFAULT_REGISTRY


def register(collector: Any) -> None:
    """Register ``collector`` with the default registry."""
    _DEFAULT_REGISTRY.register(collector)


def unregister(collector: Any) -> None:
    """Unregister ``collector`` from the default registry."""
    _DEFAULT_REGISTRY.unregister(collector)


def gather() -> list[MetricFamily]:
    """Gather all metric families of the default registry."""
    return _DEFAULT_REGISTRY.gather()