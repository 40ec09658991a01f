"""Metric values, metric vectors, registries, static label sets and a coarse clock."""

__version__ = "0.12.0"

__all__ = [
    "registry",
    "static_metric",
    "static_parser",
    "timer",
    "value",
    "vec",
]