[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "promkit"
version = "0.12.0"
description = "Prometheus-style metric vectors, registries and statically declared label sets."
requires-python = ">=3.10"
dependencies = []
keywords = ["prometheus", "metrics", "monitoring", "instrumentation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["promkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
