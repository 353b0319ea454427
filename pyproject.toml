[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gneissdb"
version = "0.1.0"
description = "Building blocks of an LSM-tree key-value store: sorted tables, bloom filters, write-ahead log and merge iteration"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "key-value", "lsm", "storage", "embedded", "sstable", "wal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gneissdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
