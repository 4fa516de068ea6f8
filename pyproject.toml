[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sdb"
version = "0.1.0"
description = "An embeddable data-structure database with an HTTP front end: strings, lists, sets, maps, sorted sets, bitsets, Bloom filters, HyperLogLog, geohash and pub/sub"
requires-python = ">=3.10"
keywords = [
    "database",
    "key-value",
    "data structures",
    "bloom filter",
    "hyperloglog",
    "geohash",
    "pubsub",
    "lmdb",
]
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
]
dependencies = [
    "pyyaml",
    "sortedcontainers",
    "lmdb",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sdb = "sdb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
