[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "doristools"
version = "0.1.0"
description = "Diagnostic and operations helpers for Apache Doris frontend and backend nodes"
requires-python = ">=3.10"
dependencies = [
    "tomli-w",
]
keywords = [
    "doris",
    "database",
    "diagnostics",
    "routine-load",
    "jmap",
    "jstack",
    "jemalloc",
    "operations",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["doristools"]

[tool.pytest.ini_options]
addopts = "-ra"
