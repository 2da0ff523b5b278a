[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evbus"
version = "0.1.0"
description = "A priority-aware asyncio event bus with structured error types"
requires-python = ">=3.10"
dependencies = []
keywords = ["events", "event-bus", "asyncio", "publish-subscribe", "handlers", "priority"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["evbus"]

[tool.hatch.build.targets.sdist]
include = ["evbus", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
