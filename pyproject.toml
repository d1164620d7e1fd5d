[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dashdotcache"
version = "0.1.0"
description = "In-memory key-value cache with TTLs, parent-child key dependencies and an HTTP API"
requires-python = ">=3.10"
keywords = ["cache", "key-value", "ttl", "dependencies", "http", "server"]
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
    "Framework :: AsyncIO",
    "Topic :: Database :: Database Engines/Servers",
]
dependencies = [
    "starlette",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "httpx",
]

[project.scripts]
dashdotcache = "dashdotcache.main:main"

[tool.hatch.build.targets.wheel]
packages = ["dashdotcache"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
