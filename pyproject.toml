[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "reqcore"
version = "0.1.0"
description = "Building blocks for HTTP request handlers: remote API calls, header forwarding, query pagination, validation and request logging."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = [
    "http",
    "rest",
    "api-client",
    "pagination",
    "validation",
    "request-logging",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["reqcore"]

[tool.hatch.build.targets.sdist]
include = [
    "reqcore",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
