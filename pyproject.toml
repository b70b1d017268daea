[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "atlas-toolkit"
version = "0.1.0"
description = "Service toolkit: health endpoints and probes, transaction scoping, field masks, migration version checks, resource identifiers and integration-test helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "health-check",
    "liveness",
    "readiness",
    "wsgi",
    "transactions",
    "field-mask",
    "migrations",
    "resource-identifier",
    "integration-testing",
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Database",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest>=7"]

[tool.hatch.build.targets.wheel]
packages = ["atlas_toolkit"]

[tool.hatch.build.targets.sdist]
include = ["atlas_toolkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
