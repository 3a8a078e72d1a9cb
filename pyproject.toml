[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ipniprovider"
version = "0.1.0"
description = "Index provider building blocks: CIDs, CAR files, multihash listing, peer access policies and an admin HTTP interface."
requires-python = ">=3.10"
dependencies = [
    "cbor2",
]
keywords = [
    "ipni",
    "index-provider",
    "car",
    "multihash",
    "cid",
    "advertisement",
    "content-routing",
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
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ipniprovider"]

[tool.hatch.build.targets.sdist]
include = [
    "ipniprovider",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
