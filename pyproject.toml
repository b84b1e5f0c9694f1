[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "katsuba"
version = "0.1.0"
description = "Tools for KIWAD archives, type lists and KingsIsle string hashes"
requires-python = ">=3.10"
dependencies = []
keywords = ["kiwad", "wad", "archive", "typelist", "hash", "string-id", "djb2"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
katsuba = "katsuba.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["katsuba"]

[tool.pytest.ini_options]
addopts = "-ra"
