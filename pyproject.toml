[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xredis"
version = "0.1.0"
description = "A small in-memory key-value server speaking a subset of the RESP protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "resp", "key-value", "cache", "server", "in-memory"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
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

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xredis = "xredis.server:main"

[tool.hatch.build.targets.wheel]
packages = ["xredis"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
