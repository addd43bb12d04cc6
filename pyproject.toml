[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bglog"
version = "0.1.0"
description = "Asynchronous logging with background sinks, file logging, run-time log levels and contract checks"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "asynchronous", "logger", "sink", "contract", "check"]
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
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bglog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
