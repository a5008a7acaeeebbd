[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rics-data"
version = "0.1.0"
description = "Building blocks for robot data collection: MQTT transport, fleet-command listener, bzip2 disk cache and upload request builders."
requires-python = ">=3.10"
keywords = ["mqtt", "telemetry", "robot", "data-collection", "fms", "bzip2"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: System :: Networking",
]
dependencies = [
    "paho-mqtt",
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["rics_data"]

[tool.hatch.build.targets.sdist]
include = ["rics_data", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
