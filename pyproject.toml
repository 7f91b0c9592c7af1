[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "leaf"
version = "0.1.0"
description = "Building blocks for game servers: queue-based RPC, background tasks, modules, logging, rotating files and UUIDs."
requires-python = ">=3.10"
dependencies = []
keywords = ["game server", "framework", "rpc", "logging", "uuid", "modules"]
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
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["leaf"]

[tool.pytest.ini_options]
addopts = "-ra"
