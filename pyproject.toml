[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mediarpc"
version = "0.1.0"
description = "JSON-RPC server helpers: request caching, resource limit checks, layered configuration and transactions"
requires-python = ">=3.10"
dependencies = []
keywords = ["json-rpc", "media server", "request cache", "configuration", "property tree"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mediarpc"]

[tool.pytest.ini_options]
addopts = "-ra"
