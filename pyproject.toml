[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "transdata"
version = "0.1.0"
description = "Send a file to a server over TCP with a small framed request/acknowledge protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["file transfer", "tcp", "socket", "client", "server"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
trans-data-server = "transdata.server:main"
trans-data-client = "transdata.client:main"

[tool.hatch.build.targets.wheel]
packages = ["transdata"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
