[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "magicprobe"
version = "0.1.0"
description = "Monitor command interpreter, semihosting host I/O, qCRC checksum and Morse blinker for debug probes"
requires-python = ">=3.10"
keywords = ["gdb", "debugger", "debug-probe", "semihosting", "monitor", "crc32", "morse"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Topic :: Software Development :: Embedded Systems",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["magicprobe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
