[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "archsim"
version = "0.1.0"
description = "Building blocks of a five-stage pipelined processor emulator for a 64-bit ARM subset, with a trace-driven set-associative cache simulator"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "pipeline", "processor", "cache", "arm64", "simulator", "elf"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
archsim-csim = "archsim.csim:main"

[tool.hatch.build.targets.wheel]
packages = ["archsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
