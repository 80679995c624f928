[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "system3"
version = "0.1.0"
description = "Core pieces of a System 3 adventure game engine: text encodings, configuration, game file access, debug symbols, script debugger front ends, MAKO music sequencer and an indexed screen model"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "system3",
    "adventure-game",
    "visual-novel",
    "shift-jis",
    "opna",
    "debugger",
    "debug-adapter-protocol",
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
    "Topic :: Games/Entertainment",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["system3"]

[tool.hatch.build.targets.sdist]
include = ["system3", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
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
