[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iosched"
version = "0.1.0"
description = "Non-blocking Berkeley socket operations driven by a poll-based scheduler"
requires-python = ">=3.10"
dependencies = []
keywords = ["sockets", "poll", "non-blocking", "networking", "scheduler", "echo"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
iosched-echo = "iosched.echo:main"

[tool.hatch.build.targets.wheel]
packages = ["iosched"]

[tool.hatch.build.targets.sdist]
include = ["iosched", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
