[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "faustlsp"
version = "0.0.1"
description = "A Language Server Protocol server for the Faust audio programming language"
requires-python = ">=3.10"
keywords = ["lsp", "language-server", "faust", "json-rpc", "editor"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
    "Topic :: Text Editors :: Integrated Development Environments (IDE)",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
faustlsp = "faustlsp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["faustlsp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
