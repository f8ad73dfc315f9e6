[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cairobuiltins"
version = "0.1.0"
description = "Builtin runners for a Cairo virtual machine: output, bitwise, EC operation, range check and Keccak."
requires-python = ">=3.10"
dependencies = []
keywords = ["cairo", "virtual-machine", "builtins", "keccak", "elliptic-curve", "range-check"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Interpreters",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cairobuiltins"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
