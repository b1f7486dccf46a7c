[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "espat"
version = "0.1.0"
description = "Drive an ESP8266 Wi-Fi module over its serial AT command interface"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["esp8266", "at-commands", "wifi", "serial", "uart", "embedded"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Terminals :: Serial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["espat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
