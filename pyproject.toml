[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "leafcharge"
version = "0.1.0"
description = "CAN bus charging coordinator for a Nissan Leaf with CHAdeMO emulation and TC chargers"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "socketcan", "ev", "charging", "chademo", "leaf", "gpio", "dbc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
leafcharge = "leafcharge.app:main"

[tool.hatch.build.targets.wheel]
packages = ["leafcharge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
