[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "surprise_metrics"
version = "0.1.0"
description = "Market microstructure surprise metrics: GARCH-standardised returns, Lee-Mykland and BNS jump statistics from trade data"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "finance",
    "market microstructure",
    "jump detection",
    "lee-mykland",
    "bipower variation",
    "realized variance",
    "garch",
    "trades",
    "quotes",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Financial and Insurance Industry",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
surprise-metrics = "surprise_metrics.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["surprise_metrics"]

[tool.pytest.ini_options]
addopts = "-ra"
