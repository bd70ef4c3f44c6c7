[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "probelevel"
version = "0.1.0"
description = "Probe-level background adjustment, summarization and design-matrix tools for microarray intensity data"
requires-python = ">=3.10"
keywords = ["microarray", "affymetrix", "probe-level", "background correction", "design matrix", "bioinformatics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["probelevel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
