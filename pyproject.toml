[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gmtoptics"
version = "0.1.0"
description = "Analytic ray tracing, atmosphere configuration, centroid bookkeeping and segment calibration matrices for the Giant Magellan Telescope"
requires-python = ">=3.11"
keywords = [
    "astronomy",
    "optics",
    "ray tracing",
    "adaptive optics",
    "active optics",
    "wavefront sensing",
    "telescope",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gmt-analytic = "gmtoptics.analytic:main"

[tool.hatch.build.targets.wheel]
packages = ["gmtoptics"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
