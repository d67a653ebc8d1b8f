[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "repofilter"
version = "0.0.1"
description = "Building blocks for filtering git fast-export streams: blob stripping by size or id, mark handling and tag renaming"
requires-python = ">=3.10"
dependencies = []
keywords = ["git", "fast-export", "fast-import", "history", "filter", "rewrite"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["repofilter"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
