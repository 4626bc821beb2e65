[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pesvcs"
version = "0.1.0"
description = "A small content-addressed version control system with blobs, trees, commits and a staging index"
requires-python = ">=3.10"
dependencies = []
keywords = ["version control", "vcs", "content-addressable", "sha256", "commits", "staging"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pesvcs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
