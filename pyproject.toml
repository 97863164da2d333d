[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dtagkv"
version = "1.0.0"
description = "Checksummed binary key/value tag blocks stored in fixed-capacity files"
requires-python = ">=3.10"
dependencies = []
keywords = ["tag", "key-value", "binary format", "md5", "checksum"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: File Formats",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dtagkv = "dtagkv.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dtagkv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
