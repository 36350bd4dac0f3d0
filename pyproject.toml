[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "ulogkit"
version = "3.0.0"
description = "Reader, renderer and helper tools for ulogger and kernel log buffers"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "ulog", "ulogger", "kmsg", "logcat", "syslog"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ulogcat = "ulogkit.cli:main"
ulogwrapper = "ulogkit.wrapper:main"

[tool.setuptools.packages.find]
include = ["ulogkit*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
