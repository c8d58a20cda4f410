[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sstkit"
version = "1.0.0"
description = "Session-key helpers: entity configuration, AES-GCM serial framing, key slots, a key-update receiver and IPFS file-sharing requests"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = [
    "session key",
    "aes-gcm",
    "serial framing",
    "key rotation",
    "replay protection",
    "ipfs",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["sstkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
