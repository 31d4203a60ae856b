[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nettool"
version = "0.1.0"
description = "A netcat-like networking tool: encrypted file transfer, encrypted chat and remote shell access"
requires-python = ">=3.10"
keywords = ["netcat", "networking", "file-transfer", "chat", "encryption", "x25519", "aes"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography>=41",
    "tqdm>=4.60",
    "termcolor>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "pytest-asyncio>=0.21",
]

[project.scripts]
nettool = "nettool.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["nettool"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
