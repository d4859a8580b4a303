[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "torrentcore"
version = "0.1.0"
description = "BitTorrent building blocks: piece and block pickers, bencoding, DHT messages and non-blocking IO helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["bittorrent", "torrent", "dht", "krpc", "bencode", "piece-picker"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["torrentcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
