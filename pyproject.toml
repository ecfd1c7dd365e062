[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cryptoagg"
version = "0.1.0"
description = "Consolidated crypto order books from Binance, OKX and Kraken, with BBO, price-band and volume-band analytics"
requires-python = ">=3.10"
keywords = [
    "order book",
    "market data",
    "crypto",
    "binance",
    "okx",
    "kraken",
    "vwap",
    "bbo",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "sortedcontainers",
    "requests",
    "websocket-client",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cryptoagg-client = "cryptoagg.clients:main"

[tool.hatch.build.targets.wheel]
packages = ["cryptoagg"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
