[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "singui"
version = "0.1.0"
description = "Panel core for a sing-box proxy server: share links, client outbounds, subscriptions, settings, users and keys"
requires-python = ">=3.10"
keywords = ["sing-box", "proxy", "subscription", "vless", "vmess", "trojan", "shadowsocks", "hysteria", "tuic", "reality", "wireguard"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
]
dependencies = [
    "cryptography",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["singui"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
