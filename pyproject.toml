[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "securechat"
version = "0.1.0"
description = "Terminal two-party chat over TCP with signed Diffie-Hellman key exchange, AES-256-CTR and HMAC-SHA256"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["chat", "diffie-hellman", "3dh", "hkdf", "aes-ctr", "hmac", "signature"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
securechat = "securechat.chat:main"
securechat-dh-example = "securechat.dh_example:main"
securechat-crypto-examples = "securechat.examples:main"

[tool.hatch.build.targets.wheel]
packages = ["securechat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
