"""Diffie-Hellman key records and their on-disk format.

The format is plain text::

    name:<name>
    pk:<decimal public key>
    sk:<decimal secret key, 0 when absent>
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass

from .util import int_to_bytes

MAX_NAME = 128
PATH_MAX = 1024


@dataclass
class DHKey:
    """A named key pair; ``sk`` is 0 for a public-only key."""

    name: str = "default"
    pk: int = 0
    sk: int = 0

    def __post_init__(self) -> None:
        self.name = self.name[:MAX_NAME]

    def shred(self) -> None:
        """Forget the key material and name."""
        self.sk = 0
        self.pk = 0
        self.name = ""


def _format(name: str, pk: int, sk: int) -> str:
    return f"name:{name}\npk:{pk}\nsk:{sk}\n"


def write_dh(fname, key: DHKey) -> None:
    """Write ``fname.pub`` and, if the secret key is present, ``fname`` (mode 0600)."""
    path = os.fspath(fname)
    if len(path) > PATH_MAX - 4:
        raise ValueError(f"no room for .pub suffix in filename {path}")
    if key.sk:
        fd = os.open(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(_format(key.name, key.pk, key.sk))
    with open(path + ".pub", "w") as f:
        f.write(_format(key.name, key.pk, 0))


def _field(line: str, label: str) -> str:
    prefix = label + ":"
    if not line.startswith(prefix):
        raise ValueError(f"expected '{prefix}' line")
    return line[len(prefix):].strip()


def read_dh(fname) -> DHKey:
    """Read a public or secret key file; public keys come back with ``sk == 0``."""
    with open(os.fspath(fname)) as f:
        lines = f.read().splitlines()
    if len(lines) < 3:
        raise ValueError("key file is incomplete")
    name_tokens = _field(lines[0], "name").split()
    if not name_tokens:
        raise ValueError("key file has an empty name")
    try:
        pk = int(_field(lines[1], "pk"))
        sk = int(_field(lines[2], "sk"))
    except ValueError as exc:
        raise ValueError(f"malformed key file: {exc}") from exc
    return DHKey(name=name_tokens[0][:MAX_NAME], pk=pk, sk=sk)


def hash_pk(key: DHKey) -> str:
    """Hex SHA-256 digest of the public key's little-endian bytes."""
    return hashlib.sha256(int_to_bytes(key.pk)).hexdigest()