"""Integer/byte conversions, primality testing and length-prefixed integer I/O."""

from __future__ import annotations

import secrets
from typing import BinaryIO

#: Never read serialized integers longer than this many bytes.
MPZ_MAX_LEN = 1024

_SMALL_PRIMES = (
    2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47,
    53, 59, 61, 67, 71, 73, 79, 83, 89, 97,
)


def bytes_to_int(data: bytes) -> int:
    """Read a non-negative integer stored least significant byte first."""
    return int.from_bytes(data, "little")


def int_to_bytes(x: int) -> bytes:
    """Write a non-negative integer least significant byte first, minimal length.

    Zero yields an empty byte string.
    """
    if x < 0:
        raise ValueError("cannot encode a negative integer")
    return x.to_bytes((x.bit_length() + 7) // 8, "little")


def is_probable_prime(n: int, rounds: int = 10) -> bool:
    """Trial division followed by ``rounds`` Miller-Rabin tests."""
    if n < 2:
        return False
    for sp in _SMALL_PRIMES:
        if n == sp:
            return True
        if n % sp == 0:
            return False
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for _ in range(rounds):
        a = 2 + secrets.randbelow(n - 3)
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def read_exact(stream: BinaryIO, n: int) -> bytes:
    """Read exactly ``n`` bytes, retrying on interruption.

    Raises EOFError if the stream ends first.
    """
    chunks = bytearray()
    while len(chunks) < n:
        try:
            chunk = stream.read(n - len(chunks))
        except (InterruptedError, BlockingIOError):
            continue
        if chunk is None:
            continue
        if not chunk:
            raise EOFError(f"stream ended after {len(chunks)} of {n} bytes")
        chunks += chunk
    return bytes(chunks)


def write_all(stream: BinaryIO, data: bytes) -> None:
    """Write all of ``data``, retrying on interruption and partial writes."""
    view = memoryview(data)
    while view:
        try:
            written = stream.write(view)
        except (InterruptedError, BlockingIOError):
            continue
        if written is None:
            written = len(view)
        view = view[written:]


def serialize_mpz(stream: BinaryIO, x: int) -> int:
    """Write ``x`` as a 4-byte little-endian length followed by its bytes.

    Returns the total number of bytes written.
    """
    data = int_to_bytes(x) or b"\x00"
    if len(data) >= 1 << 32:
        raise ValueError("integer too large to serialize")
    write_all(stream, len(data).to_bytes(4, "little"))
    write_all(stream, data)
    return len(data) + 4


def deserialize_mpz(stream: BinaryIO) -> int:
    """Read an integer written by :func:`serialize_mpz`."""
    length = int.from_bytes(read_exact(stream, 4), "little")
    if length > MPZ_MAX_LEN:
        raise ValueError(f"serialized integer of {length} bytes exceeds limit")
    return bytes_to_int(read_exact(stream, length))