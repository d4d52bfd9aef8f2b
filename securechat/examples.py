"""Small demonstrations of hashing, HMAC and AES counter mode."""

from __future__ import annotations

import hashlib
import hmac

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

MESSAGE = "this is a test message :D"
HMAC_KEY = b"asdfasdfasdfasdfasdfasdf"
SEPARATOR = "~~~~~~~~~~~~~~~~~~~~~~~"

# dummy, non-random key and IV
_CTR_KEY = bytes(range(32))
_CTR_IV = bytes(range(16))


def sha_example() -> str:
    """Hex SHA-256 of the sample message."""
    return hashlib.sha256(MESSAGE.encode()).hexdigest()


def hmac_example() -> str:
    """Hex HMAC-SHA512 of the sample message under a fixed key."""
    return hmac.new(HMAC_KEY, MESSAGE.encode(), hashlib.sha512).hexdigest()


def ctr_example() -> tuple[bytes, bytes]:
    """Encrypt the sample message with AES-256-CTR, then decrypt it byte by byte.

    Returns ``(ciphertext, plaintext)``.
    """
    cipher = Cipher(algorithms.AES(_CTR_KEY), modes.CTR(_CTR_IV))
    encryptor = cipher.encryptor()
    ciphertext = encryptor.update(MESSAGE.encode()) + encryptor.finalize()
    # the decryptor keeps the counter between calls
    decryptor = cipher.decryptor()
    plaintext = b"".join(decryptor.update(bytes([byte])) for byte in ciphertext)
    plaintext += decryptor.finalize()
    return ciphertext, plaintext


def main(argv=None) -> int:
    """Run every example and print its output."""
    print(SEPARATOR)
    ciphertext, plaintext = ctr_example()
    print(f"ciphertext of length {len(ciphertext)}:")
    print(ciphertext.hex())
    print(f"decrypted {len(plaintext)} bytes:")
    print(plaintext.decode("utf-8", errors="replace"))
    print(SEPARATOR)
    print(sha_example())
    print(SEPARATOR)
    print(f'hmac-512("{MESSAGE}"):')
    print(hmac_example())
    return 0