"""Encrypted, authenticated message channel over a TCP socket.

Each message goes out as ``IV || ciphertext || HMAC`` where the ciphertext
is AES-256-CTR under the shared key and the HMAC is HMAC-SHA256 over
``IV || ciphertext`` with the same key.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import socket
import sys

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

KEY_LEN = 32
IV_LEN = 16
MAC_LEN = 32
#: Largest ciphertext a single message may carry.
MAX_CIPHERTEXT = 1024
#: Bytes read from the socket per received message.
RECV_MAX = 512


class IntegrityError(Exception):
    """A received message failed its integrity check."""


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LEN:
        raise ValueError(f"key must be {KEY_LEN} bytes, got {len(key)}")


def _ctr(key: bytes, iv: bytes, data: bytes) -> bytes:
    cryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    return cryptor.update(data) + cryptor.finalize()


def encrypt_message(key: bytes, message) -> bytes:
    """Encrypt and authenticate ``message`` (str or bytes) under ``key``."""
    _check_key(key)
    data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
    if len(data) > MAX_CIPHERTEXT:
        raise ValueError(f"message longer than {MAX_CIPHERTEXT} bytes")
    iv = secrets.token_bytes(IV_LEN)
    body = iv + _ctr(key, iv, data)
    return body + hmac.new(key, body, hashlib.sha256).digest()


def decrypt_message(key: bytes, payload: bytes) -> bytes:
    """Check and decrypt a payload made by :func:`encrypt_message`."""
    _check_key(key)
    if len(payload) < IV_LEN + MAC_LEN:
        raise ValueError("payload too short")
    body, received = payload[:-MAC_LEN], payload[-MAC_LEN:]
    expected = hmac.new(key, body, hashlib.sha256).digest()
    if not hmac.compare_digest(received, expected):
        raise IntegrityError("message failed integrity check")
    return _ctr(key, body[:IV_LEN], body[IV_LEN:])


def listen(port: int) -> socket.socket:
    """Wait for one incoming connection on ``port`` and return it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind(("", port))
        print(f"listening on port {port}...", file=sys.stderr)
        listener.listen(1)
        conn, _ = listener.accept()
    print("connection made, starting session...", file=sys.stderr)
    return conn


def connect(host: str, port: int) -> socket.socket:
    """Open a TCP connection to ``host``:``port``."""
    address = socket.gethostbyname(host)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except OSError:
        sock.close()
        raise
    return sock


def shutdown_socket(sock: socket.socket) -> None:
    """Shut down both directions, drain pending data and close."""
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        while sock.recv(64):
            pass
    except OSError:
        pass
    sock.close()


class SecureChannel:
    """Send and receive encrypted messages over a connected socket."""

    def __init__(self, sock: socket.socket, key: bytes) -> None:
        _check_key(key)
        self.sock = sock
        self.key = bytes(key)

    def send(self, message) -> bytes:
        """Encrypt and send ``message``; returns the payload that was sent."""
        payload = encrypt_message(self.key, message)
        self.sock.sendall(payload)
        return payload

    def receive(self) -> bytes | None:
        """Return the next plaintext, or None once the peer disconnects.

        Reads shorter than a minimal payload are ignored; a payload whose
        MAC does not match raises IntegrityError.
        """
        while True:
            data = self.sock.recv(RECV_MAX)
            if not data:
                return None
            if len(data) < IV_LEN + MAC_LEN:
                continue
            return decrypt_message(self.key, data)

    def close(self) -> None:
        """Shut the connection down."""
        shutdown_socket(self.sock)

    def __enter__(self) -> SecureChannel:
        return self

    def __exit__(self, *exc) -> None:
        self.close()