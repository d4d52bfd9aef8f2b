"""Signed exchange of Diffie-Hellman public keys.

A public key travels as::

    +-----------------+--------------+-----------------+-----------+
    | len(pk), 2B BE  | pk (l.e.)    | len(sig), 2B BE | signature |
    +-----------------+--------------+-----------------+-----------+

The signature covers the little-endian bytes of the public key, hashed
with SHA-256.
"""

from __future__ import annotations

import os
import socket

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, padding, rsa

from .util import bytes_to_int, int_to_bytes

#: Largest public key (in bytes) that may be signed or sent.
MAX_PUBKEY_LEN = 512
#: Largest signature (in bytes) that will be accepted from a peer.
MAX_SIG_LEN = 512
_MAX_FIELD = 0xFFFF


class HandshakeError(Exception):
    """The authenticated key exchange could not be completed."""


def _load_private_key(path):
    with open(os.fspath(path), "rb") as f:
        data = f.read()
    try:
        return serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise HandshakeError(f"failed to read private key: {exc}") from exc


def _load_public_key(path):
    with open(os.fspath(path), "rb") as f:
        data = f.read()
    try:
        return serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise HandshakeError(f"failed to read public key: {exc}") from exc


def sign_dh_pubkey(pubkey: int, privkey_path) -> bytes:
    """Sign the public key ``pubkey`` with the PEM private key at ``privkey_path``."""
    data = int_to_bytes(pubkey)
    if len(data) > MAX_PUBKEY_LEN:
        raise ValueError("public key too large to sign")
    key = _load_private_key(privkey_path)
    if isinstance(key, rsa.RSAPrivateKey):
        return key.sign(data, padding.PKCS1v15(), hashes.SHA256())
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.sign(data, ec.ECDSA(hashes.SHA256()))
    if isinstance(key, dsa.DSAPrivateKey):
        return key.sign(data, hashes.SHA256())
    raise HandshakeError("private key type cannot sign with SHA-256")


def verify_dh_pubkey(pubkey: int, sig: bytes, pubkey_path) -> bool:
    """Return whether ``sig`` is a valid signature of ``pubkey`` under the PEM key."""
    data = int_to_bytes(pubkey)
    key = _load_public_key(pubkey_path)
    try:
        if isinstance(key, rsa.RSAPublicKey):
            key.verify(sig, data, padding.PKCS1v15(), hashes.SHA256())
        elif isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(sig, data, ec.ECDSA(hashes.SHA256()))
        elif isinstance(key, dsa.DSAPublicKey):
            key.verify(sig, data, hashes.SHA256())
        else:
            return False
    except (InvalidSignature, ValueError):
        return False
    return True


def encode_pubkey_with_sig(pubkey: int, sig: bytes) -> bytes:
    """Frame a public key and its signature for the wire."""
    pk_bytes = int_to_bytes(pubkey)
    if len(pk_bytes) > _MAX_FIELD or len(sig) > _MAX_FIELD:
        raise ValueError("field too long for a 16-bit length prefix")
    return (
        len(pk_bytes).to_bytes(2, "big")
        + pk_bytes
        + len(sig).to_bytes(2, "big")
        + bytes(sig)
    )


def send_dh_pubkey_with_sig(sock: socket.socket, pubkey: int, privkey_path) -> None:
    """Sign ``pubkey`` and send it with its signature over ``sock``."""
    try:
        sig = sign_dh_pubkey(pubkey, privkey_path)
    except OSError as exc:
        raise HandshakeError(f"failed to sign DH public key: {exc}") from exc
    try:
        sock.sendall(encode_pubkey_with_sig(pubkey, sig))
    except OSError as exc:
        raise HandshakeError(f"failed to send DH public key: {exc}") from exc


def _recv_exact(sock: socket.socket, n: int, what: str) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        try:
            chunk = sock.recv(n - len(buf))
        except InterruptedError:
            continue
        except OSError as exc:
            raise HandshakeError(f"failed to read {what}: {exc}") from exc
        if not chunk:
            raise HandshakeError(f"failed to read {what}: connection closed")
        buf += chunk
    return bytes(buf)


def recv_dh_pubkey_with_sig(sock: socket.socket) -> tuple[int, bytes]:
    """Receive a framed public key and signature; returns ``(pubkey, sig)``."""
    pk_len = int.from_bytes(_recv_exact(sock, 2, "pubkey length"), "big")
    pubkey = bytes_to_int(_recv_exact(sock, pk_len, "pubkey"))
    sig_len = int.from_bytes(_recv_exact(sock, 2, "sig length"), "big")
    if sig_len > MAX_SIG_LEN:
        raise HandshakeError(f"signature of {sig_len} bytes exceeds limit")
    sig = _recv_exact(sock, sig_len, "signature")
    return pubkey, sig