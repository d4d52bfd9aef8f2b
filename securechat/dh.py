"""Diffie-Hellman and triple Diffie-Hellman with HKDF-style key derivation."""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass

from .keys import DHKey
from .util import bytes_to_int, int_to_bytes, is_probable_prime

#: Fixed, non-secret salt for the extraction step.
HMAC_SALT = b"z3Dow}^Z]8Uu5>pr#;{QUs!133"
_MACLEN = 64

_PARAMS_RE = re.compile(
    r"q\s*=\s*([+-]?\d+)\s*p\s*=\s*([+-]?\d+)\s*g\s*=\s*([+-]?\d+)"
)


class DHParamsError(ValueError):
    """Group parameters could not be read or are unsound."""


def _byte_len(bits: int) -> int:
    return bits // 8 + (bits % 8 != 0)


@dataclass(frozen=True)
class DHParams:
    """A prime ``p``, a prime ``q`` dividing ``p - 1`` and a generator ``g`` of order ``q``."""

    q: int
    p: int
    g: int

    @property
    def q_bitlen(self) -> int:
        return self.q.bit_length()

    @property
    def p_bitlen(self) -> int:
        return self.p.bit_length()

    @property
    def q_len(self) -> int:
        return _byte_len(self.q_bitlen)

    @property
    def p_len(self) -> int:
        return _byte_len(self.p_bitlen)

    def validate(self) -> None:
        """Raise DHParamsError unless the parameters form a sound group."""
        if not is_probable_prime(self.q):
            raise DHParamsError("q not prime!")
        if not is_probable_prime(self.p):
            raise DHParamsError("p not prime!")
        r = self.p - 1
        if r % self.q:
            raise DHParamsError("q does not divide (p-1)!")
        t = r // self.q
        if t % self.q == 0:
            raise DHParamsError("q^2 divides (p-1)!")
        if pow(self.g, t, self.p) == 1:
            raise DHParamsError("g does not generate subgroup of order q!")

    def gen(self) -> tuple[int, int]:
        """Return a random secret exponent and the matching public key ``g^sk mod p``."""
        # extra bytes bring the reduction closer to uniform
        sk = bytes_to_int(secrets.token_bytes(self.q_len + 32)) % self.q
        return sk, pow(self.g, sk, self.p)

    def gen_key(self, name: str = "default") -> DHKey:
        """Return a fresh key pair as a :class:`DHKey`."""
        sk, pk = self.gen()
        return DHKey(name=name, pk=pk, sk=sk)

    def _pad(self, x: int) -> bytes:
        return x.to_bytes(self.p_len, "little")

    def _derive(self, material: bytes, pk1: int, pk2: int, length: int) -> bytes:
        prk = hmac.new(HMAC_SALT, material, hashlib.sha512).digest()
        lo, hi = sorted((pk1, pk2))
        context = self._pad(lo) + self._pad(hi)
        block = bytes(_MACLEN)
        out = bytearray()
        index = 0
        while True:
            message = block + context + index.to_bytes(8, "big")
            block = hmac.new(prk, message, hashlib.sha512).digest()
            out += block[: length - len(out)]
            if len(out) >= length:
                return bytes(out)
            index += 1

    def final(self, sk_mine: int, pk_mine: int, pk_yours: int, length: int) -> bytes:
        """Derive ``length`` bytes of shared key from a DH exchange."""
        shared = pow(pk_yours, sk_mine, self.p)
        return self._derive(int_to_bytes(shared), pk_mine, pk_yours, length)

    def final3(
        self, a: int, a_pub: int, x: int, x_pub: int, b_pub: int, y_pub: int, length: int
    ) -> bytes:
        """Derive ``length`` bytes of shared key from a triple DH exchange.

        ``a``/``a_pub`` is the long-term pair, ``x``/``x_pub`` the ephemeral pair,
        ``b_pub`` and ``y_pub`` the peer's long-term and ephemeral public keys.
        """
        ay = pow(y_pub, a, self.p)
        xy = pow(y_pub, x, self.p)
        xb = pow(b_pub, x, self.p)
        if a_pub > b_pub:
            ay, xb = xb, ay
        material = self._pad(ay) + self._pad(xy) + self._pad(xb)
        return self._derive(material, x_pub, y_pub, length)

    def final3_keys(
        self, sk_a: DHKey, sk_x: DHKey, pk_b: DHKey, pk_y: DHKey, length: int
    ) -> bytes:
        """Same as :meth:`final3`, taking key records."""
        if sk_a.sk <= 0 or sk_x.sk <= 0:
            raise ValueError("secret keys must be present")
        return self.final3(sk_a.sk, sk_a.pk, sk_x.sk, sk_x.pk, pk_b.pk, pk_y.pk, length)


def parse_params(text: str) -> DHParams:
    """Parse ``q = ...``, ``p = ...``, ``g = ...`` from parameter file text."""
    match = _PARAMS_RE.match(text)
    if not match:
        raise DHParamsError("couldn't parse parameter file")
    q, p, g = (int(v) for v in match.groups())
    return DHParams(q=q, p=p, g=g)


def load_params(fname) -> DHParams:
    """Read and validate parameters from a file."""
    with open(fname) as f:
        params = parse_params(f.read())
    params.validate()
    return params


def generate_params(qbits: int, pbits: int) -> DHParams:
    """Generate fresh parameters; an expensive operation for realistic sizes."""
    q_len = _byte_len(qbits)
    r_len = _byte_len(pbits) - q_len
    if r_len <= 0:
        raise ValueError("p must be longer than q")
    while True:
        q = 0
        while not is_probable_prime(q):
            q = bytes_to_int(secrets.token_bytes(q_len))
        r_bytes = bytearray(secrets.token_bytes(r_len))
        r_bytes[0] &= 0xFE  # least significant byte: makes r even
        r = bytes_to_int(r_bytes)
        if r % q == 0:
            continue
        p = q * r + 1
        if is_probable_prime(p):
            break
    g = 1
    while g == 1:
        t = bytes_to_int(secrets.token_bytes(q_len))
        if t == 0:
            continue
        g = pow(t, r, p)
    return DHParams(q=q, p=p, g=g)