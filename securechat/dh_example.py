"""Demonstration of plain and triple Diffie-Hellman key agreement."""

from __future__ import annotations

import argparse
import sys

from .dh import DHParams, DHParamsError, load_params

DEFAULT_KEY_LEN = 128


def run_dh(params: DHParams, length: int = DEFAULT_KEY_LEN) -> tuple[bytes, bytes]:
    """Let Alice and Bob agree on a key; returns both derived keys."""
    alice = params.gen_key("alice")
    bob = params.gen_key("bob")
    alice_key = params.final(alice.sk, alice.pk, bob.pk, length)
    bob_key = params.final(bob.sk, bob.pk, alice.pk, length)
    return alice_key, bob_key


def run_3dh(params: DHParams, length: int = DEFAULT_KEY_LEN) -> tuple[bytes, bytes]:
    """Let Alice and Bob agree on a key by triple DH; returns both derived keys."""
    a = params.gen_key("alice")
    x = params.gen_key("alice-ephemeral")
    b = params.gen_key("bob")
    y = params.gen_key("bob-ephemeral")
    alice_key = params.final3(a.sk, a.pk, x.sk, x.pk, b.pk, y.pk, length)
    bob_key = params.final3(b.sk, b.pk, y.sk, y.pk, a.pk, x.pk, length)
    return alice_key, bob_key


def _spaced_hex(data: bytes) -> str:
    return "".join(f"{byte:02x} " for byte in data)


def _report(alice_key: bytes, bob_key: bytes) -> None:
    if alice_key == bob_key:
        print("Alice and Bob have the same key :D")
    else:
        print("T.T")
    print("Alice's key:")
    print(_spaced_hex(alice_key))
    print("Bob's key:")
    print(_spaced_hex(bob_key))


def main(argv=None) -> int:
    """Read parameters and run both key exchanges, printing the results."""
    parser = argparse.ArgumentParser(description="Diffie-Hellman key exchange demo.")
    parser.add_argument("params", nargs="?", default="params", help="parameter file")
    args = parser.parse_args(argv)
    try:
        params = load_params(args.params)
    except (OSError, DHParamsError) as exc:
        print(f"could not read DH params: {exc}", file=sys.stderr)
        return 1
    print("Successfully read DH params.")
    print("...testing DH key exchange...")
    _report(*run_dh(params))
    print("...testing 3DH key exchange...")
    _report(*run_3dh(params))
    return 0