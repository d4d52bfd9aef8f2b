"""Terminal secure chat: a signed Diffie-Hellman handshake, then encrypted messages."""

from __future__ import annotations

import getopt
import os
import re
import socket
import sys
import threading
from dataclasses import dataclass
from typing import TextIO

from .auth import (
    HandshakeError,
    recv_dh_pubkey_with_sig,
    send_dh_pubkey_with_sig,
    verify_dh_pubkey,
)
from .channel import IntegrityError, SecureChannel, connect, listen
from .dh import DHParams, DHParamsError, load_params

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1337
HOST_NAME_MAX = 255
PARAMS_FILE = "params"
SHARED_KEY_LEN = 32

CLIENT_PRIVKEY = "alice_priv.pem"
CLIENT_PUBKEY = "alice_pub.pem"
SERVER_PRIVKEY = "bob_priv.pem"
SERVER_PUBKEY = "bob_pub.pem"

SELF_NAME = "me: "
FRIEND_NAME = "mr. friend: "

_USAGE = (
    "Usage: {prog} [OPTIONS]...\n"
    "Secure chat.\n\n"
    "   -c, --connect HOST  Attempt a connection to HOST.\n"
    "   -l, --listen        Listen for new connections.\n"
    "   -p, --port    PORT  Listen or connect on PORT (defaults to 1337).\n"
    "   -h, --help          show this message and exit.\n"
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class Options:
    """Command-line settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    listen: bool = False
    show_help: bool = False


class UsageError(Exception):
    """The command line could not be understood."""


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_args(argv) -> Options:
    """Parse command-line arguments (without the program name)."""
    try:
        pairs, _ = getopt.gnu_getopt(
            list(argv), "c:lp:h", ["connect=", "listen", "port=", "help"]
        )
    except getopt.GetoptError as exc:
        raise UsageError(str(exc)) from exc
    options = Options()
    for flag, value in pairs:
        if flag in ("-c", "--connect"):
            if value:
                options.host = value[:HOST_NAME_MAX]
        elif flag in ("-l", "--listen"):
            options.listen = True
        elif flag in ("-p", "--port"):
            # ports are 16-bit on the wire
            options.port = _atoi(value) & 0xFFFF
        elif flag in ("-h", "--help"):
            options.show_help = True
            return options
    return options


def usage(prog: str) -> str:
    """Return the usage message for program name ``prog``."""
    return _USAGE.format(prog=prog)


def handshake(sock: socket.socket, params: DHParams, is_client: bool) -> bytes:
    """Run the signed DH exchange over ``sock`` and return the shared key.

    The client signs with ``alice_priv.pem`` and checks the server against
    ``bob_pub.pem``; the server does the reverse.
    """
    mine = params.gen_key()
    if is_client:
        send_dh_pubkey_with_sig(sock, mine.pk, CLIENT_PRIVKEY)
        peer, sig = recv_dh_pubkey_with_sig(sock)
        if not verify_dh_pubkey(peer, sig, SERVER_PUBKEY):
            raise HandshakeError("Server signature verification failed.")
    else:
        peer, sig = recv_dh_pubkey_with_sig(sock)
        if not verify_dh_pubkey(peer, sig, CLIENT_PUBKEY):
            raise HandshakeError("Signature verification failed.")
        send_dh_pubkey_with_sig(sock, mine.pk, SERVER_PRIVKEY)
    return params.final(mine.sk, mine.pk, peer, SHARED_KEY_LEN)


def _with_newline(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


def _receive_loop(channel: SecureChannel, out: TextIO) -> None:
    while True:
        try:
            message = channel.receive()
        except IntegrityError:
            print("WARNING: Message failed integrity check.", file=out, flush=True)
            continue
        except OSError:
            return
        if message is None:
            print("Receiver disconnected.", file=out, flush=True)
            return
        text = message.decode("utf-8", errors="replace")
        print(FRIEND_NAME + _with_newline(text), end="", file=out, flush=True)


def _send_loop(channel: SecureChannel, inp: TextIO, out: TextIO) -> None:
    for line in inp:
        message = line.rstrip("\n")
        try:
            channel.send(message)
        except ValueError as exc:
            print(exc, file=sys.stderr)
            continue
        except OSError as exc:
            print(f"send failed: {exc}", file=sys.stderr)
            return
        print(SELF_NAME + _with_newline(message), end="", file=out, flush=True)


def main(argv=None) -> int:
    """Run the chat program; returns the exit status."""
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "chat"

    try:
        params = load_params(PARAMS_FILE)
    except (OSError, DHParamsError) as exc:
        print(f"could not read DH params from file '{PARAMS_FILE}': {exc}", file=sys.stderr)
        return 1

    try:
        options = parse_args(argv)
    except UsageError:
        print(usage(prog), end="")
        return 1
    if options.show_help:
        print(usage(prog), end="")
        return 0

    try:
        if options.listen:
            sock = listen(options.port)
        else:
            sock = connect(options.host, options.port)
    except socket.gaierror:
        print("ERROR, no such host", file=sys.stderr)
        return 0
    except OSError as exc:
        print(f"ERROR connecting: {exc}", file=sys.stderr)
        return 1

    try:
        key = handshake(sock, params, not options.listen)
    except (HandshakeError, OSError) as exc:
        print(exc, file=sys.stderr)
        sock.close()
        return 1
    role = "Server" if options.listen else "Client"
    print(f"{role}: Shared key established.", flush=True)

    with SecureChannel(sock, key) as channel:
        receiver = threading.Thread(
            target=_receive_loop, args=(channel, sys.stdout), daemon=True
        )
        receiver.start()
        _send_loop(channel, sys.stdin, sys.stdout)
    return 0