import socket
import threading
import time

import pytest

from securechat.channel import (
    IV_LEN,
    MAC_LEN,
    IntegrityError,
    SecureChannel,
    connect,
    decrypt_message,
    encrypt_message,
    listen,
    shutdown_socket,
)

KEY = bytes(range(32))
OTHER_KEY = bytes(range(1, 33))


def test_round_trip_bytes():
    assert decrypt_message(KEY, encrypt_message(KEY, b"hello there")) == b"hello there"


def test_round_trip_text_is_utf8():
    msg = "héllo ☃"
    assert decrypt_message(KEY, encrypt_message(KEY, msg)) == msg.encode("utf-8")


def test_payload_length_preserved_by_ctr():
    msg = b"this is a test message :D"
    assert len(encrypt_message(KEY, msg)) == IV_LEN + len(msg) + MAC_LEN


def test_empty_message_round_trip():
    payload = encrypt_message(KEY, b"")
    assert len(payload) == IV_LEN + MAC_LEN
    assert decrypt_message(KEY, payload) == b""


def test_fresh_iv_each_message():
    a = encrypt_message(KEY, b"same")
    b = encrypt_message(KEY, b"same")
    assert a[:IV_LEN] != b[:IV_LEN]
    assert decrypt_message(KEY, a) == decrypt_message(KEY, b)


def test_ciphertext_differs_from_plaintext():
    msg = b"plainly readable"
    payload = encrypt_message(KEY, msg)
    assert msg not in payload


@pytest.mark.parametrize("index", [0, IV_LEN, -1])
def test_tampering_detected(index):
    payload = bytearray(encrypt_message(KEY, b"attack at dawn"))
    payload[index] ^= 0x01
    with pytest.raises(IntegrityError):
        decrypt_message(KEY, bytes(payload))


def test_wrong_key_detected():
    with pytest.raises(IntegrityError):
        decrypt_message(OTHER_KEY, encrypt_message(KEY, b"hi"))


def test_short_payload_rejected():
    with pytest.raises(ValueError):
        decrypt_message(KEY, bytes(IV_LEN + MAC_LEN - 1))


@pytest.mark.parametrize("bad", [b"", bytes(16), bytes(33)])
def test_bad_key_length(bad):
    with pytest.raises(ValueError):
        encrypt_message(bad, b"x")


def test_oversized_message_rejected():
    with pytest.raises(ValueError):
        encrypt_message(KEY, bytes(1025))


def test_channel_send_receive():
    a, b = socket.socketpair()
    left, right = SecureChannel(a, KEY), SecureChannel(b, KEY)
    try:
        sent = left.send("hello friend")
        assert right.receive() == b"hello friend"
        assert decrypt_message(KEY, sent) == b"hello friend"
        right.send(b"reply")
        assert left.receive() == b"reply"
    finally:
        a.close()
        b.close()


def test_channel_receive_none_on_disconnect():
    a, b = socket.socketpair()
    a.close()
    with b:
        assert SecureChannel(b, KEY).receive() is None


def test_channel_receive_ignores_short_reads_before_close():
    a, b = socket.socketpair()
    a.sendall(b"tiny")
    a.close()
    with b:
        assert SecureChannel(b, KEY).receive() is None


def test_channel_receive_raises_on_tamper():
    a, b = socket.socketpair()
    with a, b:
        payload = bytearray(encrypt_message(KEY, b"hello"))
        payload[-1] ^= 0xFF
        a.sendall(bytes(payload))
        with pytest.raises(IntegrityError):
            SecureChannel(b, KEY).receive()


def test_channel_rejects_bad_key():
    a, b = socket.socketpair()
    with a, b:
        with pytest.raises(ValueError):
            SecureChannel(a, b"short")


def test_shutdown_socket_closes_and_signals_peer():
    a, b = socket.socketpair()
    with b:
        shutdown_socket(a)
        assert a.fileno() == -1
        assert b.recv(16) == b""


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_listen_and_connect():
    port = _free_port()
    result = {}

    def server():
        result["conn"] = listen(port)

    thread = threading.Thread(target=server)
    thread.start()
    client = None
    for _ in range(100):
        try:
            client = connect("localhost", port)
            break
        except ConnectionRefusedError:
            time.sleep(0.05)
    thread.join(timeout=5)
    assert client is not None
    conn = result["conn"]
    try:
        with SecureChannel(client, KEY) as left:
            left.send(b"over tcp")
            assert SecureChannel(conn, KEY).receive() == b"over tcp"
    finally:
        conn.close()