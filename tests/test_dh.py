import pytest

from securechat.dh import (
    DHParams,
    DHParamsError,
    generate_params,
    load_params,
    parse_params,
)
from securechat.keys import DHKey

SMALL = DHParams(q=11, p=23, g=4)


@pytest.fixture(scope="module")
def params():
    return generate_params(64, 256)


def test_parse_params():
    assert parse_params("q = 11\np = 23\ng = 4") == SMALL


def test_parse_params_garbage():
    with pytest.raises(DHParamsError, match="couldn't parse"):
        parse_params("q = 11\np = twenty\n")


def test_small_params_valid_and_lengths():
    SMALL.validate()
    assert (SMALL.p_len, SMALL.q_len) == (1, 1)
    assert SMALL.p_bitlen == SMALL.p.bit_length()


@pytest.mark.parametrize(
    "q,p,g,message",
    [
        (12, 23, 4, "q not prime"),
        (11, 24, 4, "p not prime"),
        (5, 23, 4, "q does not divide"),
        (3, 19, 2, "q\\^2 divides"),
        (11, 23, 1, "g does not generate"),
        (11, 23, 22, "g does not generate"),
    ],
)
def test_validate_errors(q, p, g, message):
    with pytest.raises(DHParamsError, match=message):
        DHParams(q=q, p=p, g=g).validate()


def test_load_params(tmp_path):
    path = tmp_path / "params"
    path.write_text("q = 11\np = 23\ng = 4\n")
    assert load_params(path) == SMALL


def test_load_params_invalid(tmp_path):
    path = tmp_path / "params"
    path.write_text("q = 12\np = 23\ng = 4\n")
    with pytest.raises(DHParamsError):
        load_params(path)


def test_load_params_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_params(tmp_path / "nope")


def test_generated_params_are_sound(params):
    params.validate()
    assert (params.p - 1) % params.q == 0
    assert params.p_bitlen <= 256
    assert pow(params.g, params.q, params.p) == 1


def test_generate_params_rejects_bad_sizes():
    with pytest.raises(ValueError):
        generate_params(64, 64)


def test_gen(params):
    sk, pk = params.gen()
    assert 0 <= sk < params.q
    assert pk == pow(params.g, sk, params.p)


def test_gen_key(params):
    key = params.gen_key("alice")
    assert key.name == "alice"
    assert key.pk == pow(params.g, key.sk, params.p)


def test_final_agrees(params):
    a, A = params.gen()
    b, B = params.gen()
    ka = params.final(a, A, B, 128)
    kb = params.final(b, B, A, 128)
    assert ka == kb
    assert len(ka) == 128


def test_final_prefix_property(params):
    a, A = params.gen()
    b, B = params.gen()
    long_key = params.final(a, A, B, 200)
    assert params.final(a, A, B, 32) == long_key[:32]
    assert params.final(a, A, B, 64) == long_key[:64]
    assert params.final(a, A, B, 0) == b""


def test_final_depends_on_peer(params):
    a, A = params.gen()
    b, B = params.gen()
    c, C = params.gen()
    assert params.final(a, A, B, 32) != params.final(a, A, C, 32)


def test_final3_agrees(params):
    a, A = params.gen()
    x, X = params.gen()
    b, B = params.gen()
    y, Y = params.gen()
    ka = params.final3(a, A, x, X, B, Y, 128)
    kb = params.final3(b, B, y, Y, A, X, 128)
    assert ka == kb
    assert len(ka) == 128


def test_final3_keys_agrees(params):
    ka_long, ka_eph = params.gen_key("a"), params.gen_key("x")
    kb_long, kb_eph = params.gen_key("b"), params.gen_key("y")
    assert params.final3_keys(ka_long, ka_eph, kb_long, kb_eph, 48) == params.final3_keys(
        kb_long, kb_eph, ka_long, ka_eph, 48
    )


def test_final3_keys_requires_secret(params):
    key = params.gen_key()
    public_only = DHKey(pk=key.pk)
    with pytest.raises(ValueError):
        params.final3_keys(public_only, key, key, key, 32)