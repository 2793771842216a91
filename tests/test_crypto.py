import binascii
from urllib.parse import unquote

import pytest

from promptkit.crypto import (
    base64_decode,
    base64_encode,
    encode_uri,
    hex_encode,
    hmac_sha256,
    sha256,
)


def test_sha256_known_vector():
    assert sha256("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_sha256_shape_and_determinism():
    digest = sha256("hello world")
    assert len(digest) == 64
    assert digest == digest.lower()
    assert digest == sha256("hello world")
    assert digest != sha256("hello world!")


def test_hmac_sha256_rfc4231_case2():
    mac = hmac_sha256(b"Jefe", "what do ya want for nothing?")
    assert hex_encode(mac) == "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"


def test_hmac_sha256_depends_on_key():
    assert hmac_sha256(b"a", "msg") != hmac_sha256(b"b", "msg")
    assert len(hmac_sha256(b"", "msg")) == 32


@pytest.mark.parametrize("data", [b"", b"\x00\xff\x10", bytes(range(256))])
def test_hex_encode_round_trip(data):
    encoded = hex_encode(data)
    assert len(encoded) == 2 * len(data)
    assert bytes.fromhex(encoded) == data


def test_encode_uri_segment():
    assert encode_uri("a b/c") == "a%20b/c"


@pytest.mark.parametrize("uri", ["plain/path", "with space/ü?&=#", "/lead/trail/"])
def test_encode_uri_keeps_slashes_and_round_trips(uri):
    encoded = encode_uri(uri)
    assert encoded.count("/") == uri.count("/")
    assert unquote(encoded) == uri
    assert " " not in encoded


@pytest.mark.parametrize("data", [b"", b"f", b"fo", b"foo", "héllo".encode()])
def test_base64_round_trip(data):
    assert base64_decode(base64_encode(data)) == data


def test_base64_accepts_text():
    assert base64_decode(base64_encode("text")) == b"text"


def test_base64_decode_invalid():
    with pytest.raises(binascii.Error):
        base64_decode("!!!!")