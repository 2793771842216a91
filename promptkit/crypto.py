"""Hashing, HMAC, hex, base64 and URI-encoding helpers."""

from __future__ import annotations

import base64
import hashlib
import hmac
from urllib.parse import quote


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def sha256(text: str | bytes) -> str:
    """Lower-case hex SHA-256 digest of the input."""
    return hashlib.sha256(_to_bytes(text)).hexdigest()


def hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """Raw HMAC-SHA256 of ``msg`` under ``key``."""
    return hmac.new(_to_bytes(key), _to_bytes(msg), hashlib.sha256).digest()


def hex_encode(data: bytes) -> str:
    """Lower-case hex encoding of the bytes."""
    return bytes(data).hex()


def encode_uri(uri: str) -> str:
    """Percent-encode each '/'-separated segment, keeping the slashes."""
    return "/".join(quote(segment, safe="") for segment in uri.split("/"))


def base64_encode(data: str | bytes) -> str:
    """Standard padded base64 encoding."""
    return base64.b64encode(_to_bytes(data)).decode("ascii")


def base64_decode(data: str | bytes) -> bytes:
    """Decode standard padded base64; raises ValueError on invalid input."""
    return base64.b64decode(_to_bytes(data), validate=True)