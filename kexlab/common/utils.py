"""Common utility helpers: integer codecs, digests, modular inverse."""

import hashlib
import hmac
import secrets
from typing import Optional, Union

# Default randomness source; every caller may pass its own `rng`.
SYSTEM_RNG = secrets.SystemRandom()


def int_to_bytes(n: int) -> bytes:
    """
    Encode a non-negative integer as minimal big-endian bytes.

    Zero is encoded as a single zero byte.
    """
    if n < 0:
        raise ValueError("cannot encode a negative integer")
    return n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")


def bytes_to_int(data: bytes) -> int:
    """Decode big-endian bytes; the empty string decodes to 0."""
    return int.from_bytes(data, "big")


def sha1(data: bytes) -> bytes:
    return hashlib.sha1(data).digest()


def sha256(data: Union[bytes, str]) -> bytes:
    """
    Compute SHA-256 and return the raw digest.
    Accepts bytes or str (utf-8).
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).digest()


def sha256_int(data: bytes) -> int:
    return bytes_to_int(sha256(data))


def constant_time_equal(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)


def invmod(a: int, m: int) -> Optional[int]:
    """
    Modular inverse of `a` modulo `m`.

    Returns None when `a` and `m` are not coprime (or `m` < 2)
    instead of raising. Nothing in the handshakes needs an inverse; this is
    the big-integer helper offered to attack demonstrations, which probe
    exactly the non-coprime case.
    """
    if m < 2:
        return None
    try:
        return pow(a, -1, m)
    except ValueError:
        return None


def random_bytes(n: int, rng=None) -> bytes:
    rng = rng or SYSTEM_RNG
    return rng.randbytes(n)
