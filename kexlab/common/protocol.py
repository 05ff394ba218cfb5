"""
Pydantic models for the parameters and results exchanged by the protocols.

Integers travel on the wire as big-endian bytes (see common.utils); these
models are the in-process view of the same values.
"""

from enum import IntEnum
from typing import List

from pydantic import BaseModel


# -------------------------
# Diffie–Hellman group
# -------------------------

# 1536-bit MODP prime (RFC 3526, group 5)
NIST_P = int(
    "ffffffffffffffffc90fdaa22168c234c4c6628b80dc1cd129024e088a67cc74"
    "020bbea63b139b22514a08798e3404ddef9519b3cd3a431b302b0a6df25f1437"
    "4fe1356d6d51c245e485b576625e7ec6f44c42e9a637ed6b0bff5cb6f406b7ed"
    "ee386bfb5a899fa5ae9f24117c4b1fe649286651ece45b3dc2007cb8a163bf05"
    "98da48361c55d39a69163fa8fd24cf5f83655d23dca3ad961c62f356208552bb"
    "9ed529077096966d670c354e4abc9804f1746c08ca237327ffffffffffffffff",
    16,
)
NIST_G = 2


class DhParameters(BaseModel):
    p: int
    g: int

    @classmethod
    def default(cls) -> "DhParameters":
        return cls(p=NIST_P, g=NIST_G)


# -------------------------
# SRP
# -------------------------

class SrpParameters(BaseModel):
    N: int
    g: int
    k: int     # 3 standard, 0 simplified

    @classmethod
    def standard(cls) -> "SrpParameters":
        return cls(N=NIST_P, g=NIST_G, k=3)

    @classmethod
    def simplified(cls) -> "SrpParameters":
        return cls(N=NIST_P, g=NIST_G, k=0)


class LoginResult(IntEnum):
    """Single status byte sent by the server at the end of a login."""
    SUCCESS = 0
    FAILURE = 1

    def to_bytes(self) -> bytes:
        return bytes([self.value])

    @classmethod
    def from_bytes(cls, data: bytes) -> "LoginResult":
        if len(data) != 1 or data[0] not in (cls.SUCCESS, cls.FAILURE):
            raise ValueError(f"invalid login status {data!r}")
        return cls(data[0])


# -------------------------
# MITM relay report
# -------------------------

class InterceptedMessages(BaseModel):
    client: List[bytes] = []        # plaintexts sent by the client
    server: List[bytes] = []        # plaintexts sent by the server
    undecryptable: int = 0          # frames relayed but not decrypted
