"""
SRP math shared by client, server and the MITM.

    x = SHA256(salt || password)
    v = g^x mod N
    A = g^a mod N
    B = g^b + k*v mod N
    client S = (B - k*g^x)^(a + u*x) mod N
    server S = (A * v^u)^b mod N
    M = HMAC-SHA256(SHA256(S), salt)

Integers are hashed in their minimal big-endian encoding.
"""

from typing import Tuple

from cryptography.hazmat.primitives import hashes, hmac

from kexlab.common.errors import expect
from kexlab.common.protocol import SrpParameters
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int, int_to_bytes, random_bytes, sha256, sha256_int, SYSTEM_RNG

SALT_SIZE = 128
U_BITS = 128


def hmac_sha256(key: bytes, data: bytes) -> bytes:
    h = hmac.HMAC(key, hashes.SHA256())
    h.update(data)
    return h.finalize()


def compute_x(salt: bytes, password: bytes) -> int:
    return sha256_int(salt + password)


def hash_secret(S: int, salt: bytes) -> bytes:
    """The login token M derived from the secret S."""
    return hmac_sha256(sha256(int_to_bytes(S)), salt)


def password_to_verifier(params: SrpParameters, password: bytes, rng=None) -> Tuple[bytes, int]:
    """
    Fresh salt and the verifier for `password`.

    :return: (salt, verifier)
    """
    salt = random_bytes(SALT_SIZE, rng)
    x = compute_x(salt, password)
    return salt, pow(params.g, x, params.N)


class _Ephemeral:
    def __init__(self, params: SrpParameters, rng=None):
        rng = rng or SYSTEM_RNG
        self.params = params
        self.exponent = rng.randrange(1, params.N)
        self.power = pow(params.g, self.exponent, params.N)


class ClientHandshake:
    """Client half of one login: holds a and exposes A."""

    def __init__(self, params: SrpParameters, rng=None):
        self._state = _Ephemeral(params, rng)

    @property
    def A(self) -> int:
        return self._state.power

    def compute_hashed_secret(self, B: int, u: int, salt: bytes, password: bytes) -> bytes:
        params = self._state.params
        N, g, k = params.N, params.g, params.k
        a = self._state.exponent

        x = compute_x(salt, password)
        base = (B - k * pow(g, x, N)) % N
        S = pow(base, a + u * x, N)
        return hash_secret(S, salt)


class ServerHandshake:
    """Server half of one login for a stored (salt, verifier)."""

    def __init__(self, params: SrpParameters, salt: bytes, verifier: int, rng=None):
        self._state = _Ephemeral(params, rng)
        self.salt = salt
        self.verifier = verifier
        self.B = (self._state.power + params.k * verifier) % params.N

    def compute_hashed_secret(self, A: int, u: int) -> bytes:
        N = self._state.params.N
        b = self._state.exponent
        S = pow(A * pow(self.verifier, u, N), b, N)
        return hash_secret(S, self.salt)


# ---------------------------------------------------------------------------
# Mutual randomizers (how both sides obtain u)
# ---------------------------------------------------------------------------

class StandardRandomizer:
    """u = SHA256(A || B), computed independently by both sides."""

    @staticmethod
    def compute(A: int, B: int) -> int:
        return sha256_int(int_to_bytes(A) + int_to_bytes(B))

    def client_u(self, A: int, B: int, transport: FramedTransport) -> int:
        return self.compute(A, B)

    def server_u(self, A: int, B: int, transport: FramedTransport, rng=None) -> int:
        return self.compute(A, B)


class SimplifiedRandomizer:
    """The server draws a random 128-bit u and sends it after B."""

    def client_u(self, A: int, B: int, transport: FramedTransport) -> int:
        return bytes_to_int(expect(transport.receive(), "u"))

    def server_u(self, A: int, B: int, transport: FramedTransport, rng=None) -> int:
        rng = rng or SYSTEM_RNG
        u = rng.getrandbits(U_BITS)
        transport.send(int_to_bytes(u))
        return u
