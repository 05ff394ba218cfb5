"""
Fake simplified-SRP server that turns one login attempt into an offline
password oracle.

It answers every login with

    salt = b""
    B    = g
    u    = g

For B = g and k = 0 the client computes S = g^(a + u*x) = A * g^(u*x),
which only depends on values the attacker knows plus the password.
"""

import logging
from typing import Iterable, Optional

from kexlab.common.errors import expect
from kexlab.common.protocol import LoginResult, SrpParameters
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int, int_to_bytes
from kexlab.srp.algo import compute_x, hash_secret

logger = logging.getLogger(__name__)


class PasswordOracle:
    """A captured login attempt: A and the client's token."""

    def __init__(self, params: SrpParameters, A: int, client_secret: bytes):
        self.params = params
        self.A = A
        self.client_secret = client_secret

    def password_to_client_secret(self, password_candidate: bytes) -> bytes:
        N, g = self.params.N, self.params.g
        salt = b""
        B = u = g
        x = compute_x(salt, password_candidate)
        S = (self.A * pow(B, u * x, N)) % N
        return hash_secret(S, salt)

    def is_password(self, password_candidate: bytes) -> bool:
        return self.password_to_client_secret(password_candidate) == self.client_secret

    def find_password(self, candidates: Iterable[bytes]) -> Optional[bytes]:
        """Dictionary attack: first candidate the oracle accepts."""
        for candidate in candidates:
            if self.is_password(candidate):
                logger.info("[MITM] Password recovered")
                return candidate
        return None


class Mitm:
    def __init__(self, params: Optional[SrpParameters] = None):
        self.params = params or SrpParameters.simplified()

    def handle_client(self, transport: FramedTransport) -> PasswordOracle:
        user_name = expect(transport.receive(), "user name")
        A = bytes_to_int(expect(transport.receive(), "A"))
        g = self.params.g

        transport.send(b"")             # salt
        transport.send(int_to_bytes(g))  # B
        transport.send(int_to_bytes(g))  # u

        client_secret = expect(transport.receive(), "client secret")
        # The victim never checks anything beyond this byte.
        transport.send(LoginResult.SUCCESS.to_bytes())
        logger.info("[MITM] Captured login attempt for %r", user_name)
        return PasswordOracle(self.params, A, client_secret)
