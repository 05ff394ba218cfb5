"""
SRP clients.

Registration:   user_name, password                        (no reply)
Login:          user_name, A  ->  salt, B, [u]  ->  M  ->  status byte
"""

import logging
from typing import Optional

from kexlab.common.errors import ProtocolError, expect
from kexlab.common.protocol import LoginResult, SrpParameters
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int, int_to_bytes
from kexlab.srp.algo import ClientHandshake, SimplifiedRandomizer, StandardRandomizer, hash_secret

logger = logging.getLogger(__name__)


def receive_login_result(transport: FramedTransport) -> LoginResult:
    status = expect(transport.receive(), "login result")
    try:
        return LoginResult.from_bytes(status)
    except ValueError as e:
        raise ProtocolError(str(e)) from e


class Client:
    """An honest client for one (user_name, password)."""

    def __init__(self, user_name: bytes, password: bytes,
                 params: Optional[SrpParameters] = None, randomizer=None, rng=None):
        self.user_name = user_name
        self.password = password
        self.params = params or SrpParameters.standard()
        self.randomizer = randomizer or StandardRandomizer()
        self.rng = rng

    def register(self, transport: FramedTransport) -> None:
        transport.send(self.user_name)
        transport.send(self.password)
        logger.info("[SRP] Registration sent for %r", self.user_name)

    def login(self, transport: FramedTransport) -> LoginResult:
        """
        Run one login. A rejected password is reported as
        LoginResult.FAILURE; transport and protocol problems raise.
        """
        transport.send(self.user_name)
        state = ClientHandshake(self.params, self.rng)
        A = state.A
        transport.send(int_to_bytes(A))

        salt = expect(transport.receive(), "salt")
        B = bytes_to_int(expect(transport.receive(), "B"))
        u = self.randomizer.client_u(A, B, transport)

        transport.send(state.compute_hashed_secret(B, u, salt, self.password))
        result = receive_login_result(transport)
        logger.info("[SRP] Login for %r: %s", self.user_name, result.name)
        return result


class SimplifiedClient(Client):
    """k = 0 and an explicit u sent by the server."""

    def __init__(self, user_name: bytes, password: bytes, rng=None):
        super().__init__(user_name, password, SrpParameters.simplified(),
                         SimplifiedRandomizer(), rng)


class FakeClientWithZeroKey:
    """
    Logs in without the password by sending A = 0.

    The server then computes S = (0 * v^u)^b = 0, so the token for S = 0
    matches whatever password was registered.
    """

    def __init__(self, user_name: bytes, randomizer=None):
        self.user_name = user_name
        self.randomizer = randomizer or StandardRandomizer()

    def login(self, transport: FramedTransport) -> LoginResult:
        transport.send(self.user_name)
        transport.send(int_to_bytes(0))

        salt = expect(transport.receive(), "salt")
        B = bytes_to_int(expect(transport.receive(), "B"))
        # u does not matter, but a simplified server still sends it
        self.randomizer.client_u(0, B, transport)

        transport.send(hash_secret(0, salt))
        return receive_login_result(transport)
