"""
Diffie–Hellman handshakes over a FramedTransport.

Two negotiation variants, each with a client step and a server step:

CLIENT_DETERMINES_PARAMETERS
    client -> server : p, g, A
    server -> client : B

SERVER_CAN_OVERRIDE_PARAMETERS
    client -> server : p, g
    server -> client : p', g'      (client adopts these)
    client -> server : A
    server -> client : B

Every value is an integer in big-endian bytes. Both steps return the
16-byte session key.
"""

import logging
from enum import Enum
from typing import Optional

from kexlab.common.errors import ProtocolError, expect
from kexlab.common.protocol import DhParameters
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int, int_to_bytes
from kexlab.crypto.dh import KeyPair

logger = logging.getLogger(__name__)


class Negotiation(Enum):
    CLIENT_DETERMINES_PARAMETERS = "client-determines-parameters"
    SERVER_CAN_OVERRIDE_PARAMETERS = "server-can-override-parameters"


class Role(Enum):
    CLIENT = "client"
    SERVER = "server"


def send_int(transport: FramedTransport, value: int) -> None:
    transport.send(int_to_bytes(value))


def receive_int(transport: FramedTransport, what: str) -> int:
    return bytes_to_int(expect(transport.receive(), what))


def receive_parameters(transport: FramedTransport) -> DhParameters:
    p = receive_int(transport, "p")
    g = receive_int(transport, "g")
    # any g is accepted, including 1, p and p - 1
    if p <= 3:
        raise ProtocolError(f"invalid DH modulus {p}")
    return DhParameters(p=p, g=g)


def send_parameters(transport: FramedTransport, params: DhParameters) -> None:
    send_int(transport, params.p)
    send_int(transport, params.g)


# ---------------------------------------------------------------------------
# Client steps
# ---------------------------------------------------------------------------

def client_step(
    transport: FramedTransport,
    negotiation: Negotiation,
    params: Optional[DhParameters] = None,
    rng=None,
) -> bytes:
    params = params or DhParameters.default()
    send_parameters(transport, params)

    if negotiation is Negotiation.CLIENT_DETERMINES_PARAMETERS:
        pair = KeyPair(params.p, params.g, rng)
        send_int(transport, pair.public)
        B = receive_int(transport, "B")
        return pair.shared_key(B)

    # The server decides; we use whatever it echoes.
    params = receive_parameters(transport)
    logger.debug("[DH] Server chose g=%d", params.g)
    pair = KeyPair(params.p, params.g, rng)
    send_int(transport, pair.public)
    B = receive_int(transport, "B")
    return pair.shared_key(B)


# ---------------------------------------------------------------------------
# Server steps
# ---------------------------------------------------------------------------

def server_step(
    transport: FramedTransport,
    negotiation: Negotiation,
    params: Optional[DhParameters] = None,
    rng=None,
) -> bytes:
    """
    :param params: only used by SERVER_CAN_OVERRIDE_PARAMETERS; when set the
                   server answers with these instead of echoing the client's
    """
    received = receive_parameters(transport)

    if negotiation is Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS:
        received = params or received
        send_parameters(transport, received)

    pair = KeyPair(received.p, received.g, rng)
    send_int(transport, pair.public)
    A = receive_int(transport, "A")
    return pair.shared_key(A)


class Handshake:
    """
    One side of one negotiation variant, ready to run against a transport.

        Session(transport, Handshake.client())
        Session(transport, Handshake.server(Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS))
    """

    def __init__(
        self,
        role: Role,
        negotiation: Negotiation = Negotiation.CLIENT_DETERMINES_PARAMETERS,
        params: Optional[DhParameters] = None,
        rng=None,
    ):
        self.role = role
        self.negotiation = negotiation
        self.params = params
        self.rng = rng

    @classmethod
    def client(cls, negotiation=Negotiation.CLIENT_DETERMINES_PARAMETERS, params=None, rng=None):
        return cls(Role.CLIENT, negotiation, params, rng)

    @classmethod
    def server(cls, negotiation=Negotiation.CLIENT_DETERMINES_PARAMETERS, params=None, rng=None):
        return cls(Role.SERVER, negotiation, params, rng)

    def run(self, transport: FramedTransport) -> bytes:
        logger.debug("[DH] %s handshake (%s)", self.role.value, self.negotiation.value)
        if self.role is Role.CLIENT:
            return client_step(transport, self.negotiation, self.params, self.rng)
        return server_step(transport, self.negotiation, self.params, self.rng)
