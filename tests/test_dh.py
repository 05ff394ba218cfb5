import random

import pytest

from kexlab.client import connect_and_execute
from kexlab.common.errors import ProtocolError
from kexlab.common.protocol import NIST_G, NIST_P, DhParameters
from kexlab.common.utils import int_to_bytes
from kexlab.crypto.channel import Session
from kexlab.crypto.dh import KeyPair, derive_key_from_shared
from kexlab.dh.handshake import Handshake, Negotiation
from kexlab.dh.service import echo_handler
from kexlab.server import Listener

MESSAGE = b"This is a test"


def test_default_group_is_1536_bit():
    assert NIST_P.bit_length() == 1536
    assert DhParameters.default() == DhParameters(p=NIST_P, g=NIST_G)


def test_key_pairs_agree(rng):
    for _ in range(5):
        alice = KeyPair(NIST_P, NIST_G, rng)
        bob = KeyPair(NIST_P, NIST_G, rng)
        assert alice.shared_key(bob.public) == bob.shared_key(alice.public)


def test_key_pairs_agree_on_small_group():
    rng = random.Random(99)
    for _ in range(50):
        alice = KeyPair(37, 5, rng)
        bob = KeyPair(37, 5, rng)
        assert alice.shared_key(bob.public) == bob.shared_key(alice.public)


def test_derived_key_is_aes_128():
    assert len(derive_key_from_shared(0)) == 16
    assert derive_key_from_shared(0) != derive_key_from_shared(1)


@pytest.mark.parametrize("negotiation", list(Negotiation))
def test_sessions_agree_over_socket_pair(transports, background, negotiation):
    left, right = transports
    server_future = background.submit(lambda: Session(right, Handshake.server(negotiation)))
    client = Session(left, Handshake.client(negotiation))
    server = server_future.result(timeout=10)

    client.send(MESSAGE)
    assert server.receive() == MESSAGE
    server.send(b"reply")
    assert client.receive() == b"reply"


def test_client_adopts_parameters_chosen_by_server(transports, background):
    left, right = transports
    override = DhParameters(p=NIST_P, g=5)
    negotiation = Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS
    server_future = background.submit(
        lambda: Session(right, Handshake.server(negotiation, params=override)))
    client = Session(left, Handshake.client(negotiation))
    server = server_future.result(timeout=10)

    client.send(MESSAGE)
    assert server.receive() == MESSAGE


def test_missing_public_value_aborts_handshake(transports, background):
    left, right = transports
    future = background.submit(lambda: Session(right, Handshake.server()))
    left.send(int_to_bytes(NIST_P))
    left.send(int_to_bytes(NIST_G))
    left.shutdown()
    with pytest.raises(ProtocolError, match="did not receive A"):
        future.result(timeout=10)


def test_degenerate_modulus_is_rejected(transports, background):
    left, right = transports
    future = background.submit(lambda: Session(right, Handshake.server()))
    left.send(int_to_bytes(2))
    left.send(int_to_bytes(1))
    with pytest.raises(ProtocolError):
        future.result(timeout=10)


@pytest.mark.parametrize("negotiation", list(Negotiation))
def test_echo_over_tcp(negotiation):
    with Listener(echo_handler(negotiation)) as listener:
        def action(transport):
            client = Session(transport, Handshake.client(negotiation))
            client.send(MESSAGE)
            return client.receive()

        assert connect_and_execute(listener.address, action) == MESSAGE

    assert listener.errors == []
    assert listener.results == [1]
