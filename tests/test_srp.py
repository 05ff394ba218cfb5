import random

import pytest

from kexlab.client import connect_and_execute
from kexlab.common.errors import ProtocolError
from kexlab.common.protocol import LoginResult, SrpParameters
from kexlab.common.utils import int_to_bytes
from kexlab.server import Listener
from kexlab.srp.algo import (
    ClientHandshake,
    ServerHandshake,
    StandardRandomizer,
    compute_x,
    hash_secret,
    password_to_verifier,
)
from kexlab.srp.client import Client, FakeClientWithZeroKey, SimplifiedClient
from kexlab.srp.server import Server, SimplifiedServer
from kexlab.storage.users import UserRecord, UserStore

USER = b"foo"
PASSWORD = b"baz"


@pytest.fixture
def srp_server():
    server = Server()
    listener = Listener(server.handle_client, threaded=False).start()
    yield server, listener
    listener.stop(timeout=10)


@pytest.mark.parametrize("params", [SrpParameters.standard(), SrpParameters.simplified()])
def test_client_and_server_secrets_agree(params, rng):
    salt, verifier = password_to_verifier(params, PASSWORD, rng)
    client = ClientHandshake(params, rng)
    server = ServerHandshake(params, salt, verifier, rng)
    u = StandardRandomizer.compute(client.A, server.B)
    assert client.compute_hashed_secret(server.B, u, salt, PASSWORD) == \
        server.compute_hashed_secret(client.A, u)
    assert client.compute_hashed_secret(server.B, u, salt, b"wrong") != \
        server.compute_hashed_secret(client.A, u)


def test_verifier_uses_salted_password(rng):
    params = SrpParameters.standard()
    salt, verifier = password_to_verifier(params, PASSWORD, rng)
    assert len(salt) == 128
    assert verifier == pow(params.g, compute_x(salt, PASSWORD), params.N)


def test_register_then_login(srp_server):
    server, listener = srp_server
    client = Client(USER, PASSWORD)
    connect_and_execute(listener.address, client.register)
    assert connect_and_execute(listener.address, client.login) is LoginResult.SUCCESS
    assert USER in server.store


def test_wrong_password_fails(srp_server):
    _, listener = srp_server
    connect_and_execute(listener.address, Client(USER, PASSWORD).register)
    for password in (b"", b"bar", PASSWORD + b"!"):
        result = connect_and_execute(listener.address, Client(USER, password).login)
        assert result is LoginResult.FAILURE


def test_zero_key_client_logs_in_without_password(srp_server):
    _, listener = srp_server
    connect_and_execute(listener.address, Client(USER, PASSWORD).register)
    fake = FakeClientWithZeroKey(USER)
    assert connect_and_execute(listener.address, fake.login) is LoginResult.SUCCESS


def test_server_reports_results(srp_server):
    _, listener = srp_server
    connect_and_execute(listener.address, Client(USER, PASSWORD).register)
    connect_and_execute(listener.address, Client(USER, PASSWORD).login)
    connect_and_execute(listener.address, Client(USER, b"nope").login)
    listener.stop(timeout=10)
    assert listener.errors == []
    assert listener.results == [None, LoginResult.SUCCESS, LoginResult.FAILURE]


def test_login_for_unknown_user_registers_its_public_value(srp_server):
    server, listener = srp_server
    client = Client(b"nobody", PASSWORD, rng=random.Random(7))
    with pytest.raises(ProtocolError):
        connect_and_execute(listener.address, client.login)
    assert b"nobody" in server.store

    # the A frame became the password, so replaying it logs in
    A = ClientHandshake(SrpParameters.standard(), random.Random(7)).A
    eavesdropper = Client(b"nobody", int_to_bytes(A))
    assert connect_and_execute(listener.address, eavesdropper.login) is LoginResult.SUCCESS


def test_simplified_variant(transports, background):
    left, right = transports
    server = SimplifiedServer()
    client = SimplifiedClient(USER, PASSWORD)

    registration = background.submit(server.register, right)
    client.register(left)
    registration.result(timeout=10)
    future = background.submit(server.login, right)
    assert client.login(left) is LoginResult.SUCCESS
    assert future.result(timeout=10) is LoginResult.SUCCESS


def test_explicit_login_for_unknown_user_fails(transports, background):
    left, right = transports
    server = Server()
    future = background.submit(server.login, right)
    assert Client(b"nobody", PASSWORD).login(left) is LoginResult.FAILURE
    assert future.result(timeout=10) is LoginResult.FAILURE


def test_zero_key_does_not_work_for_unknown_user(transports, background):
    left, right = transports
    server = Server()
    future = background.submit(server.login, right)
    assert FakeClientWithZeroKey(b"nobody").login(left) is LoginResult.FAILURE
    assert future.result(timeout=10) is LoginResult.FAILURE


def test_reregistration_overwrites(transports, background):
    left, right = transports
    server = Server()
    for password in (b"old", b"new"):
        future = background.submit(server.register, right)
        Client(USER, password).register(left)
        future.result(timeout=10)

    future = background.submit(server.login, right)
    assert Client(USER, b"new").login(left) is LoginResult.SUCCESS
    future.result(timeout=10)
    assert len(server.store) == 1


def test_malformed_status_byte_is_a_protocol_error(transports, background):
    left, right = transports

    def fake_server():
        right.receive()
        right.receive()
        right.send(b"salt")
        right.send(int_to_bytes(2))
        right.receive()
        right.send(b"\x07")

    background.submit(fake_server)
    with pytest.raises(ProtocolError):
        Client(USER, PASSWORD).login(left)


def test_login_aborts_when_server_hangs_up(transports, background):
    left, right = transports

    def rude_server():
        right.receive()
        right.receive()
        right.shutdown()

    background.submit(rude_server)
    with pytest.raises(ProtocolError, match="salt"):
        Client(USER, PASSWORD).login(left)


def test_hash_secret_is_hmac_of_hashed_secret():
    import hashlib
    import hmac

    expected = hmac.new(hashlib.sha256(b"\x00").digest(), b"salt", hashlib.sha256).digest()
    assert hash_secret(0, b"salt") == expected


def test_user_store():
    store = UserStore()
    record = UserRecord(salt=b"s", verifier=5)
    assert store.get(USER) is None
    assert store.put(USER, record) is True
    assert store.put(USER, record) is False
    assert store.get(USER) == record
    assert len(store) == 1
