"""
SRP servers.

`handle_client` reads the user name first: an unknown user is registered
(the next frame is the password), a known user is authenticated (the next
frame is A). `register` and `login` run one flow unconditionally.
"""

import logging
from typing import Optional

from kexlab.common.errors import expect
from kexlab.common.protocol import LoginResult, SrpParameters
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int, constant_time_equal, int_to_bytes, random_bytes
from kexlab.srp.algo import (
    ServerHandshake,
    SimplifiedRandomizer,
    StandardRandomizer,
    password_to_verifier,
)
from kexlab.storage.users import UserRecord, UserStore

logger = logging.getLogger(__name__)


class Server:
    def __init__(self, params: Optional[SrpParameters] = None, randomizer=None,
                 store: Optional[UserStore] = None, rng=None):
        self.params = params or SrpParameters.standard()
        self.randomizer = randomizer or StandardRandomizer()
        self.store = store if store is not None else UserStore()
        self.rng = rng

    def handle_client(self, transport: FramedTransport) -> Optional[LoginResult]:
        user_name = expect(transport.receive(), "user name")
        record = self.store.get(user_name)
        if record is None:
            # A login from an unknown user lands here too: its A frame is
            # stored as the password, and A is public, so anyone who saw it
            # can log in as that user. The client sees the stream end
            # instead of a salt. Use login() when the flow is known.
            self._register(transport, user_name)
            return None
        return self._authenticate(transport, user_name, record)

    def register(self, transport: FramedTransport) -> None:
        user_name = expect(transport.receive(), "user name")
        self._register(transport, user_name)

    def login(self, transport: FramedTransport) -> LoginResult:
        user_name = expect(transport.receive(), "user name")
        record = self.store.get(user_name)
        if record is None:
            # Same message sequence as for a real user, against a verifier
            # nobody knows the password for.
            record = self._make_record(random_bytes(16, self.rng))
            logger.info("[SRP] Login attempt for unknown user %r", user_name)
            return self._authenticate(transport, user_name, record, known=False)
        return self._authenticate(transport, user_name, record)

    def _make_record(self, password: bytes) -> UserRecord:
        salt, verifier = password_to_verifier(self.params, password, self.rng)
        return UserRecord(salt=salt, verifier=verifier)

    def _register(self, transport: FramedTransport, user_name: bytes) -> None:
        password = expect(transport.receive(), "password")
        is_new = self.store.put(user_name, self._make_record(password))
        logger.info("[SRP] %s user %r", "Registered" if is_new else "Re-registered", user_name)

    def _authenticate(self, transport: FramedTransport, user_name: bytes,
                      record: UserRecord, known: bool = True) -> LoginResult:
        A = bytes_to_int(expect(transport.receive(), "A"))
        state = ServerHandshake(self.params, record.salt, record.verifier, self.rng)
        transport.send(record.salt)
        transport.send(int_to_bytes(state.B))
        u = self.randomizer.server_u(A, state.B, transport, self.rng)

        expected = state.compute_hashed_secret(A, u)
        client_secret = expect(transport.receive(), "client secret")
        if known and constant_time_equal(expected, client_secret):
            result = LoginResult.SUCCESS
        else:
            result = LoginResult.FAILURE
        transport.send(result.to_bytes())
        logger.info("[SRP] Login for %r: %s", user_name, result.name)
        return result


class SimplifiedServer(Server):
    """k = 0, and u is drawn by the server and sent to the client."""

    def __init__(self, store: Optional[UserStore] = None, rng=None):
        super().__init__(SrpParameters.simplified(), SimplifiedRandomizer(), store, rng)
