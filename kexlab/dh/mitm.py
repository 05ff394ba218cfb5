"""
Person-in-the-middle for the DH handshakes.

The relay sits between a client transport and a server transport, runs its
own handshake against both sides and learns the session key from the
algebra of the substituted values:

FAKE_PUBLIC_KEY        A and B replaced by p            secret 0
GENERATOR_ONE          g replaced by 1                  secret 1
GENERATOR_P            g replaced by p                  secret 0
GENERATOR_P_MINUS_ONE  g replaced by p - 1 (= -1)       secret 1 or p - 1

After the handshake every frame is forwarded unchanged and a decrypted
copy is kept.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import List, Optional, Tuple

from kexlab.common.errors import DecryptionError, KexError, expect
from kexlab.common.protocol import InterceptedMessages
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import bytes_to_int
from kexlab.crypto.channel import decrypt_message
from kexlab.crypto.dh import derive_key_from_shared
from kexlab.dh.handshake import Negotiation, receive_int, send_int

logger = logging.getLogger(__name__)


class Attack(Enum):
    FAKE_PUBLIC_KEY = "fake-public-key"
    GENERATOR_ONE = "generator-one"
    GENERATOR_P = "generator-p"
    GENERATOR_P_MINUS_ONE = "generator-p-minus-one"

    @property
    def negotiation(self) -> Negotiation:
        """The client/server pair this attack is run against."""
        if self is Attack.FAKE_PUBLIC_KEY:
            return Negotiation.CLIENT_DETERMINES_PARAMETERS
        return Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS


def fake_generator(attack: Attack, p: int) -> int:
    if attack is Attack.GENERATOR_ONE:
        return 1
    if attack is Attack.GENERATOR_P:
        return p
    if attack is Attack.GENERATOR_P_MINUS_ONE:
        return p - 1
    raise ValueError(f"{attack} does not substitute the generator")


def predict_secret(attack: Attack, p: int, A: int, B: int) -> int:
    """
    Shared secret both honest parties end up with under `attack`.
    """
    if attack in (Attack.FAKE_PUBLIC_KEY, Attack.GENERATOR_P):
        return 0
    if attack is Attack.GENERATOR_ONE:
        return 1
    # With g = -1, A and B are each +1 or -1 depending on the parity of the
    # exponent. g^(ab) is +1 iff a or b is even, i.e. iff A or B is +1.
    if A == 1 or B == 1:
        return 1
    return p - 1


def handshake_fake_public_key(
    client: FramedTransport, server: FramedTransport
) -> Tuple[bytes, bytes]:
    p = expect(client.receive(), "p")
    g = expect(client.receive(), "g")
    server.send(p)
    server.send(g)

    # Discard the real public keys and hand each side p instead.
    expect(client.receive(), "A")
    expect(server.receive(), "B")
    client.send(p)
    server.send(p)

    key = derive_key_from_shared(predict_secret(Attack.FAKE_PUBLIC_KEY, bytes_to_int(p), 0, 0))
    return key, key


def handshake_fake_generator(
    client: FramedTransport, server: FramedTransport, attack: Attack
) -> Tuple[bytes, bytes]:
    p = receive_int(client, "p")
    receive_int(client, "g")
    g_fake = fake_generator(attack, p)

    send_int(server, p)
    send_int(server, g_fake)
    # The server's echo is replaced by our own choice.
    receive_int(server, "p")
    receive_int(server, "g")
    send_int(client, p)
    send_int(client, g_fake)

    A = expect(client.receive(), "A")
    B = expect(server.receive(), "B")
    client.send(B)
    server.send(A)

    secret = predict_secret(attack, p, bytes_to_int(A), bytes_to_int(B))
    key = derive_key_from_shared(secret)
    return key, key


class MitmSession:
    """
    Two live transports plus the keys recovered by one attack.

    The constructor runs the handshake against both sides; `relay()` then
    forwards traffic until one side closes.
    """

    def __init__(self, client_transport: FramedTransport, server_transport: FramedTransport,
                 attack: Attack):
        self.client_transport = client_transport
        self.server_transport = server_transport
        self.attack = attack

        if attack is Attack.FAKE_PUBLIC_KEY:
            keys = handshake_fake_public_key(client_transport, server_transport)
        else:
            keys = handshake_fake_generator(client_transport, server_transport, attack)
        self.client_key: Optional[bytes] = keys[0]
        self.server_key: Optional[bytes] = keys[1]
        logger.info("[MITM] Handshake hijacked (%s)", attack.value)

    def send_client(self, message: bytes) -> None:
        self.client_transport.send(message)

    def send_server(self, message: bytes) -> None:
        self.server_transport.send(message)

    def receive_client(self) -> Optional[bytes]:
        return self.client_transport.receive()

    def receive_server(self) -> Optional[bytes]:
        return self.server_transport.receive()

    def decrypt_client(self, message: bytes) -> Optional[bytes]:
        """Plaintext of a client frame, or None if the client key is unknown."""
        if self.client_key is None:
            return None
        return decrypt_message(message, self.client_key)

    def decrypt_server(self, message: bytes) -> Optional[bytes]:
        if self.server_key is None:
            return None
        return decrypt_message(message, self.server_key)

    def _pump(self, source: FramedTransport, destination: FramedTransport,
              decrypt, plaintexts: List[bytes], side: str) -> int:
        undecryptable = 0
        try:
            while True:
                message = source.receive()
                if message is None:
                    logger.info("[MITM] %s closed the connection", side)
                    destination.shutdown()
                    return undecryptable

                try:
                    plaintext = decrypt(message)
                except DecryptionError as e:
                    undecryptable += 1
                    logger.warning("[MITM] Could not decrypt %s frame: %s", side, e)
                else:
                    if plaintext is not None:
                        logger.info("[MITM] %s: %r", side, plaintext)
                        plaintexts.append(plaintext)

                destination.send(message)
        except KexError:
            # unblock the opposite direction before propagating
            source.shutdown()
            destination.shutdown()
            raise

    def relay(self) -> InterceptedMessages:
        """
        Forward frames in both directions until either side closes.

        :return: every plaintext recovered, per originating side
        """
        report = InterceptedMessages()
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="mitm-relay") as pool:
            upstream = pool.submit(self._pump, self.client_transport, self.server_transport,
                                   self.decrypt_client, report.client, "client")
            downstream = pool.submit(self._pump, self.server_transport, self.client_transport,
                                     self.decrypt_server, report.server, "server")
            report.undecryptable = upstream.result() + downstream.result()
        return report
