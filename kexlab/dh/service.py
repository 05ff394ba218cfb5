"""Connection handlers for the DH demos: an echo server and a MITM relay."""

import logging

from kexlab.common.protocol import InterceptedMessages
from kexlab.common.transport import FramedTransport
from kexlab.crypto.channel import Session
from kexlab.dh.handshake import Handshake, Negotiation
from kexlab.dh.mitm import Attack, MitmSession

logger = logging.getLogger(__name__)


def echo(session: Session) -> int:
    """Send every message back until the peer closes; returns the count."""
    count = 0
    while True:
        message = session.receive()
        if message is None:
            return count
        session.send(message)
        count += 1


def echo_handler(negotiation: Negotiation = Negotiation.CLIENT_DETERMINES_PARAMETERS,
                 params=None, rng=None):
    def handle(transport: FramedTransport) -> int:
        session = Session(transport, Handshake.server(negotiation, params, rng), rng)
        return echo(session)
    return handle


def mitm_handler(server_address, attack: Attack):
    """
    For each accepted client, connect to the real server and relay through
    a MitmSession.
    """
    def handle(client_transport: FramedTransport) -> InterceptedMessages:
        with FramedTransport.connect(server_address) as server_transport:
            mitm = MitmSession(client_transport, server_transport, attack)
            report = mitm.relay()
        logger.info("[MITM] Relay finished: %d client / %d server messages",
                    len(report.client), len(report.server))
        return report
    return handle
