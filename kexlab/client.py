import logging
from typing import Any, Callable

from kexlab.common.protocol import LoginResult
from kexlab.common.transport import FramedTransport
from kexlab.config import configure_logging, load_settings
from kexlab.crypto.channel import Session
from kexlab.dh.handshake import Handshake, Negotiation
from kexlab.dh.mitm import Attack
from kexlab.srp.client import Client as SrpClient

logger = logging.getLogger(__name__)


def connect_and_execute(address, action: Callable[[FramedTransport], Any]) -> Any:
    """
    Open a connection, run `action` on it, then shut the connection down
    so the server side sees a clean close.
    """
    with FramedTransport.connect(address) as transport:
        result = action(transport)
        transport.shutdown()
    return result


# ------------------------ Echo chat over DH ------------------------

def chat_loop(session: Session) -> None:
    print("📨 Session ready! Type a message. Type /bye to exit.\n")
    while True:
        text = input("> ")
        if text.strip() == "/bye":
            break
        session.send(text.encode("utf-8"))
        reply = session.receive()
        if reply is None:
            print("Server closed the connection.")
            break
        print(f"< {reply.decode('utf-8', errors='replace')}")


def run_dh(address, negotiation: Negotiation) -> None:
    def action(transport: FramedTransport) -> None:
        chat_loop(Session(transport, Handshake.client(negotiation)))
    connect_and_execute(address, action)


# ------------------------ SRP register + login ------------------------

def run_srp(address) -> LoginResult:
    user_name = input("User name: ").strip().encode("utf-8")
    password = input("Password: ").strip().encode("utf-8")
    client = SrpClient(user_name, password)

    if input("Register first? (y/n): ").strip().lower() == "y":
        connect_and_execute(address, client.register)
        print("✅ Registration sent.")

    result = connect_and_execute(address, client.login)
    if result is LoginResult.SUCCESS:
        print("✅ Login success!")
    else:
        print("❌ Login failed.")
    return result


def main():
    settings = load_settings()
    configure_logging(settings.log_level)
    address = (settings.host, settings.port)

    if settings.mode == "mitm":
        # talk to the real server through the relay on mitm_port
        address = (settings.host, settings.mitm_port)
    print(f"[CONFIG] Connecting to {address[0]}:{address[1]}...")
    if settings.mode == "srp":
        run_srp(address)
    elif settings.mode == "mitm":
        run_dh(address, Attack(settings.attack).negotiation)
    elif settings.mode == "dh-ack":
        run_dh(address, Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS)
    else:
        run_dh(address, Negotiation.CLIENT_DETERMINES_PARAMETERS)


if __name__ == "__main__":
    main()
