import logging
import socket
import threading
from typing import Any, Callable, List, Optional

from kexlab.common.transport import FramedTransport
from kexlab.config import Settings, configure_logging, load_settings
from kexlab.dh.handshake import Negotiation
from kexlab.dh.mitm import Attack
from kexlab.dh.service import echo_handler, mitm_handler
from kexlab.srp.server import Server as SrpServer

logger = logging.getLogger(__name__)

Handler = Callable[[FramedTransport], Any]


class Listener:
    """
    Accept loop over one listening socket.

    Each accepted connection is wrapped in a FramedTransport and passed to
    `handler`, either on its own thread (threaded=True) or inline in the
    accept loop. Handler return values land in `results`, raised exceptions
    in `errors`.

    `stop()` sets the shutdown flag and opens one more connection so that
    the blocked accept() returns and sees it.
    """

    def __init__(self, handler: Handler, host: str = "127.0.0.1", port: int = 0,
                 threaded: bool = True):
        self.handler = handler
        self.threaded = threaded
        self.results: List[Any] = []
        self.errors: List[BaseException] = []

        self._lock = threading.Lock()
        self._shutdown = threading.Event()
        self._workers: List[threading.Thread] = []
        self._thread: Optional[threading.Thread] = None

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((host, port))
        self._sock.listen(5)

    @property
    def address(self):
        return self._sock.getsockname()

    def start(self) -> "Listener":
        self._thread = threading.Thread(target=self.serve_forever, daemon=True)
        self._thread.start()
        return self

    def serve_forever(self) -> None:
        logger.info("[SERVER] Waiting for connections on %s:%d", *self.address)
        while True:
            conn, addr = self._sock.accept()
            if self._shutdown.is_set():
                conn.close()
                return

            if not self.threaded:
                self._handle_connection(conn, addr)
                continue

            # Handle each client in its own thread
            t = threading.Thread(target=self._handle_connection, args=(conn, addr), daemon=True)
            with self._lock:
                self._workers.append(t)
            t.start()

    def _handle_connection(self, conn: socket.socket, addr) -> None:
        logger.info("[+] Connection from %s", addr)
        try:
            result = self.handler(FramedTransport(conn))
        except Exception as e:
            logger.error("[ERROR] %s: %s", addr, e)
            with self._lock:
                self.errors.append(e)
        else:
            with self._lock:
                self.results.append(result)
        finally:
            conn.close()
            logger.info("[-] Connection closed: %s", addr)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal shutdown, unblock accept(), and wait for every worker."""
        if self._shutdown.is_set():
            return
        self._shutdown.set()
        with socket.create_connection(self.address):
            pass
        if self._thread is not None:
            self._thread.join(timeout)
        with self._lock:
            workers = list(self._workers)
        for t in workers:
            t.join(timeout)
        self._sock.close()

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc):
        self.stop()


# ------------- Main server loop -------------


def make_listener(settings: Settings) -> Listener:
    """Build the listener for `settings.mode` without starting it."""
    if settings.mode == "srp":
        # registration and login share the user store; run them in order
        return Listener(SrpServer().handle_client, settings.host, settings.port, threaded=False)
    if settings.mode == "dh-ack":
        return Listener(echo_handler(Negotiation.SERVER_CAN_OVERRIDE_PARAMETERS),
                        settings.host, settings.port)
    if settings.mode == "dh":
        return Listener(echo_handler(), settings.host, settings.port)
    if settings.mode == "mitm":
        try:
            attack = Attack(settings.attack)
        except ValueError:
            raise SystemExit(f"unknown MITM_ATTACK {settings.attack!r}")
        # sits on mitm_port and relays to the real server on port
        return Listener(mitm_handler((settings.host, settings.port), attack),
                        settings.host, settings.mitm_port)
    raise SystemExit(f"unknown SERVER_MODE {settings.mode!r}")


def main():
    settings = load_settings()
    configure_logging(settings.log_level)

    listener = make_listener(settings)
    logger.info("[CONFIG] Mode %s, listening on %s:%d", settings.mode, *listener.address)
    try:
        listener.serve_forever()
    except KeyboardInterrupt:
        logger.info("[SERVER] Interrupted")


if __name__ == "__main__":
    main()
