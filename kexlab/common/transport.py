"""
Length-framed messages over a socket-like byte stream.

Each frame is a 4-byte little-endian length followed by exactly that many
payload bytes:

    | u32 LE length | payload ... |

`receive()` returns None when the peer closes the stream between frames;
a close inside a frame raises TruncatedMessageError.
"""

import logging
import socket
import struct
from typing import Optional

from kexlab.common.errors import ProtocolError, TransportError, TruncatedMessageError

logger = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct("<I")
RECV_CHUNK = 65536


class FramedTransport:
    """
    Wraps any object with `sendall(bytes)` and `recv(n)` (sockets,
    socketpair ends, wrapped streams).
    """

    def __init__(self, sock):
        self.sock = sock

    @classmethod
    def connect(cls, address) -> "FramedTransport":
        try:
            sock = socket.create_connection(address)
        except OSError as e:
            raise TransportError(f"failed to connect to {address}: {e}") from e
        logger.debug("[NET] Connected to %s", address)
        return cls(sock)

    def send(self, message: bytes) -> None:
        """Write the length prefix and the payload, or fail."""
        if len(message) > 0xFFFFFFFF:
            raise ProtocolError("message too long for a 32-bit length prefix")
        try:
            self.sock.sendall(LENGTH_PREFIX.pack(len(message)) + bytes(message))
        except OSError as e:
            raise TransportError(f"failed to write to stream: {e}") from e

    def receive(self) -> Optional[bytes]:
        """
        Read one frame.

        :return: payload bytes, or None on a clean close before the frame
        """
        header = self._read_exact(LENGTH_PREFIX.size, eof_ok=True)
        if header is None:
            return None
        (length,) = LENGTH_PREFIX.unpack(header)
        return self._read_exact(length, eof_ok=False)

    def _read_exact(self, n: int, eof_ok: bool) -> Optional[bytes]:
        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = self.sock.recv(min(n - len(buf), RECV_CHUNK))
            except OSError as e:
                raise TransportError(f"failed to read from stream: {e}") from e
            if not chunk:
                if eof_ok and not buf:
                    return None
                raise TruncatedMessageError(
                    f"stream closed after {len(buf)} of {n} bytes"
                )
            buf += chunk
        return bytes(buf)

    def shutdown(self) -> None:
        """Shut down both directions; the peer's next receive() sees a clean close."""
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # peer already gone
            logger.debug("[NET] shutdown: %s", e)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
