"""Exception types shared by the transport, channel and handshake layers."""

from typing import Optional


class KexError(Exception):
    """Base class for every error raised by kexlab."""


class TransportError(KexError, ConnectionError):
    """Reading from or writing to the underlying stream failed."""


class TruncatedMessageError(TransportError):
    """The stream ended inside a length prefix or a payload."""


class ProtocolError(KexError, ValueError):
    """An expected message is missing or malformed."""


class DecryptionError(ProtocolError):
    """An encrypted frame could not be decrypted (length or padding)."""


def expect(message: Optional[bytes], what: str) -> bytes:
    """
    Return `message` or raise ProtocolError if the peer closed instead.

    Used at every point where a handshake needs the next frame.
    """
    if message is None:
        raise ProtocolError(f"did not receive {what}")
    return message
