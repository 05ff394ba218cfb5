"""
Secure channel on top of a FramedTransport.

Encrypted frame payload:

    | AES-CBC ciphertext (n * 16) | IV (16) |

The IV is appended after the ciphertext and is drawn fresh per message.
"""

import logging
from typing import Optional

from kexlab.common.errors import DecryptionError
from kexlab.common.transport import FramedTransport
from kexlab.common.utils import random_bytes
from kexlab.crypto.aes import BLOCK_SIZE_BYTES, aes_cbc_decrypt, aes_cbc_encrypt

logger = logging.getLogger(__name__)


def encrypt_message(plaintext: bytes, key: bytes, rng=None) -> bytes:
    """Encrypt under a fresh random IV and return ciphertext || IV."""
    iv = random_bytes(BLOCK_SIZE_BYTES, rng)
    return aes_cbc_encrypt(key, iv, plaintext) + iv


def decrypt_message(message: bytes, key: bytes) -> bytes:
    """
    Split the trailing IV off `message` and decrypt the rest.

    Raises DecryptionError if the frame is too short or the padding is bad.
    """
    if len(message) <= BLOCK_SIZE_BYTES:
        raise DecryptionError(
            f"encrypted frame of {len(message)} bytes cannot hold ciphertext and IV"
        )
    ciphertext, iv = message[:-BLOCK_SIZE_BYTES], message[-BLOCK_SIZE_BYTES:]
    return aes_cbc_decrypt(key, iv, ciphertext)


def send_encrypted(transport: FramedTransport, plaintext: bytes, key: bytes, rng=None) -> None:
    transport.send(encrypt_message(plaintext, key, rng))


def receive_encrypted(transport: FramedTransport, key: bytes) -> Optional[bytes]:
    """Receive one frame and decrypt it; None on a clean close."""
    message = transport.receive()
    if message is None:
        return None
    return decrypt_message(message, key)


class Session:
    """
    A transport plus a session key agreed by `handshake`.

    The handshake runs to completion in the constructor; `send`/`receive`
    then encrypt and decrypt every frame with the same key.
    """

    def __init__(self, transport: FramedTransport, handshake, rng=None):
        self.transport = transport
        self._rng = rng
        self._key = handshake.run(transport)
        logger.info("[DH] Session key established.")

    def send(self, message: bytes) -> None:
        send_encrypted(self.transport, message, self._key, self._rng)

    def receive(self) -> Optional[bytes]:
        return receive_encrypted(self.transport, self._key)

    def shutdown(self) -> None:
        self.transport.shutdown()

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
