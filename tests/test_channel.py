import random

import pytest

from kexlab.common.errors import DecryptionError, ProtocolError
from kexlab.crypto.aes import BLOCK_SIZE_BYTES, aes_cbc_decrypt, aes_cbc_encrypt
from kexlab.crypto.channel import (
    decrypt_message,
    encrypt_message,
    receive_encrypted,
    send_encrypted,
)

KEY = bytes(range(16))
IV = b"\x42" * 16


@pytest.mark.parametrize("plaintext", [b"", b"a", b"x" * 15, b"y" * 16, b"z" * 33])
def test_cbc_round_trip(plaintext):
    ciphertext = aes_cbc_encrypt(KEY, IV, plaintext)
    assert len(ciphertext) % BLOCK_SIZE_BYTES == 0
    assert len(ciphertext) > len(plaintext)
    assert aes_cbc_decrypt(KEY, IV, ciphertext) == plaintext


def test_iv_is_appended_after_ciphertext():
    rng = random.Random(7)
    message = encrypt_message(b"This is a test", KEY, rng)
    expected_iv = random.Random(7).randbytes(BLOCK_SIZE_BYTES)
    assert message[-BLOCK_SIZE_BYTES:] == expected_iv
    assert message[:-BLOCK_SIZE_BYTES] == aes_cbc_encrypt(KEY, expected_iv, b"This is a test")


def test_fresh_iv_per_message():
    first = encrypt_message(b"same", KEY)
    second = encrypt_message(b"same", KEY)
    assert first[-BLOCK_SIZE_BYTES:] != second[-BLOCK_SIZE_BYTES:]
    assert decrypt_message(first, KEY) == decrypt_message(second, KEY) == b"same"


def test_frame_without_room_for_ciphertext_is_rejected():
    with pytest.raises(DecryptionError):
        decrypt_message(b"\x00" * BLOCK_SIZE_BYTES, KEY)


def test_ragged_ciphertext_is_rejected():
    with pytest.raises(DecryptionError):
        decrypt_message(b"\x00" * (BLOCK_SIZE_BYTES + 5), KEY)


def test_bad_padding_is_an_error_not_truncation():
    message = bytearray(encrypt_message(b"hi", KEY))
    # flips the last padding byte of the single plaintext block: 0x0e -> 0x0f
    message[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        decrypt_message(bytes(message), KEY)


def test_decryption_error_is_a_protocol_error():
    assert issubclass(DecryptionError, ProtocolError)


def test_send_and_receive_encrypted(transports):
    left, right = transports
    send_encrypted(left, b"over the wire", KEY)
    assert receive_encrypted(right, KEY) == b"over the wire"


def test_receive_encrypted_on_close(transports):
    left, right = transports
    left.shutdown()
    assert receive_encrypted(right, KEY) is None
