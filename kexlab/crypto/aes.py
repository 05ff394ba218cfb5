"""AES-128(CBC)+PKCS#7 helpers (use library)."""

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import padding

from kexlab.common.errors import DecryptionError

BLOCK_SIZE_BYTES = 16  # AES block size (128-bit)


def pkcs7_pad(data: bytes) -> bytes:
    """Apply PKCS#7 padding to data."""
    padder = padding.PKCS7(BLOCK_SIZE_BYTES * 8).padder()
    return padder.update(data) + padder.finalize()


def pkcs7_unpad(padded: bytes) -> bytes:
    """Remove PKCS#7 padding from data; bad padding raises DecryptionError."""
    unpadder = padding.PKCS7(BLOCK_SIZE_BYTES * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("invalid PKCS#7 padding") from e


def aes_cbc_encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """
    AES CBC encrypt with PKCS#7 padding.

    :param key: 16-byte AES key
    :param iv: 16-byte initialization vector
    :param plaintext: raw bytes
    :return: ciphertext bytes (multiple of 16)
    """
    if len(iv) != BLOCK_SIZE_BYTES:
        raise ValueError("IV must be exactly one block")

    cipher = Cipher(algorithms.AES(key), modes.CBC(iv))
    encryptor = cipher.encryptor()
    return encryptor.update(pkcs7_pad(plaintext)) + encryptor.finalize()


def aes_cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """
    AES CBC decrypt with PKCS#7 unpadding.

    :param key: 16-byte AES key
    :param iv: 16-byte initialization vector
    :param ciphertext: ciphertext bytes (multiple of 16)
    :return: plaintext bytes
    """
    if len(iv) != BLOCK_SIZE_BYTES:
        raise ValueError("IV must be exactly one block")
    if not ciphertext or len(ciphertext) % BLOCK_SIZE_BYTES:
        raise DecryptionError(
            f"ciphertext length {len(ciphertext)} is not a positive multiple of the block size"
        )

    cipher = Cipher(algorithms.AES(key), modes.CBC(iv))
    decryptor = cipher.decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    return pkcs7_unpad(padded)
