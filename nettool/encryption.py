"""AES-256-CBC encryption of data chunks with a random IV prepended."""

from __future__ import annotations

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

KEY_LEN = 32
IV_LEN = 16
_BLOCK_BITS = 128


class EncryptionError(Exception):
    """Raised when data cannot be encrypted or decrypted."""


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LEN:
        raise EncryptionError("Key must be 32 bytes")


def encrypt_chunk(data: bytes, key: bytes) -> bytes:
    """Encrypt ``data`` with AES-256-CBC and PKCS#7; return IV followed by ciphertext."""
    _check_key(key)
    iv = os.urandom(IV_LEN)
    padder = padding.PKCS7(_BLOCK_BITS).padder()
    padded = padder.update(bytes(data)) + padder.finalize()
    encryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).encryptor()
    try:
        ciphertext = encryptor.update(padded) + encryptor.finalize()
    except ValueError as exc:
        raise EncryptionError("Encryption failed") from exc
    return iv + ciphertext


def decrypt_chunk(data: bytes, key: bytes) -> bytes:
    """Decrypt a chunk produced by :func:`encrypt_chunk`."""
    _check_key(key)
    if len(data) < IV_LEN:
        raise EncryptionError("Chunk too small to contain IV")
    iv, ciphertext = bytes(data[:IV_LEN]), bytes(data[IV_LEN:])
    decryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).decryptor()
    unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
    try:
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise EncryptionError("Decryption failed") from exc