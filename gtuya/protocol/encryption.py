"""Tuya protocol payload encryption (AES-128-ECB with PKCS#7 padding)."""

from __future__ import annotations

import logging
from enum import StrEnum

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import CryptoError
from .constants import AES_BLOCK_SIZE, LOCAL_KEY_SIZE

_LOGGER = logging.getLogger(__name__)


class UnpadMode(StrEnum):
    """How decrypt_ecb treats padding that is not valid PKCS#7."""

    # Malformed padding is left in place and the buffer returned as-is
    LENIENT = "lenient"
    # Malformed padding raises CryptoError
    STRICT = "strict"


class TuyaCipher:
    """Encrypts and decrypts payloads under a device's local key."""

    def __init__(self, local_key: bytes | str, unpad_mode: UnpadMode = UnpadMode.LENIENT) -> None:
        """Initialize with the device's local key (16 bytes, used verbatim as the AES key)."""
        if isinstance(local_key, str):
            try:
                local_key = local_key.encode("ascii")
            except UnicodeEncodeError as err:
                raise CryptoError("Local key must be ASCII") from err
        if len(local_key) != LOCAL_KEY_SIZE:
            raise CryptoError(f"Local key must be exactly {LOCAL_KEY_SIZE} bytes, got {len(local_key)}")
        self._local_key = local_key
        self._unpad_mode = UnpadMode(unpad_mode)

    @property
    def local_key(self) -> bytes:
        """Return the local key."""
        return self._local_key

    @property
    def unpad_mode(self) -> UnpadMode:
        return self._unpad_mode

    def _cipher(self) -> Cipher:
        try:
            return Cipher(algorithms.AES(self._local_key), modes.ECB())
        except ValueError as err:
            raise CryptoError(f"AES backend rejected key: {err}") from err

    def encrypt_ecb(self, plaintext: bytes) -> bytes:
        """Encrypt data using AES-128-ECB with PKCS7 padding."""
        padded = self._pkcs7_pad(plaintext, AES_BLOCK_SIZE)
        try:
            encryptor = self._cipher().encryptor()
            result = encryptor.update(padded) + encryptor.finalize()
        except ValueError as err:
            raise CryptoError(f"AES encrypt failed: {err}") from err
        _LOGGER.debug("ECB encrypt: %d bytes plaintext -> %d bytes ciphertext", len(plaintext), len(result))
        return result

    def decrypt_ecb(self, ciphertext: bytes) -> bytes:
        """Decrypt data using AES-128-ECB, then strip the PKCS7 padding."""
        try:
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
        except ValueError as err:
            raise CryptoError(f"AES decrypt failed: {err}") from err
        result = self._pkcs7_unpad(padded, strict=self._unpad_mode == UnpadMode.STRICT)
        _LOGGER.debug("ECB decrypt: %d bytes ciphertext -> %d bytes plaintext", len(ciphertext), len(result))
        return result

    # --- PKCS7 padding ---

    @staticmethod
    def _pkcs7_pad(data: bytes, block_size: int) -> bytes:
        """Apply PKCS7 padding (a full block when data is already aligned)."""
        pad_len = block_size - (len(data) % block_size)
        return data + bytes([pad_len] * pad_len)

    @staticmethod
    def _pkcs7_unpad(data: bytes, strict: bool = False) -> bytes:
        """Remove PKCS7 padding.

        Lenient mode only checks the count byte: a count of 0, above the
        block size or above the buffer length leaves the buffer untouched.
        Strict mode also requires every padding byte to equal the count.
        """
        if not data:
            if strict:
                raise CryptoError("Cannot unpad an empty buffer")
            return data
        pad_len = data[-1]
        if pad_len == 0 or pad_len > AES_BLOCK_SIZE or pad_len > len(data):
            if strict:
                raise CryptoError(f"Invalid PKCS7 padding length {pad_len}")
            return data
        if strict and data[-pad_len:] != bytes([pad_len] * pad_len):
            raise CryptoError("Invalid PKCS7 padding bytes")
        return data[:-pad_len]
