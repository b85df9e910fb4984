"""Symmetric cipher codec for job payloads.

Payloads are encrypted with AES-256 in ECB mode over zero-padded plaintext and
carried as MIME style base64 text. Keys are configured as plain strings and
zero padded or truncated to 32 bytes.

Decryption replaces the trailing run of zero padding with a single space.
Existing senders and receivers expect that exact output, so it must not be
changed to a plain strip.
"""

import base64
import binascii
import logging
import threading

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from job_relay.exceptions import CipherError

BLOCK_SIZE = 16
KEY_SIZE = 32

logger = logging.getLogger(__name__)


def derive_key(raw_key: str) -> bytes:
    """Return the 32-byte AES key for a configured key string."""
    key = raw_key.encode("utf-8")
    if len(key) >= KEY_SIZE:
        return key[:KEY_SIZE]
    return key.ljust(KEY_SIZE, b"\x00")


def pad(data: bytes) -> bytes:
    """Zero-pad to a whole number of blocks; empty input becomes one block."""
    remainder = len(data) % BLOCK_SIZE
    if data and not remainder:
        return data
    return data + b"\x00" * (BLOCK_SIZE - remainder)


def unpad(data: bytes) -> bytes:
    """Collapse the trailing run of zero bytes into a single space."""
    stripped = data.rstrip(b"\x00")
    if len(stripped) != len(data):
        stripped += b" "
    return stripped


class CipherCodec:
    """Encrypts and decrypts job payloads, caching one cipher per key string.

    The cache is filled under a lock so the codec can be shared between
    threads.
    """

    def __init__(self) -> None:
        self._ciphers: dict[str, Cipher] = {}
        self._lock = threading.Lock()

    def cipher_for(self, raw_key: str) -> Cipher:
        """Return the cached cipher for raw_key, deriving it on first use."""
        if not raw_key:
            raise ValueError("an empty key cannot be used for encryption")
        with self._lock:
            cipher = self._ciphers.get(raw_key)
            if cipher is None:
                logger.debug("Deriving cipher for key of length %d", len(raw_key))
                cipher = Cipher(algorithms.AES(derive_key(raw_key)), modes.ECB())
                self._ciphers[raw_key] = cipher
            return cipher

    def encrypt(self, plaintext: bytes | str, raw_key: str) -> str:
        """Encrypt plaintext and return it as base64 transport text."""
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        encryptor = self.cipher_for(raw_key).encryptor()
        ciphertext = encryptor.update(pad(plaintext)) + encryptor.finalize()
        return base64.encodebytes(ciphertext).decode("ascii")

    def decrypt(self, transport: str, raw_key: str) -> str:
        """Decrypt base64 transport text and return the plaintext."""
        try:
            # MIME text is wrapped; anything else outside the alphabet is corrupt
            ciphertext = base64.b64decode("".join(transport.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise CipherError("invalid base64 payload") from e
        if len(ciphertext) % BLOCK_SIZE:
            raise CipherError("invalid ciphertext length")

        decryptor = self.cipher_for(raw_key).decryptor()
        plaintext = unpad(decryptor.update(ciphertext) + decryptor.finalize())
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CipherError("undecodable plaintext") from e
