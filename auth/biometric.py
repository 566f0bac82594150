"""
auth/biometric.py -- Biometric key protection at rest.

Two separate transforms are applied to every enrolled biometric key:

  BiometricCipher (reversible): AES-256-GCM with a fresh 96-bit nonce per
      call. Stored as "<nonce hex>:<ciphertext+tag hex>" so decrypt() needs
      nothing but the key. GCM's tag makes a wrong key, a truncated value or
      a tampered value fail loudly with DecryptionError instead of returning
      garbage. Encryption is non-deterministic: two ciphertexts of the same
      key differ, so ciphertext equality never implies key equality.

  FingerprintDeriver (one-way): HMAC-SHA256(BIOMETRIC_HMAC_SECRET, key) as
      hex. Deterministic, so the store can do an O(1) exact-match lookup by
      it. A matching fingerprint is only a lookup hit, never proof of
      possession -- biometric login must still decrypt and compare.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import hmac
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from auth.errors import DecryptionError

KEY_BYTES = 32
NONCE_BYTES = 12
_SEPARATOR = ":"


def derive_key(material: str) -> bytes:
    """Normalise configured key material to exactly 32 bytes.

    Right-pads the UTF-8 bytes with ASCII "0" and truncates to 32 bytes, so
    the same configured string always yields the same AES key.
    """
    return material.encode("utf-8").ljust(KEY_BYTES, b"0")[:KEY_BYTES]


class BiometricCipher:
    def __init__(self, key_material: str) -> None:
        self._aesgcm = AESGCM(derive_key(key_material))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return f"{nonce.hex()}{_SEPARATOR}{sealed.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """Return the plaintext, or raise DecryptionError.

        Raises on: missing separator, non-hex parts, wrong nonce length,
        truncated or tampered data, a different key, or non-UTF-8 output.
        """
        nonce_hex, sep, sealed_hex = ciphertext.partition(_SEPARATOR)
        if not sep:
            raise DecryptionError("Ciphertext is missing the nonce separator")
        try:
            nonce = bytes.fromhex(nonce_hex)
            sealed = bytes.fromhex(sealed_hex)
        except ValueError as exc:
            raise DecryptionError("Ciphertext is not valid hex") from exc
        if len(nonce) != NONCE_BYTES:
            raise DecryptionError("Ciphertext nonce has the wrong length")
        try:
            plaintext = self._aesgcm.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionError("Ciphertext failed authentication") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted value is not UTF-8") from exc


class FingerprintDeriver:
    def __init__(self, secret: str) -> None:
        self._secret = secret.encode("utf-8")

    def fingerprint(self, secret: str) -> str:
        """Return HMAC-SHA256(secret key, value) as 64 hex chars."""
        return hmac.new(self._secret, secret.encode("utf-8"), hashlib.sha256).hexdigest()


def keys_match(stored: str, presented: str) -> bool:
    """Constant-time byte-for-byte comparison of two biometric keys."""
    return hmac.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))
