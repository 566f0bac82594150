"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and services
do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A single identity record.

    password_hash is a bcrypt hash and is never mutated after registration.

    biometric_key_encrypted and biometric_fingerprint are set together by
    enable_biometric(): the first is the AES-GCM ciphertext of the enrolled
    key, the second its HMAC-SHA256 lookup index. Both are None until the
    account enrolls. The fingerprint is unique across all accounts.
    """

    email: str
    name: str
    password_hash: str
    id: str | None = None
    biometric_key_encrypted: str | None = None
    biometric_fingerprint: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def biometric_enabled(self) -> bool:
        return self.biometric_key_encrypted is not None and self.biometric_fingerprint is not None
