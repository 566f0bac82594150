"""
auth/passwords.py -- One-way password hashing (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only reads the first 72 bytes of a secret, and newer releases raise
instead of truncating. _encode() truncates in both hash() and verify() so the
two always see the same bytes.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

_BCRYPT_MAX_BYTES = 72
DEFAULT_ROUNDS = 12


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted adaptive hashing with a tunable work factor.

    Args:
        rounds: bcrypt log2 cost factor (4..31). Each +1 doubles the CPU cost.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash. Computed once so the first login
        # attempt for an unknown email costs the same as later ones.
        self._dummy_hash = self.hash("verikey_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext."""
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext matches the bcrypt hash.

        A malformed hash is a verification failure, never an exception.
        """
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def burn(self, plain: str) -> None:
        """Run a full verification against the dummy hash and discard the result.

        Called when there is no real hash to check so the response time does
        not reveal whether the account exists.
        """
        self.verify(plain, self._dummy_hash)
