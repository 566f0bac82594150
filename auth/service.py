"""
auth/service.py -- Account operations: register, login, biometric login,
biometric enrollment, and lookup by id.

Every public method returns an Outcome. Expected failures come back as an
ErrorKind; only genuine faults (DecryptionError, storage errors outside the
mapped cases) raise.

Security design decisions:
  Login: an unknown email and a wrong password both return
      INVALID_CREDENTIALS, and an unknown email still pays for one bcrypt
      verification (PasswordHasher.burn) so timing does not reveal which
      case occurred.

  Biometric login is two steps. The HMAC fingerprint finds the candidate
      account; decrypting the stored ciphertext and comparing it to the
      presented key is the actual authentication. BIOMETRIC_LOGIN_FAILED
      (no candidate) and BIOMETRIC_MISMATCH (candidate, wrong key) look
      identical to callers.

  Enrollment: the fingerprint space is global. A key already bound to any
      account -- including the enrolling account re-submitting its own
      key -- is rejected with BIOMETRIC_KEY_CONFLICT.

Concurrency: the find-then-write sequences here are advisory. The store's
UNIQUE constraints are authoritative; an IntegrityError from create/update is
mapped to the same conflict kind the advisory check would have produced.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.biometric import BiometricCipher, FingerprintDeriver, keys_match
from auth.errors import ErrorKind, Outcome
from auth.models import Account
from auth.passwords import PasswordHasher
from auth.store import AccountStore
from auth.tokens import TokenService

logger = logging.getLogger("verikey.auth.service")


@dataclass(frozen=True)
class AuthResult:
    access_token: str


class AccountService:
    """Orchestrates hashing, biometric protection, tokens and the store.

    All collaborators are passed in explicitly; see auth.wiring for the
    production composition.
    """

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        cipher: BiometricCipher,
        fingerprints: FingerprintDeriver,
        tokens: TokenService,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.cipher = cipher
        self.fingerprints = fingerprints
        self.tokens = tokens

    # ------------------------------------------------------------------
    # Password path
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, name: str) -> Outcome[Account]:
        """Create an account with a hashed password and no biometric key."""
        if self.store.find_by_email(email) is not None:
            logger.info("Registration rejected: email already registered")
            return Outcome.fail(ErrorKind.EMAIL_CONFLICT)

        candidate = Account(email=email, name=name, password_hash=self.hasher.hash(password))
        try:
            account = self.store.create(candidate)
        except IntegrityError:
            # Lost the race against a concurrent registration for the same email.
            logger.info("Registration rejected by unique constraint on email")
            return Outcome.fail(ErrorKind.EMAIL_CONFLICT)
        except SQLAlchemyError:
            logger.exception("Account creation failed")
            return Outcome.fail(ErrorKind.CREATION_FAILED)

        logger.info("Registered account %s", account.id)
        return Outcome.ok(account)

    def login(self, email: str, password: str) -> Outcome[AuthResult]:
        account = self.store.find_by_email(email)
        if account is None:
            self.hasher.burn(password)
            return Outcome.fail(ErrorKind.INVALID_CREDENTIALS)
        if not self.hasher.verify(password, account.password_hash):
            return Outcome.fail(ErrorKind.INVALID_CREDENTIALS)

        logger.info("Password login for account %s", account.id)
        return Outcome.ok(self._sign(account))

    # ------------------------------------------------------------------
    # Biometric path
    # ------------------------------------------------------------------

    def biometric_login(self, presented_key: str) -> Outcome[AuthResult]:
        """Authenticate by biometric key. Raises DecryptionError on corrupt stored ciphertext."""
        account = self.store.find_by_fingerprint(self.fingerprints.fingerprint(presented_key))
        if account is None or account.biometric_key_encrypted is None:
            logger.info("Biometric login failed: no enrolled key for fingerprint")
            return Outcome.fail(ErrorKind.BIOMETRIC_LOGIN_FAILED)

        stored_key = self.cipher.decrypt(account.biometric_key_encrypted)
        if not keys_match(stored_key, presented_key):
            logger.warning("Biometric mismatch for account %s after fingerprint hit", account.id)
            return Outcome.fail(ErrorKind.BIOMETRIC_MISMATCH)

        logger.info("Biometric login for account %s", account.id)
        return Outcome.ok(self._sign(account))

    def enable_biometric(self, account_id: str, new_key: str) -> Outcome[Account]:
        fingerprint = self.fingerprints.fingerprint(new_key)
        if self.store.find_by_fingerprint(fingerprint) is not None:
            logger.info("Biometric enrollment rejected for account %s: key already in use", account_id)
            return Outcome.fail(ErrorKind.BIOMETRIC_KEY_CONFLICT)

        try:
            updated = self.store.update(
                account_id,
                biometric_key_encrypted=self.cipher.encrypt(new_key),
                biometric_fingerprint=fingerprint,
            )
        except IntegrityError:
            logger.info("Biometric enrollment rejected by unique constraint for account %s", account_id)
            return Outcome.fail(ErrorKind.BIOMETRIC_KEY_CONFLICT)
        except SQLAlchemyError:
            logger.exception("Biometric enrollment failed for account %s", account_id)
            return Outcome.fail(ErrorKind.UPDATE_FAILED)

        if updated is None:
            logger.info("Biometric enrollment failed: account %s not found", account_id)
            return Outcome.fail(ErrorKind.UPDATE_FAILED)

        logger.info("Biometric key enrolled for account %s", account_id)
        return Outcome.ok(updated)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_id(self, account_id: str) -> Outcome[Account]:
        account = self.store.find_by_id(account_id)
        if account is None:
            return Outcome.fail(ErrorKind.ACCOUNT_NOT_FOUND)
        return Outcome.ok(account)

    def _sign(self, account: Account) -> AuthResult:
        return AuthResult(access_token=self.tokens.issue(account.id, account.email))
