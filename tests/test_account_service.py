"""Unit tests for auth/service.py -- AccountService operations.

Covers:
- register: success, EMAIL_CONFLICT (advisory check and lost race), CREATION_FAILED
- login: token on success; unknown email and wrong password both INVALID_CREDENTIALS
- biometric_login: token on success, BIOMETRIC_LOGIN_FAILED, BIOMETRIC_MISMATCH,
  DecryptionError on a corrupt stored ciphertext
- enable_biometric: global fingerprint uniqueness (incl. same-account re-enroll),
  lost race, UPDATE_FAILED
- find_by_id: ACCOUNT_NOT_FOUND
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.errors import DecryptionError, ErrorCategory, ErrorKind
from auth.service import AccountService
from auth.store import AccountStore


def _register(service: AccountService, email: str = "a@x.com", password: str = "pw1", name: str = "Alice"):
    outcome = service.register(email, password, name)
    assert outcome.is_ok, outcome.error
    return outcome.value


class TestRegister:
    def test_creates_account_with_hashed_password(self, service: AccountService):
        account = _register(service)
        assert account.id
        assert account.email == "a@x.com"
        assert account.name == "Alice"
        assert account.password_hash != "pw1"
        assert service.hasher.verify("pw1", account.password_hash)
        assert not account.biometric_enabled

    def test_duplicate_email_conflicts(self, service: AccountService):
        _register(service)
        outcome = service.register("a@x.com", "other", "Alice Again")
        assert outcome.error is ErrorKind.EMAIL_CONFLICT
        assert outcome.error.category is ErrorCategory.CREDENTIAL

    def test_lost_race_maps_to_email_conflict(self, service: AccountService):
        racing_store = MagicMock(spec=AccountStore)
        racing_store.find_by_email.return_value = None
        racing_store.create.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        service.store = racing_store
        assert service.register("a@x.com", "pw1", "Alice").error is ErrorKind.EMAIL_CONFLICT

    def test_storage_failure_is_creation_failed(self, service: AccountService):
        broken_store = MagicMock(spec=AccountStore)
        broken_store.find_by_email.return_value = None
        broken_store.create.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
        service.store = broken_store
        assert service.register("a@x.com", "pw1", "Alice").error is ErrorKind.CREATION_FAILED


class TestLogin:
    def test_correct_password_returns_token_for_account(self, service: AccountService):
        account = _register(service)
        outcome = service.login("a@x.com", "pw1")
        assert outcome.is_ok
        claims = service.tokens.validate(outcome.value.access_token)
        assert claims.value.subject_id == account.id
        assert claims.value.subject_email == "a@x.com"

    def test_wrong_password_and_unknown_email_are_identical(self, service: AccountService):
        _register(service)
        wrong_password = service.login("a@x.com", "wrong")
        unknown_email = service.login("nobody@x.com", "pw1")
        assert wrong_password.error is ErrorKind.INVALID_CREDENTIALS
        assert unknown_email.error is ErrorKind.INVALID_CREDENTIALS

    def test_unknown_email_still_runs_bcrypt(self, service: AccountService):
        service.hasher.burn = MagicMock()
        service.login("nobody@x.com", "pw1")
        service.hasher.burn.assert_called_once_with("pw1")


class TestBiometric:
    def test_enable_then_login(self, service: AccountService):
        alice = _register(service)
        enabled = service.enable_biometric(alice.id, "bio-1")
        assert enabled.is_ok
        assert enabled.value.biometric_enabled
        assert enabled.value.biometric_key_encrypted != "bio-1"
        assert service.cipher.decrypt(enabled.value.biometric_key_encrypted) == "bio-1"
        assert enabled.value.biometric_fingerprint == service.fingerprints.fingerprint("bio-1")

        outcome = service.biometric_login("bio-1")
        assert outcome.is_ok
        assert service.tokens.validate(outcome.value.access_token).value.subject_id == alice.id

    def test_unenrolled_key_fails(self, service: AccountService):
        alice = _register(service)
        service.enable_biometric(alice.id, "bio-1")
        outcome = service.biometric_login("bio-2")
        assert outcome.error is ErrorKind.BIOMETRIC_LOGIN_FAILED
        assert outcome.error.category is ErrorCategory.BIOMETRIC

    def test_fingerprint_hit_with_wrong_stored_key_is_mismatch(self, service: AccountService, store: AccountStore):
        alice = _register(service)
        # Index says "bio-1" but the ciphertext holds a different key.
        store.update(
            alice.id,
            biometric_key_encrypted=service.cipher.encrypt("bio-other"),
            biometric_fingerprint=service.fingerprints.fingerprint("bio-1"),
        )
        outcome = service.biometric_login("bio-1")
        assert outcome.error is ErrorKind.BIOMETRIC_MISMATCH

    def test_mismatch_and_not_found_look_identical_to_callers(self):
        failed, mismatch = ErrorKind.BIOMETRIC_LOGIN_FAILED, ErrorKind.BIOMETRIC_MISMATCH
        assert failed is not mismatch
        assert (failed.status_code, failed.code, failed.public_message) == (
            mismatch.status_code,
            mismatch.code,
            mismatch.public_message,
        )

    def test_corrupt_ciphertext_raises(self, service: AccountService, store: AccountStore):
        alice = _register(service)
        store.update(
            alice.id,
            biometric_key_encrypted="deadbeef:00",
            biometric_fingerprint=service.fingerprints.fingerprint("bio-1"),
        )
        with pytest.raises(DecryptionError):
            service.biometric_login("bio-1")

    def test_key_bound_to_another_account_conflicts(self, service: AccountService):
        alice = _register(service)
        bob = _register(service, email="b@x.com", name="Bob")
        assert service.enable_biometric(alice.id, "bio-1").is_ok
        outcome = service.enable_biometric(bob.id, "bio-1")
        assert outcome.error is ErrorKind.BIOMETRIC_KEY_CONFLICT
        assert not service.find_by_id(bob.id).value.biometric_enabled

    def test_same_account_re_enrolling_same_key_conflicts(self, service: AccountService):
        alice = _register(service)
        assert service.enable_biometric(alice.id, "bio-1").is_ok
        assert service.enable_biometric(alice.id, "bio-1").error is ErrorKind.BIOMETRIC_KEY_CONFLICT

    def test_enrolling_a_new_key_replaces_the_old_one(self, service: AccountService):
        alice = _register(service)
        service.enable_biometric(alice.id, "bio-1")
        assert service.enable_biometric(alice.id, "bio-2").is_ok
        assert service.biometric_login("bio-2").is_ok
        assert service.biometric_login("bio-1").error is ErrorKind.BIOMETRIC_LOGIN_FAILED

    def test_unknown_account_is_update_failed(self, service: AccountService):
        assert service.enable_biometric("does-not-exist", "bio-1").error is ErrorKind.UPDATE_FAILED

    def test_lost_race_maps_to_key_conflict(self, service: AccountService):
        racing_store = MagicMock(spec=AccountStore)
        racing_store.find_by_fingerprint.return_value = None
        racing_store.update.side_effect = IntegrityError("UPDATE", {}, Exception("UNIQUE constraint failed"))
        service.store = racing_store
        assert service.enable_biometric("acc-1", "bio-1").error is ErrorKind.BIOMETRIC_KEY_CONFLICT

    def test_storage_failure_is_update_failed(self, service: AccountService):
        broken_store = MagicMock(spec=AccountStore)
        broken_store.find_by_fingerprint.return_value = None
        broken_store.update.side_effect = OperationalError("UPDATE", {}, Exception("database is locked"))
        service.store = broken_store
        assert service.enable_biometric("acc-1", "bio-1").error is ErrorKind.UPDATE_FAILED


class TestFindById:
    def test_found(self, service: AccountService):
        alice = _register(service)
        assert service.find_by_id(alice.id).value == alice

    def test_missing(self, service: AccountService):
        outcome = service.find_by_id("does-not-exist")
        assert outcome.error is ErrorKind.ACCOUNT_NOT_FOUND
        assert outcome.error.category is ErrorCategory.NOT_FOUND
