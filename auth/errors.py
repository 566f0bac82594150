"""
auth/errors.py -- Error kinds and the Outcome result type for the auth layer.

Expected failures (wrong password, duplicate email, expired token, ...) are
ordinary outcomes of an auth call, so services return them as values:

    outcome = service.login(email, password)
    if not outcome.is_ok:
        ...  # outcome.error is an ErrorKind
    token = outcome.value

Each ErrorKind carries the caller-visible contract for that failure: a stable
machine code, an HTTP status, and a generic public message. Several kinds
deliberately share a code and message so callers cannot tell them apart:
  - unknown email vs wrong password (both INVALID_CREDENTIALS)
  - fingerprint not found vs decrypt mismatch (both "biometric_login_failed")
The enum members stay distinct so server-side logs keep the diagnosis.

Genuine faults are exceptions, not outcomes. DecryptionError is raised by the
biometric cipher for malformed, truncated or wrong-key ciphertext and is never
downgraded to "no match".

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(str, Enum):
    CREDENTIAL = "credential"
    BIOMETRIC = "biometric"
    TOKEN = "token"
    NOT_FOUND = "not_found"


class ErrorKind(Enum):
    """Every expected failure the auth layer can report.

    Value layout: (diagnostic name, category, HTTP status, public code, public message).
    The diagnostic name is unique per member; the public fields are not.
    """

    # Register / password login
    EMAIL_CONFLICT = ("email_conflict", ErrorCategory.CREDENTIAL, 409, "email_conflict", "Email already exists")
    INVALID_CREDENTIALS = (
        "invalid_credentials",
        ErrorCategory.CREDENTIAL,
        401,
        "invalid_credentials",
        "Invalid credentials",
    )
    CREATION_FAILED = ("creation_failed", ErrorCategory.CREDENTIAL, 422, "creation_failed", "User creation failed")

    # Biometric flows
    BIOMETRIC_LOGIN_FAILED = (
        "biometric_login_failed",
        ErrorCategory.BIOMETRIC,
        401,
        "biometric_login_failed",
        "Biometric login failed",
    )
    BIOMETRIC_MISMATCH = (
        "biometric_mismatch",
        ErrorCategory.BIOMETRIC,
        401,
        "biometric_login_failed",
        "Biometric login failed",
    )
    BIOMETRIC_KEY_CONFLICT = (
        "biometric_key_conflict",
        ErrorCategory.BIOMETRIC,
        409,
        "biometric_key_conflict",
        "Biometric key already in use",
    )
    UPDATE_FAILED = (
        "update_failed",
        ErrorCategory.BIOMETRIC,
        422,
        "update_failed",
        "Failed to enable biometric login",
    )

    # Request gate
    TOKEN_EXPIRED = ("token_expired", ErrorCategory.TOKEN, 401, "token_expired", "Access token expired!")
    TOKEN_INVALID = ("token_invalid", ErrorCategory.TOKEN, 401, "token_invalid", "Invalid auth token!")
    NO_TOKEN_PROVIDED = ("no_token_provided", ErrorCategory.TOKEN, 400, "no_token", "No Token provided")

    # Lookups
    ACCOUNT_NOT_FOUND = ("account_not_found", ErrorCategory.NOT_FOUND, 404, "account_not_found", "User not found")

    def __init__(self, diagnostic: str, category: ErrorCategory, status_code: int, code: str, public_message: str):
        self.diagnostic = diagnostic
        self.category = category
        self.status_code = status_code
        self.code = code
        self.public_message = public_message


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or an ErrorKind. Exactly one of the two is meaningful."""

    value: T | None = None
    error: ErrorKind | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, error: ErrorKind) -> Outcome[T]:
        return cls(error=error)


class DecryptionError(Exception):
    """Ciphertext could not be decrypted: malformed, truncated, or wrong key."""
