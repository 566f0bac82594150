"""
auth/tokens.py -- Session token issue and validation.

JWT via python-jose with HS256. Tokens are signed with SECRET_KEY and carry
the account id (sub), email, issued-at and expiry. Nothing is stored
server-side; a token is valid exactly as long as its signature checks out and
"exp" is not in the past.

validate() distinguishes an expired token from every other failure
(bad signature, malformed, missing claims) because callers react differently:
expired -> log in again, invalid -> the token is garbage.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import ErrorKind, Outcome

logger = logging.getLogger("verikey.auth.tokens")

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    subject_email: str


class TokenService:
    """Mint and verify signed, time-bounded session tokens.

    Args:
        secret:           HMAC signing secret.
        lifetime_seconds: Validity window added to the issue time.
        clock:            Returns the current UTC time. Only used for issuing;
                          tests pass a fixed clock to mint already-expired tokens.
    """

    def __init__(self, secret: str, lifetime_seconds: int, clock: Callable[[], datetime] | None = None) -> None:
        self._secret = secret
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock or _utcnow

    def issue(self, subject_id: str, subject_email: str) -> str:
        issued_at = self._clock()
        payload = {
            "sub": subject_id,
            "email": subject_email,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.lifetime_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def validate(self, token: str) -> Outcome[TokenClaims]:
        """Verify signature and expiry. Returns the claims or TOKEN_EXPIRED / TOKEN_INVALID."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except ExpiredSignatureError:
            return Outcome.fail(ErrorKind.TOKEN_EXPIRED)
        except JWTError:
            return Outcome.fail(ErrorKind.TOKEN_INVALID)

        subject_id = payload.get("sub")
        subject_email = payload.get("email")
        if not isinstance(subject_id, str) or not isinstance(subject_email, str) or "exp" not in payload:
            logger.info("Rejected signed token with missing or ill-typed claims")
            return Outcome.fail(ErrorKind.TOKEN_INVALID)
        return Outcome.ok(TokenClaims(subject_id=subject_id, subject_email=subject_email))
