"""
auth/gate.py -- Per-call authorization checkpoint.

Every operation the transport exposes is listed in OPERATION_POLICY with an
Access level. The gate consults that table -- not decorators or route
metadata -- to decide whether a call needs a token:

  PUBLIC         -> passes straight through, unauthenticated.
  AUTHENTICATED  -> bearer token required:
                      missing              -> NO_TOKEN_PROVIDED
                      expired              -> TOKEN_EXPIRED
                      bad / malformed      -> TOKEN_INVALID
                      subject gone         -> ACCOUNT_NOT_FOUND
                      ok                   -> CallContext with the Account

Operation names not in the table are treated as AUTHENTICATED, so a new
operation is closed until someone lists it as PUBLIC.

The gate is stateless; one instance serves every request.

Layer rule: no imports from api/. The transport passes the raw Authorization
header value in and maps the Outcome to its own error responses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from auth.errors import ErrorKind, Outcome
from auth.models import Account
from auth.service import AccountService
from auth.tokens import TokenService

logger = logging.getLogger("verikey.auth.gate")


class Access(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


OPERATION_POLICY: dict[str, Access] = {
    "register": Access.PUBLIC,
    "login": Access.PUBLIC,
    "biometric_login": Access.PUBLIC,
    "enable_biometric": Access.AUTHENTICATED,
    "me": Access.AUTHENTICATED,
}


@dataclass(frozen=True)
class CallContext:
    """What downstream handlers learn about the caller."""

    operation: str
    account: Account | None = None

    @property
    def authenticated(self) -> bool:
        return self.account is not None


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" value, else None.

    The scheme is matched case-insensitively. Any other scheme, a bare token,
    or extra parts count as no token.
    """
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def policy_for(operation: str) -> Access:
    return OPERATION_POLICY.get(operation, Access.AUTHENTICATED)


class RequestGate:
    def __init__(self, tokens: TokenService, accounts: AccountService) -> None:
        self.tokens = tokens
        self.accounts = accounts

    def authorize(self, operation: str, authorization: str | None) -> Outcome[CallContext]:
        if policy_for(operation) is Access.PUBLIC:
            return Outcome.ok(CallContext(operation=operation))

        token = extract_bearer_token(authorization)
        if token is None:
            return Outcome.fail(ErrorKind.NO_TOKEN_PROVIDED)

        claims = self.tokens.validate(token)
        if not claims.is_ok:
            logger.info("Rejected %s: %s", operation, claims.error.diagnostic)
            return Outcome.fail(claims.error)

        resolved = self.accounts.find_by_id(claims.value.subject_id)
        if not resolved.is_ok:
            # A valid token can outlive the account it names.
            logger.warning("Rejected %s: token subject %s no longer exists", operation, claims.value.subject_id)
            return Outcome.fail(resolved.error)

        return Outcome.ok(CallContext(operation=operation, account=resolved.value))
