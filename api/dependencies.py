"""
api/dependencies.py -- FastAPI Depends() helpers that put the RequestGate in
front of every route.

require_operation("me") returns a dependency that:
  1. asks the gate whether the "me" operation may proceed for this request
     (the gate looks the operation up in auth.gate.OPERATION_POLICY),
  2. raises HTTPException with the ErrorKind's status/code/message on refusal,
  3. stores the CallContext on request.state.call and returns it.

ACCOUNT_NOT_FOUND from the gate means the token named an account that no
longer exists. That is reported as an invalid token (401), not a 404, so the
gate never tells a caller which account ids exist.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.errors import ErrorKind
from auth.gate import CallContext, RequestGate
from auth.service import AccountService


def error_exception(kind: ErrorKind) -> HTTPException:
    """Map an ErrorKind to the HTTPException the exception handler renders."""
    return HTTPException(
        status_code=kind.status_code,
        detail={"code": kind.code, "message": kind.public_message},
    )


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_gate(request: Request) -> RequestGate:
    return request.app.state.gate


def require_operation(operation: str) -> Callable[[Request], CallContext]:
    """Build the gate dependency for one named operation.

    Usage:
        @router.get("/auth/me")
        async def me(call: CallContext = Depends(require_operation("me"))): ...
    """

    def dependency(request: Request) -> CallContext:
        outcome = get_gate(request).authorize(operation, request.headers.get("Authorization"))
        if not outcome.is_ok:
            kind = outcome.error
            if kind is ErrorKind.ACCOUNT_NOT_FOUND:
                kind = ErrorKind.TOKEN_INVALID
            raise error_exception(kind)
        request.state.call = outcome.value
        return outcome.value

    dependency.__name__ = f"require_{operation}"
    return dependency
