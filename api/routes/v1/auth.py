"""
api/routes/v1/auth.py -- Account and authentication REST endpoints.

Routes:
  POST /api/v1/auth/register         -- create account (public)
  POST /api/v1/auth/login            -- password login; returns bearer token (public)
  POST /api/v1/auth/biometric-login  -- biometric login; returns bearer token (public)
  POST /api/v1/auth/biometric        -- enroll a biometric key (requires auth)
  GET  /api/v1/auth/me               -- current account profile (requires auth)

Every route runs require_operation(<name>) so the auth.gate.OPERATION_POLICY
table is the single place that decides which operations are public.

Security:
  Login errors are generic: unknown email and wrong password share one
      response, as do unknown biometric key and biometric mismatch.
  Cache-Control: no-store on every response that carries a token.
  Responses are built from AccountResponse, which redacts all secrets.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import error_exception, get_account_service, require_operation
from api.models import AccountResponse, BiometricKeyRequest, LoginRequest, RegisterRequest, TokenResponse
from auth.errors import Outcome
from auth.gate import CallContext
from auth.service import AccountService, AuthResult

router = APIRouter()


def _token_response(outcome: Outcome[AuthResult], service: AccountService) -> JSONResponse:
    if not outcome.is_ok:
        raise error_exception(outcome.error)
    resp = JSONResponse(
        status_code=200,
        content=TokenResponse(
            access_token=outcome.value.access_token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=service.tokens.lifetime_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AccountResponse, status_code=201)
def register(
    body: RegisterRequest,
    call: CallContext = Depends(require_operation("register")),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Create an account. The password is stored only as a bcrypt hash."""
    outcome = service.register(body.email, body.password, body.name)
    if not outcome.is_ok:
        raise error_exception(outcome.error)
    return AccountResponse.from_account(outcome.value)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    call: CallContext = Depends(require_operation("login")),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Authenticate with email and password; return a bearer token."""
    return _token_response(service.login(body.email, body.password), service)


@router.post("/auth/biometric-login", response_model=TokenResponse)
def biometric_login(
    body: BiometricKeyRequest,
    call: CallContext = Depends(require_operation("biometric_login")),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Authenticate with a previously enrolled biometric key; return a bearer token."""
    return _token_response(service.biometric_login(body.biometric_key), service)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/biometric", response_model=AccountResponse)
def enable_biometric(
    body: BiometricKeyRequest,
    call: CallContext = Depends(require_operation("enable_biometric")),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Enroll a biometric key for the current account.

    Keys are globally unique: a key already enrolled anywhere, including on
    this account, is rejected with 409.
    """
    outcome = service.enable_biometric(call.account.id, body.biometric_key)
    if not outcome.is_ok:
        raise error_exception(outcome.error)
    return AccountResponse.from_account(outcome.value)


@router.get("/auth/me", response_model=AccountResponse)
def me(call: CallContext = Depends(require_operation("me"))) -> AccountResponse:
    """Return the profile of the currently authenticated account."""
    return AccountResponse.from_account(call.account)
