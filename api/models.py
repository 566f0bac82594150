"""
API request and response models for VeriKey REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Redaction: AccountResponse is the only shape an Account leaves the service
in. It never carries password_hash, biometric_key_encrypted or
biometric_fingerprint -- only whether a biometric key is enrolled.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import Account

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


class BiometricKeyRequest(BaseModel):
    """Request body for POST /api/v1/auth/biometric-login and POST /api/v1/auth/biometric."""

    biometric_key: str = Field(min_length=1, max_length=1024)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AccountResponse(BaseModel):
    """Public profile of an account."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    biometric_enabled: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        """Factory Method -- the redaction lives here, next to the output model."""
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            biometric_enabled=account.biometric_enabled,
            created_at=account.created_at or "",
            updated_at=account.updated_at or "",
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
