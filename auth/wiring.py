"""
auth/wiring.py -- Explicit composition of the auth components.

No container, no module-level singletons: each component receives its
collaborators as constructor arguments. The API lifespan calls
build_account_service() and build_gate() once at startup; tests call them
with their own Settings and in-memory store.
"""

from __future__ import annotations

from auth.biometric import BiometricCipher, FingerprintDeriver
from auth.gate import RequestGate
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import Settings


def build_token_service(settings: Settings) -> TokenService:
    return TokenService(settings.secret_key, settings.token_expire_seconds)


def build_account_service(settings: Settings, store: AccountStore, tokens: TokenService | None = None) -> AccountService:
    return AccountService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        cipher=BiometricCipher(settings.biometric_encryption_key),
        fingerprints=FingerprintDeriver(settings.biometric_hmac_secret),
        tokens=tokens or build_token_service(settings),
    )


def build_gate(accounts: AccountService) -> RequestGate:
    """Share the service's TokenService so issue and validate use the same secret."""
    return RequestGate(tokens=accounts.tokens, accounts=accounts)
