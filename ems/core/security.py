"""
Password hashing (bcrypt) and session / CSRF token helpers.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

from ems.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # Unparseable stored hash
        return False


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def dummy_verify() -> None:
    """Spend one hash verification so unknown usernames take as long as bad passwords."""
    pwd_context.dummy_verify()


# ── Session tokens ──────────────────────────────────────────────────
def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Session rows are keyed by the digest; the raw token only lives in the cookie."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ── CSRF ────────────────────────────────────────────────────────────
def new_csrf_token() -> str:
    return secrets.token_hex(32)


def csrf_tokens_match(expected: str | None, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected, supplied)
