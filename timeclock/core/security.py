"""
JWT token creation / verification, password hashing (bcrypt) and
logout revocation.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from timeclock.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY

# Tokens presented at logout mapped to their exp (epoch seconds); process-local
_revoked_tokens: dict[str, float] = {}


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims: dict[str, Any] = {
        "exp": expire,
        "sub": str(subject),
        "type": "access",
        "jti": secrets.token_urlsafe(8),
    }
    return jwt.encode(claims, _SECRET, algorithm=_ALGORITHM)


def create_refresh_token(subject: str | Any) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return jwt.encode(
        {"exp": expire, "sub": str(subject), "type": "refresh", "jti": secrets.token_urlsafe(8)},
        _SECRET,
        algorithm=_ALGORITHM,
    )


def _decode(token: str, expected_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    return payload


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid and not revoked, else ``None``."""
    if token in _revoked_tokens:
        return None
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict | None:
    """Return payload dict if *refresh* token is valid and not revoked, else ``None``."""
    if token in _revoked_tokens:
        return None
    return _decode(token, "refresh")


def revoke_token(token: str) -> None:
    """Reject ``token`` until it expires; expired entries are pruned here."""
    try:
        claims = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        # Forged or already expired tokens are rejected by decoding anyway
        return
    now = datetime.now(timezone.utc).timestamp()
    for stale in [t for t, exp in _revoked_tokens.items() if exp <= now]:
        del _revoked_tokens[stale]
    _revoked_tokens[token] = float(claims["exp"])
