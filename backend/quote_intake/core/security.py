from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from quote_intake.core.config import settings
from quote_intake.core.errors import ApiError

logger = logging.getLogger(__name__)

ADMIN_SUBJECT = "admin"
ADMIN_ROLE = "admin"


def create_access_token(subject: str, extra: dict | None = None, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(days=settings.JWT_EXPIRE_DAYS))
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)

    return jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict | None:
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None


def authenticate_admin(email: str, password: str) -> str | None:
    """
    Check credentials against the configured administrator and return a token.

    Returns None for every kind of failure, including an unconfigured admin,
    so callers cannot tell the cases apart.
    """
    admin_email = settings.ADMIN_EMAIL
    admin_password = settings.ADMIN_PASSWORD
    if not admin_email or not admin_password:
        logger.warning("ADMIN_EMAIL or ADMIN_PASSWORD not set; refusing admin login.")
        return None
    if not email or not password:
        return None
    if email.lower() != admin_email.lower():
        return None
    if not hmac.compare_digest(password.encode("utf-8"), admin_password.encode("utf-8")):
        return None

    return create_access_token(
        subject=ADMIN_SUBJECT,
        extra={"role": ADMIN_ROLE, "email": admin_email},
    )


def verify_admin_token(token: str | None) -> dict | None:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload:
        logger.debug("Rejected token: undecodable, expired or badly signed")
        return None
    if payload.get("role") != ADMIN_ROLE:
        logger.debug("Rejected token: role claim %r", payload.get("role"))
        return None
    return payload


_bearer = HTTPBearer(auto_error=False)


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> dict:
    """
    Strict guard: only `Authorization: Bearer <token>` is accepted.
    Returns the token claims.
    """
    token = credentials.credentials if credentials else None
    payload = verify_admin_token(token)
    if payload is None:
        raise ApiError.unauthorized()
    return payload


def require_admin_allow_query(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    token: str | None = Query(default=None),
) -> dict:
    """
    Lenient guard for download links: Bearer header, or `?token=...`.
    Use only on routes that must work from a plain <a href>.
    """
    presented = credentials.credentials if credentials else token
    payload = verify_admin_token(presented)
    if payload is None:
        raise ApiError.unauthorized()
    return payload
