"""
Password hashing and JWT helpers.

Access and refresh tokens are signed with different secrets so one can never
be replayed as the other.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.config import settings
from app.core.dates import forward_in_days, utcnow

# Password hashing context; bcrypt embeds its own salt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_password(password: str) -> Tuple[str, datetime]:
    """
    Hash a new password and compute when it expires.

    Returns:
        (bcrypt hash, expiry datetime in naive UTC)
    """
    return get_password_hash(password), forward_in_days(settings.PASSWORD_EXPIRED_IN_DAYS)


def _encode(
    data: Dict[str, Any],
    secret_key: str,
    expires_delta: timedelta,
    not_before: Optional[timedelta] = None
) -> str:
    now = utcnow()
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "nbf": now + (not_before or timedelta()),
        "exp": now + expires_delta,
        "sub": settings.JWT_SUBJECT,
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
    })
    return jwt.encode(to_encode, secret_key, algorithm=settings.ALGORITHM)


def _decode(token: str, secret_key: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            subject=settings.JWT_SUBJECT
        )
    except JWTError:
        return None


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    return _encode(
        data,
        settings.ACCESS_TOKEN_SECRET_KEY,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a JWT access token. None if invalid, expired or not yet valid."""
    return _decode(token, settings.ACCESS_TOKEN_SECRET_KEY)


def create_refresh_token(
    data: Dict[str, Any],
    remember_me: bool = False,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token.

    The token becomes usable REFRESH_TOKEN_NOT_BEFORE_SECONDS after issue.
    Remember-me tokens live REFRESH_TOKEN_REMEMBER_ME_EXPIRE_DAYS instead of
    REFRESH_TOKEN_EXPIRE_DAYS.
    """
    if expires_delta is None:
        days = settings.REFRESH_TOKEN_REMEMBER_ME_EXPIRE_DAYS if remember_me else settings.REFRESH_TOKEN_EXPIRE_DAYS
        expires_delta = timedelta(days=days)

    return _encode(
        {**data, "remember_me": remember_me},
        settings.REFRESH_TOKEN_SECRET_KEY,
        expires_delta,
        not_before=timedelta(seconds=settings.REFRESH_TOKEN_NOT_BEFORE_SECONDS)
    )


def decode_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a JWT refresh token."""
    return _decode(token, settings.REFRESH_TOKEN_SECRET_KEY)
