from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from app.config import settings
from app.core import security
from app.core.dates import utcnow


class AuthService:
    """Service for password hashing and access/refresh token handling."""

    @staticmethod
    def create_password(password: str) -> Tuple[str, datetime]:
        """
        Hash a password for storage.

        Returns:
            Tuple of (bcrypt hash, password expiry in naive UTC)
        """
        return security.create_password(password)

    @staticmethod
    def validate_user(password: str, password_hash: str) -> bool:
        """Check a plain password against the stored hash."""
        return security.verify_password(password, password_hash)

    @staticmethod
    def check_password_expired(password_expired: datetime) -> bool:
        """True once the expiry date has passed."""
        return utcnow() > password_expired

    @staticmethod
    def access_token_expires_in() -> int:
        """Access token lifetime in seconds."""
        return settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @staticmethod
    def create_access_token(payload: Dict[str, Any]) -> str:
        return security.create_access_token(payload)

    @staticmethod
    def validate_access_token(token: str) -> bool:
        return security.decode_access_token(token) is not None

    @staticmethod
    def payload_access_token(token: str) -> Optional[Dict[str, Any]]:
        return security.decode_access_token(token)

    @staticmethod
    def create_refresh_token(payload: Dict[str, Any], remember_me: bool = False) -> str:
        return security.create_refresh_token(payload, remember_me=remember_me)

    @staticmethod
    def validate_refresh_token(token: str) -> bool:
        return security.decode_refresh_token(token) is not None

    @staticmethod
    def payload_refresh_token(token: str) -> Optional[Dict[str, Any]]:
        return security.decode_refresh_token(token)
