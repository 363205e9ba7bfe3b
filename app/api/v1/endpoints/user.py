"""
Authentication endpoints for users: login, token refresh, profile, password change.
"""
import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, Request
from app.api.deps import (
    check_user,
    get_auth_service,
    get_current_user,
    get_current_user_password_expired_allowed,
    get_refresh_payload,
    get_user_service,
)
from app.core.constants import StatusCodeError
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.middleware.rate_limit import rate_limit_auth
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, LoginRequest, TokenResponse
from app.schemas.user import UserResponse
from app.services.auth_service import AuthService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(
    user: User,
    remember_me: bool,
    auth_service: AuthService,
    password_expired: bool = False
) -> TokenResponse:
    return TokenResponse(
        access_for=user.role.access_for,
        expires_in=auth_service.access_token_expires_in(),
        access_token=auth_service.create_access_token(UserService.payload_serialization(user)),
        refresh_token=auth_service.create_refresh_token({"user_id": user.id}, remember_me=remember_me),
        password_expired=password_expired,
        code=StatusCodeError.USER_PASSWORD_EXPIRED_ERROR if password_expired else None
    )


@router.post("/login", response_model=TokenResponse)
@rate_limit_auth()
async def login(
    request: Request,
    body: LoginRequest,
    user_service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Exchange username and password for an access and a refresh token.

    An expired password still gets tokens, flagged with ``password_expired``
    and the USER_PASSWORD_EXPIRED_ERROR code: the access token only opens the
    password change, every other authenticated route answers 403.
    """
    user = await user_service.find_one_by_username(body.username)
    if user is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)

    if not auth_service.validate_user(body.password, user.password):
        logger.warning(
            sanitize_log_message(
                "Login failed: password mismatch",
                UserID=user.id,
                RequestID=get_request_id(request)
            )
        )
        raise BadRequestException(
            detail="Password does not match",
            code=StatusCodeError.USER_PASSWORD_NOT_MATCH_ERROR
        )

    check_user(user, auth_service, check_expired=False)

    password_expired = auth_service.check_password_expired(user.password_expired)
    if password_expired:
        logger.warning(
            sanitize_log_message(
                "Login with expired password",
                UserID=user.id,
                RequestID=get_request_id(request)
            )
        )

    logger.info(sanitize_log_message("User logged in", UserID=user.id, RequestID=get_request_id(request)))
    return _issue_tokens(user, body.remember_me, auth_service, password_expired=password_expired)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    payload: Dict[str, Any] = Depends(get_refresh_payload),
    user_service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Issue a new token pair from a refresh token.

    The user is loaded again so that deactivation takes effect on the next refresh.
    An expired password is refused with 403 here, unlike at login.
    """
    user = await user_service.find_one_by_id(payload["user_id"])
    check_user(user, auth_service)
    return _issue_tokens(user, bool(payload.get("remember_me")), auth_service)


@router.get("/profile", response_model=UserResponse)
async def profile(current_user: User = Depends(get_current_user)):
    """Current user with role and permissions."""
    return current_user


@router.patch("/change-password", response_model=UserResponse)
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    current_user: User = Depends(get_current_user_password_expired_allowed),
    user_service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Replace the current user's password; the new one must differ from the old one.

    Open to users whose password expired; the new password gets a fresh expiry date.
    """
    if not auth_service.validate_user(body.old_password, current_user.password):
        raise BadRequestException(
            detail="Old password does not match",
            code=StatusCodeError.USER_PASSWORD_NOT_MATCH_ERROR
        )

    if body.new_password == body.old_password:
        raise BadRequestException(
            detail="New password must be different from the old password",
            code=StatusCodeError.USER_PASSWORD_NEW_MUST_DIFFERENCE_ERROR
        )

    password, password_expired = auth_service.create_password(body.new_password)
    user = await user_service.update_password(current_user.id, password, password_expired)
    if user is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)

    logger.info(sanitize_log_message("Password changed", UserID=user.id, RequestID=get_request_id(request)))
    return user
