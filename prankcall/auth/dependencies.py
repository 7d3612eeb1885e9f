"""
Authentication and authorization dependencies.

This module provides FastAPI dependencies for resolving the current user from
a bearer token and for guarding the admin endpoints.
"""

import hmac

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prankcall.auth.config import get_auth_settings
from prankcall.auth.service import AuthService, InvalidTokenError, decode_access_token
from prankcall.db.dependencies import get_user_repository
from prankcall.db.users.model import User
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.dependencies import get_referral_service
from prankcall.referrals.service import ReferralService

security = HTTPBearer(auto_error=False)


async def _resolve_user(token: str | None, user_repository: UserRepository) -> User:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = decode_access_token(token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = await user_repository.get_user(user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    user_repository: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Get the current user from the Authorization header.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    token = credentials.credentials if credentials else None
    return await _resolve_user(token, user_repository)


async def get_current_user_or_query_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token: str | None = Query(None, description="Bearer token for media links"),
    user_repository: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Like get_current_user, but also accepts ``?token=``.

    Audio elements cannot send headers, so recording downloads pass the
    token in the query string.
    """
    bearer = credentials.credentials if credentials else token
    return await _resolve_user(bearer, user_repository)


async def require_admin(
    x_admin_password: str | None = Header(None, alias="X-Admin-Password"),
) -> None:
    """Require the shared admin password."""
    expected = get_auth_settings().admin_password
    if (
        not expected
        or not x_admin_password
        or not hmac.compare_digest(x_admin_password, expected)
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )


def get_auth_service(
    user_repository: UserRepository = Depends(get_user_repository),
    referral_service: ReferralService = Depends(get_referral_service),
) -> AuthService:
    return AuthService(
        user_repository=user_repository, referral_service=referral_service
    )
