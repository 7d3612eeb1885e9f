"""
Auth router with registration, login and profile endpoints.
"""

from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException

from prankcall.auth.dependencies import get_auth_service, get_current_user
from prankcall.auth.schemas import (
    AuthErrorCode,
    AuthErrorResponse,
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
)
from prankcall.auth.service import AuthService
from prankcall.db.users.model import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

_ERROR_STATUS = {
    AuthErrorCode.EMAIL_TAKEN: HTTPStatus.BAD_REQUEST,
    AuthErrorCode.WEAK_PASSWORD: HTTPStatus.BAD_REQUEST,
    AuthErrorCode.INVALID_CREDENTIALS: HTTPStatus.UNAUTHORIZED,
    AuthErrorCode.ACCOUNT_DISABLED: HTTPStatus.UNAUTHORIZED,
}


def _raise_for_error(result: AuthErrorResponse) -> None:
    raise HTTPException(
        status_code=_ERROR_STATUS.get(result.error_code, HTTPStatus.BAD_REQUEST),
        detail=result.error,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Create an account.

    Args:
        request: Name, email, password and an optional referral code
        auth_service: The auth service from dependency injection

    Returns:
        AuthResponse: Bearer token and the new user

    Raises:
        HTTPException: If the email is taken or the password too short
    """
    result = await auth_service.register(request)
    if isinstance(result, AuthErrorResponse):
        _raise_for_error(result)
    return result


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Exchange email and password for a bearer token.

    Raises:
        HTTPException: 401 if the credentials are wrong or the account is disabled
    """
    result = await auth_service.login(request)
    if isinstance(result, AuthErrorResponse):
        _raise_for_error(result)
    return result


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> CurrentUserResponse:
    """
    Get current user information.

    Returns the profile of the authenticated user, credits included.
    """
    return CurrentUserResponse(user=current_user.to_dict())
