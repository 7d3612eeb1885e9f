"""
Password login and bearer tokens.

Passwords are stored as salted PBKDF2-SHA256 digests in ``salt$hash`` form.
Tokens are HS256 JWTs carrying the user id in ``sub``.
"""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta

import jwt

from prankcall.auth.config import get_auth_settings
from prankcall.auth.schemas import (
    AuthErrorCode,
    AuthErrorResponse,
    AuthResponse,
    LoginRequest,
    RegisterRequest,
)
from prankcall.db.users.model import DEFAULT_SIGNUP_CREDITS, REFERRED_SIGNUP_CREDITS
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.service import ReferralService
from prankcall.utils.logger import logger


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be trusted."""


def hash_password(password: str) -> str:
    iterations = get_auth_settings().password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), iterations
    ).hex()
    return f"{salt}${digest}"


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash or "$" not in password_hash:
        return False
    iterations = get_auth_settings().password_hash_iterations
    salt, expected = password_hash.split("$", 1)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), iterations
    ).hex()
    return hmac.compare_digest(digest, expected)


def create_access_token(user_id: str, now: datetime | None = None) -> str:
    settings = get_auth_settings()
    issued_at = now or datetime.now(UTC)
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """
    Validate a bearer token.

    Args:
        token: Encoded JWT

    Returns:
        str: The user id the token was issued for

    Raises:
        InvalidTokenError: If the token is expired, malformed or has no subject
    """
    settings = get_auth_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError("Invalid token") from e

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token")
    return user_id


class AuthService:
    """Registration and login against the users table."""

    def __init__(
        self,
        user_repository: UserRepository,
        referral_service: ReferralService,
    ):
        self.user_repository = user_repository
        self.referral_service = referral_service

    async def register(
        self, request: RegisterRequest
    ) -> AuthResponse | AuthErrorResponse:
        """
        Create an account, crediting the referral bonus when a valid code is used.

        Args:
            request: Registration details

        Returns:
            AuthResponse | AuthErrorResponse: Token and user, or the reason it failed
        """
        if len(request.password) < get_auth_settings().password_min_length:
            return AuthErrorResponse(
                error="Password is too short",
                error_code=AuthErrorCode.WEAK_PASSWORD,
            )

        if await self.user_repository.get_user_by_email(request.email):
            return AuthErrorResponse(
                error="Email address is already in use",
                error_code=AuthErrorCode.EMAIL_TAKEN,
            )

        # An unknown code is ignored rather than blocking the signup
        referrer = await self.referral_service.find_referrer(request.referral_code)
        credits = REFERRED_SIGNUP_CREDITS if referrer else DEFAULT_SIGNUP_CREDITS

        user = await self.user_repository.create_user(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            referral_code=await self.referral_service.generate_referral_code(),
            credits=credits,
            referred_by_id=referrer.id if referrer else None,
        )
        if referrer:
            await self.referral_service.register_referral(referrer, user)

        logger.info(
            "[Auth] Registered user",
            user_id=user.id,
            referred=referrer is not None,
        )
        message = (
            f"Account created! You received {credits} credits through a referral"
            if referrer
            else "Account created"
        )
        return AuthResponse(
            message=message,
            token=create_access_token(user.id),
            user=user.to_dict(),
        )

    async def login(self, request: LoginRequest) -> AuthResponse | AuthErrorResponse:
        user = await self.user_repository.get_user_by_email(request.email)
        if user is None or not verify_password(request.password, user.password_hash):
            logger.warning("[Auth] Failed login", email=request.email)
            return AuthErrorResponse(
                error="Invalid email address or password",
                error_code=AuthErrorCode.INVALID_CREDENTIALS,
            )
        if not user.is_active:
            return AuthErrorResponse(
                error="Account is deactivated",
                error_code=AuthErrorCode.ACCOUNT_DISABLED,
            )

        await self.user_repository.update_last_login(user.id)
        return AuthResponse(
            message="Logged in",
            token=create_access_token(user.id),
            user=user.to_dict(),
        )
