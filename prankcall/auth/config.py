"""
Configuration management for the auth package.

This module handles environment variable configuration for password login,
bearer tokens and the admin password.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prankcall.utils.logger import logger


class AuthSettings(BaseSettings):
    """Configuration for the auth system using Pydantic settings."""

    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", env_prefix="AUTH_"
    )

    jwt_secret: str = Field(
        default="change-me", description="Secret used to sign bearer tokens"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_ttl_days: int = Field(default=7, gt=0, description="Token lifetime in days")
    password_min_length: int = Field(default=6, ge=1)
    password_hash_iterations: int = Field(default=100_000, gt=0)
    admin_password: str | None = Field(
        default=None, description="Shared secret for the admin endpoints"
    )


_auth_settings: AuthSettings | None = None


def get_auth_settings() -> AuthSettings:
    """
    Get the global auth settings instance.

    Returns:
        AuthSettings: The global settings instance
    """
    global _auth_settings
    if _auth_settings is None:
        _auth_settings = AuthSettings()
        logger.info(
            "AuthSettings loaded",
            token_ttl_days=_auth_settings.token_ttl_days,
            admin_enabled=bool(_auth_settings.admin_password),
        )
    return _auth_settings


def set_auth_settings(settings: AuthSettings | None) -> None:
    """
    Set the global auth settings instance.

    Args:
        settings: The settings to set
    """
    global _auth_settings
    _auth_settings = settings
