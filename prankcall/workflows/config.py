"""Configuration for workflows."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prankcall.utils.logger import logger


class CallLifecycleSettings(BaseSettings):
    """Timing of the background call monitor.

    Attributes:
        initial_delay_seconds: Wait before the first status check
        poll_interval_seconds: Wait between checks while the call is active
        retry_interval_seconds: Wait after a failed check
        max_polling_seconds: After this long the call is marked timeout
        resume_on_startup: Restart monitors for active calls at boot
    """

    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", env_prefix="CALL_LIFECYCLE_"
    )

    initial_delay_seconds: float = Field(default=1.0, ge=0)
    poll_interval_seconds: float = Field(default=2.0, ge=0)
    retry_interval_seconds: float = Field(default=5.0, ge=0)
    max_polling_seconds: float = Field(default=30 * 60, gt=0)
    resume_on_startup: bool = Field(default=True)


_call_lifecycle_settings: CallLifecycleSettings | None = None


def get_call_lifecycle_settings() -> CallLifecycleSettings:
    global _call_lifecycle_settings
    if _call_lifecycle_settings is None:
        _call_lifecycle_settings = CallLifecycleSettings()
        logger.info(
            "CallLifecycleSettings loaded",
            poll_interval_seconds=_call_lifecycle_settings.poll_interval_seconds,
            max_polling_seconds=_call_lifecycle_settings.max_polling_seconds,
        )
    return _call_lifecycle_settings


def set_call_lifecycle_settings(settings: CallLifecycleSettings | None) -> None:
    global _call_lifecycle_settings
    _call_lifecycle_settings = settings
