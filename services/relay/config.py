"""
Relay configuration
Built once from the environment at process start and handed to create_app
"""

import os
from dataclasses import dataclass, field
from typing import Optional

import structlog

logger = structlog.get_logger()

DEFAULT_FROM = "Golpac IT <onboarding@resend.dev>"
DEFAULT_RESEND_URL = "https://api.resend.com/emails"
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024


def _split_list(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _number_env(name: str, default, cast):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value.strip())
    except ValueError:
        logger.warning("Invalid numeric setting, using default", setting=name, value=value, default=default)
        return default


def _int_env(name: str, default: int) -> int:
    return _number_env(name, default, int)


def _float_env(name: str, default: float) -> float:
    return _number_env(name, default, float)


@dataclass(frozen=True)
class Settings:
    port: int = 8080
    host: str = "0.0.0.0"
    support_email_to: tuple[str, ...] = ()
    support_email_from: str = DEFAULT_FROM
    resend_api_key: Optional[str] = None
    resend_api_url: str = DEFAULT_RESEND_URL
    email_timeout: float = 30.0
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    cors_allow_origins: tuple[str, ...] = field(default=("*",))
    brand_name: str = "Golpac IT"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from os.environ; missing required values are allowed"""
        return cls(
            port=_int_env("PORT", 8080),
            host=os.getenv("HOST", "0.0.0.0"),
            support_email_to=_split_list(os.getenv("SUPPORT_EMAIL_TO")),
            support_email_from=os.getenv("SUPPORT_EMAIL_FROM") or DEFAULT_FROM,
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            resend_api_url=os.getenv("RESEND_API_URL") or DEFAULT_RESEND_URL,
            email_timeout=_float_env("EMAIL_TIMEOUT_SECONDS", 30.0),
            max_body_bytes=_int_env("MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES),
            cors_allow_origins=_split_list(os.getenv("CORS_ALLOW_ORIGINS")) or ("*",),
            brand_name=os.getenv("SUPPORT_BRAND_NAME") or "Golpac IT",
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def email_configured(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def recipient_configured(self) -> bool:
        return bool(self.support_email_to)

    def warnings(self) -> list[str]:
        """Startup warnings for missing required settings"""
        messages = []
        if not self.email_configured:
            messages.append("RESEND_API_KEY is not set. Emails will not be sent until this is configured.")
        if not self.recipient_configured:
            messages.append("SUPPORT_EMAIL_TO is not set. You won't receive support emails.")
        return messages
