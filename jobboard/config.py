"""
Job Board UI Configuration Module

Centralized configuration management with Pydantic validation.
Environment variables are validated at startup so a missing identity key or
backend URL is reported once, up front, instead of failing on first use.
"""

import base64
import binascii
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

REQUIRED_VARIABLES = {
    "clerk_publishable_key": "CLERK_PUBLISHABLE_KEY",
    "api_url": "API_URL",
}


class Settings(BaseSettings):
    """
    Job board UI configuration.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # === Required collaborators ===
    clerk_publishable_key: str = Field(
        description="Identity provider publishable key (pk_test_... / pk_live_...)"
    )
    api_url: str = Field(description="Backend REST API base URL")

    # === Identity ===
    clerk_jwks_url: Optional[str] = Field(
        default=None,
        description="JWKS endpoint used to verify session token signatures",
    )
    clerk_sign_in_url: Optional[str] = Field(
        default=None,
        description="Hosted sign-in page (defaults to the in-app /sign-in page)",
    )

    # === Flask ===
    flask_secret_key: Optional[str] = Field(default=None)
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    log_level: str = Field(default="INFO")

    # === Backend calls ===
    request_timeout: float = Field(
        default=15.0,
        ge=1,
        le=120,
        description="Seconds allowed for one backend request (1-120)",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an http(s) URL and strip the trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL format: {v}")
        return v.rstrip("/")

    @field_validator("clerk_publishable_key")
    @classmethod
    def validate_publishable_key(cls, v: str) -> str:
        """Reject keys that do not encode a frontend API host."""
        try:
            frontend_api_host(v)
        except ConfigurationError as e:
            raise ValueError(str(e))
        return v.strip()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production", "testing"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def api_base(self) -> str:
        """Versioned API prefix every backend path hangs off."""
        return f"{self.api_url}/api/v1"

    @property
    def clerk_frontend_api(self) -> str:
        """Frontend API host decoded from the publishable key."""
        return frontend_api_host(self.clerk_publishable_key)


def frontend_api_host(publishable_key: str) -> str:
    """
    Decode the identity provider's frontend API host from a publishable key.

    Keys look like ``pk_test_<base64("clerk.example.com$")>``.

    Raises:
        ConfigurationError: If the key is not a publishable key.
    """
    key = (publishable_key or "").strip()
    prefix = next((p for p in ("pk_test_", "pk_live_") if key.startswith(p)), None)
    if prefix is None:
        raise ConfigurationError(
            "CLERK_PUBLISHABLE_KEY must start with pk_test_ or pk_live_",
            missing=["CLERK_PUBLISHABLE_KEY"],
        )

    encoded = key[len(prefix):]
    encoded += "=" * (-len(encoded) % 4)
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise ConfigurationError(
            "CLERK_PUBLISHABLE_KEY is not a valid publishable key",
            missing=["CLERK_PUBLISHABLE_KEY"],
        )

    if not decoded.endswith("$") or len(decoded) < 2:
        raise ConfigurationError(
            "CLERK_PUBLISHABLE_KEY is not a valid publishable key",
            missing=["CLERK_PUBLISHABLE_KEY"],
        )
    return decoded[:-1]


def _missing_variables() -> List[str]:
    return [env for env in REQUIRED_VARIABLES.values() if not os.getenv(env, "").strip()]


def load_settings() -> Settings:
    """
    Load and validate settings from the environment.

    Raises:
        ConfigurationError: Listing every missing or malformed required value.
    """
    missing = _missing_variables()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    try:
        settings = Settings()
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        names = [REQUIRED_VARIABLES.get(f, f.upper()) for f in fields]
        raise ConfigurationError(f"Configuration validation failed: {e}", missing=names)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  api_url={settings.api_url}")
    logger.info(f"  clerk_frontend_api={settings.clerk_frontend_api}")
    logger.info(f"  signature_verification={'on' if settings.clerk_jwks_url else 'off'}")
    return settings

