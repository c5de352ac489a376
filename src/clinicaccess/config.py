"""Configuration contract for the clinic access-control layer.

This module provides Pydantic-validated configuration shared by every
component of the package (LOG_LEVEL, REDIS_URL, role deletion policy, etc.).

Applications embed AccessConfig in their own settings or load it with
load_config_from_env(). Direct os.environ/os.getenv usage is FORBIDDEN
elsewhere in the package for any setting defined here.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RoleDeletionPolicy(str, Enum):
    """What happens to grants that reference a custom role being deleted.

    - REJECT: deletion fails while any grant references the role slug.
    - CASCADE: grants for the slug are deleted together with the role.
    """

    REJECT = "reject"
    CASCADE = "cascade"


class AccessConfig(BaseModel):
    """Configuration for identity resolution, grant storage and logging.

    RULE: All settings MUST come through this config chain.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Redis (shared grant / role storage)
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0). None = in-memory stores",
    )
    redis_prefix: str = Field(
        default="clinicaccess",
        description="Key prefix for grant and role hashes in Redis",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used as the logger name for setup_logging()",
    )

    # Role lifecycle
    role_deletion_policy: RoleDeletionPolicy = Field(
        default=RoleDeletionPolicy.REJECT,
        description="Handling of grants that reference a deleted custom role",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("role_deletion_policy", mode="before")
    @classmethod
    def validate_role_deletion_policy(cls, v: str | RoleDeletionPolicy) -> RoleDeletionPolicy:
        if isinstance(v, RoleDeletionPolicy):
            return v
        if isinstance(v, str):
            try:
                return RoleDeletionPolicy(v.strip().lower())
            except ValueError:
                raise ValueError(
                    f"Invalid role deletion policy: {v}. Must be one of {[e.value for e in RoleDeletionPolicy]}"
                )
        raise ValueError(f"Role deletion policy must be string or RoleDeletionPolicy enum, got {type(v)}")

    model_config = {
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_config_from_env() -> AccessConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed for these settings.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - REDIS_URL: Redis connection URL
    - ACCESS_REDIS_PREFIX: Key prefix for grant/role hashes
    - SERVICE_NAME: Service name for logging
    - ROLE_DELETION_POLICY: reject | cascade

    Returns:
        AccessConfig instance with values from environment or defaults.
    """
    import os

    return AccessConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        redis_url=os.getenv("REDIS_URL") or None,
        redis_prefix=os.getenv("ACCESS_REDIS_PREFIX", "clinicaccess"),
        service_name=os.getenv("SERVICE_NAME"),
        role_deletion_policy=os.getenv("ROLE_DELETION_POLICY", "reject"),
    )


__all__ = [
    "AccessConfig",
    "LogLevel",
    "RoleDeletionPolicy",
    "load_config_from_env",
]
