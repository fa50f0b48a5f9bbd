# =============================================================================
# File: groupchat/config/jwt_config.py - JWT Configuration Management
# Using BaseConfig pattern with Pydantic v2
# =============================================================================

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from groupchat.common.base.base_config import BaseConfig, BASE_CONFIG_DICT
from groupchat.config.logging_config import get_logger

log = get_logger("groupchat.config.jwt")


class JWTConfig(BaseConfig):
    """
    JWT configuration using Pydantic v2 BaseConfig pattern.
    All settings are flattened for simpler env var mapping.
    """

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='JWT_',
    )

    # =========================================================================
    # Core Settings
    # =========================================================================

    secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="JWT secret key (required, min 32 chars)"
    )

    environment: str = Field(
        default="development",
        description="Environment (development, production, testing)"
    )

    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="Access token expiration in minutes"
    )

    issuer: str = Field(
        default="groupchat",
        description="JWT issuer claim"
    )

    algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def validate_config(self) -> None:
        """Validate JWT configuration"""
        secret = self.secret_key.get_secret_value()
        if not secret:
            raise RuntimeError("JWT secret_key is required")

        if len(secret) < 32:
            log.warning("JWT secret_key should be at least 32 characters long for security")

        if self.access_token_expire_minutes <= 0:
            raise ValueError("access_token_expire_minutes must be positive")

        supported_algorithms = ["HS256", "HS384", "HS512"]
        if self.algorithm not in supported_algorithms:
            raise ValueError(f"Unsupported algorithm: {self.algorithm}")

    def get_secret_key(self) -> str:
        """Get secret key as plain string"""
        return self.secret_key.get_secret_value()


# =============================================================================
# Factory Function
# =============================================================================

@lru_cache(maxsize=1)
def get_jwt_config() -> JWTConfig:
    """Get JWT configuration singleton (cached)."""
    config = JWTConfig()
    config.validate_config()
    return config


def reset_jwt_config() -> None:
    """Reset config singleton (for testing)."""
    get_jwt_config.cache_clear()
