# =============================================================================
# File: groupchat/config/sync_config.py
# Description: Client cache synchronizer configuration
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from groupchat.common.base.base_config import BaseConfig, BASE_CONFIG_DICT
from groupchat.config.reliability_config import RetryConfig, ReliabilityConfigs


class SyncConfig(BaseConfig):
    """
    Client-side synchronizer configuration (SYNC_ prefix).

    Nested retry values use the __ delimiter, e.g. SYNC_RETRY__MAX_ATTEMPTS=5.
    """

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='SYNC_',
    )

    mutation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-attempt timeout for a mutation round trip"
    )

    retry: RetryConfig = Field(
        default_factory=ReliabilityConfigs.mutation_retry,
        description="Retry policy for transport failures"
    )

    dedupe_window_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Max createdAt distance when matching a push to a pending placeholder"
    )


@lru_cache(maxsize=1)
def get_sync_config() -> SyncConfig:
    """Get sync configuration singleton (cached)."""
    return SyncConfig()


def reset_sync_config() -> None:
    """Reset config singleton (for testing)."""
    get_sync_config.cache_clear()
