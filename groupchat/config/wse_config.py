# =============================================================================
# File: groupchat/config/wse_config.py
# Description: WebSocket subscription / pub-sub configuration
# =============================================================================

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from groupchat.common.base.base_config import BaseConfig, BASE_CONFIG_DICT


class WSEConfig(BaseConfig):
    """
    WebSocket Event System configuration (WSE_ prefix).

    Usage:
        from groupchat.config.wse_config import get_wse_config

        config = get_wse_config()
        size = config.subscriber_queue_size
    """

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='WSE_',
    )

    # =========================================================================
    # Subscriber Settings
    # =========================================================================

    subscriber_queue_size: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Bounded queue size per subscriber"
    )

    send_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Max wait when a subscriber queue is full"
    )

    # =========================================================================
    # Redis Fan-out
    # =========================================================================

    redis_enabled: bool = Field(
        default=False,
        description="Broadcast events to other instances through Redis Pub/Sub"
    )

    redis_url: SecretStr = Field(
        default=SecretStr("redis://localhost:6379/0"),
        description="Redis connection URL"
    )

    channel_prefix: str = Field(
        default="wse:",
        description="Redis channel prefix for topics"
    )

    instance_id: Optional[str] = Field(
        default=None,
        description="Instance identifier used to drop own echoes (random if unset)"
    )


@lru_cache(maxsize=1)
def get_wse_config() -> WSEConfig:
    """Get WSE configuration singleton (cached)."""
    return WSEConfig()


def reset_wse_config() -> None:
    """Reset config singleton (for testing)."""
    get_wse_config.cache_clear()
