# =============================================================================
# File: groupchat/config/chat_config.py
# Description: Chat domain limits (page sizes, message and name lengths)
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from groupchat.common.base.base_config import BaseConfig, BASE_CONFIG_DICT


class ChatConfig(BaseConfig):
    """Chat configuration (CHAT_ prefix)"""

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='CHAT_',
    )

    default_page_size: int = Field(
        default=5,
        ge=1,
        description="Page size used when neither first nor last is supplied"
    )

    max_page_size: int = Field(
        default=100,
        ge=1,
        description="Requested page sizes are clamped to this value"
    )

    max_message_length: int = Field(
        default=10000,
        ge=1,
        description="Maximum message text length"
    )

    max_group_name_length: int = Field(
        default=255,
        ge=1,
        description="Maximum group name length"
    )


@lru_cache(maxsize=1)
def get_chat_config() -> ChatConfig:
    """Get chat configuration singleton (cached)."""
    return ChatConfig()


def reset_chat_config() -> None:
    """Reset config singleton (for testing)."""
    get_chat_config.cache_clear()
