# =============================================================================
# File: groupchat/config/reliability_config.py
# Description: Retry configuration for client mutations and Redis fan-out
# =============================================================================

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict


class RetryConfig(BaseModel):
    """Retry configuration."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_attempts: int = 3
    initial_delay_ms: int = 100
    max_delay_ms: int = 10000
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_type: str = "full"
    retry_condition: Optional[Callable[[Exception], bool]] = None


class ReliabilityConfigs:
    """Pre-configured retry settings for different call sites"""

    @staticmethod
    def mutation_retry() -> RetryConfig:
        return RetryConfig(
            max_attempts=3,
            initial_delay_ms=200,
            max_delay_ms=2000,
            backoff_factor=2.0,
            jitter=True,
            jitter_type="full",
        )

    @staticmethod
    def redis_publish_retry() -> RetryConfig:
        return RetryConfig(
            max_attempts=2,
            initial_delay_ms=50,
            max_delay_ms=500,
            backoff_factor=2.0,
            jitter=True,
            jitter_type="equal",
        )
