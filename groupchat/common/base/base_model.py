# =============================================================================
# File: groupchat/common/base/base_model.py
# Description: Base Pydantic model for all domain events
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Final

from pydantic import BaseModel, ConfigDict, Field

_DEFAULT_DOMAIN_EVENT_VERSION: Final[int] = 1


class BaseEvent(BaseModel):
    """
    Base Pydantic model for all domain events.
    Ensures common metadata fields are present in every event.
    """
    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: str  # Overridden by Literal in specific event types
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = Field(default=_DEFAULT_DOMAIN_EVENT_VERSION, description="Version of this event model's schema")

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
        extra='allow'
    )

    def to_dict_for_bus(self) -> Dict[str, Any]:
        """Serializes the event to a JSON-compatible dictionary for the pub/sub bus."""
        return self.model_dump(mode='json', by_alias=True)
