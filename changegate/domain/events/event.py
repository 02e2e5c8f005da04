"""Change event payload model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.models.approval_record import utcnow


class ChangeEvent(BaseModel):
    """Immutable event payload for change notifications."""

    model_config = {"frozen": True}

    event_type: ChangeEventType
    change_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    actor: str | None = None
    status: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
