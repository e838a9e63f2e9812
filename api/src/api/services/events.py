"""Usage event recording."""

from __future__ import annotations

import uuid
from typing import Any

from bragfeed.models import Event
from sqlalchemy.ext.asyncio import AsyncSession

API_RESPONSE_EVENT = "api_response"


def record_event(
    db: AsyncSession,
    event: str,
    user_id: uuid.UUID | None,
    metadata: dict[str, Any] | None = None,
) -> Event:
    """Queue an event row on the request session; committed with the request."""
    row = Event(event=event, user_id=user_id, metadata_json=dict(metadata or {}))
    db.add(row)
    return row
