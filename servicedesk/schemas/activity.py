"""Activity feed schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ActivityFeedItem(BaseModel):
    id: int
    action: str
    action_label: str
    message: str
    timestamp: datetime
    relative_time: str
    ip_address: str | None = None
    user_name: str | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    entity_name: str | None = None
    details: dict[str, Any] | None = None
    server_action: str | None = None
    duration_ms: int | None = None


class ActivityFeedPage(BaseModel):
    items: list[ActivityFeedItem]
    total: int
    page: int
    per_page: int
    total_pages: int
