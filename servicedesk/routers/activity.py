"""Activity feed route."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.team import Team
from ..schemas.activity import ActivityFeedPage
from ..services import activity_svc
from ..services.activity_display import build_feed_item
from ..tenant.deps import get_current_team

router = APIRouter(tags=["activity"])


@router.get("/teams/{team_id}/activity", response_model=ActivityFeedPage)
async def activity_feed(
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None, ge=1),
    entity_type: str | None = None,
    entity_id: int | None = None,
):
    per_page = min(per_page or settings.activity_feed_page_size, settings.activity_feed_max_page_size)
    rows, total = await activity_svc.list_activities(
        db,
        team_id=team.id,
        entity_type=entity_type,
        entity_id=entity_id,
        offset=(page - 1) * per_page,
        limit=per_page,
    )
    return ActivityFeedPage(
        items=[build_feed_item(entry, user_name) for entry, user_name in rows],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=max(1, (total + per_page - 1) // per_page),
    )
