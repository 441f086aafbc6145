"""FastAPI dependencies for acting-user and tenant resolution."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Path, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.client import Client
from ..models.team import Team, TeamMember
from ..models.ticket import ServiceTicket
from ..models.user import User
from ..services import audit_svc
from ..services.audit_svc import ActivityContext


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the acting user from the user header. Raises 401 if missing/unknown."""
    raw = request.headers.get(settings.user_header, "").strip()
    if not raw.isdigit():
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = await db.get(User, int(raw))
    if not user or user.deleted_at is not None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_team(
    team_id: int = Path(..., description="Team id"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Team:
    """Resolve the team and check the acting user belongs to it."""
    team = await db.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail=f"Team {team_id} not found")

    stmt = select(TeamMember.id).where(
        TeamMember.team_id == team_id, TeamMember.user_id == user.id
    )
    if (await db.execute(stmt)).scalar_one_or_none() is None:
        raise HTTPException(status_code=403, detail="Not a member of this team")
    return team


def get_activity_context(request: Request) -> ActivityContext:
    endpoint = request.scope.get("endpoint")
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() or (request.client.host if request.client else None)
    return ActivityContext(
        ip_address=ip[:45] if ip else None,
        user_agent=(request.headers.get("user-agent") or None),
        route=f"{request.method} {request.url.path}"[:255],
        server_action=getattr(endpoint, "__name__", None),
    )


async def check_team_refs(
    db: AsyncSession,
    team_id: int,
    *,
    client_id: int | None = None,
    ticket_id: int | None = None,
    user_id: int | None = None,
) -> None:
    """404 unless each given reference belongs to the team.

    Clients and tickets must be active rows of the team; users must be members.
    """
    if client_id is not None and not await audit_svc.get_active(db, Client, client_id, team_id):
        raise HTTPException(status_code=404, detail=f"client not found with ID {client_id}")
    if ticket_id is not None and not await audit_svc.get_active(db, ServiceTicket, ticket_id, team_id):
        raise HTTPException(status_code=404, detail=f"ticket not found with ID {ticket_id}")
    if user_id is not None:
        stmt = select(TeamMember.id).where(
            TeamMember.team_id == team_id, TeamMember.user_id == user_id
        )
        if (await db.execute(stmt)).scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail=f"user not found with ID {user_id}")
