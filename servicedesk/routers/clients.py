"""Client routes - list, create, update, soft delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.client import Client
from ..models.team import Team
from ..models.user import User
from ..schemas.client import ClientCreate, ClientResponse, ClientUpdate
from ..services import audit_svc
from ..services.activity_svc import EntityType
from ..services.audit_svc import ActivityContext
from ..tenant.deps import get_activity_context, get_current_team, get_current_user

router = APIRouter(prefix="/teams/{team_id}/clients", tags=["clients"])


@router.get("/", response_model=list[ClientResponse])
async def client_list(
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
    page: int = 1,
):
    per_page = 50
    clients, _ = await audit_svc.list_active(
        db, Client, team.id, offset=(max(page, 1) - 1) * per_page, limit=per_page
    )
    return clients


@router.post("/", response_model=ClientResponse, status_code=201)
async def client_create(
    data: ClientCreate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.create_with_audit(
        db, Client, data.model_dump(), user.id, team.id, EntityType.CLIENT, context=context
    )


@router.patch("/{client_id}", response_model=ClientResponse)
async def client_update(
    client_id: int,
    data: ClientUpdate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.update_with_audit(
        db, Client, client_id, data.model_dump(exclude_unset=True),
        user.id, team.id, EntityType.CLIENT, context=context,
    )


@router.delete("/{client_id}", response_model=ClientResponse)
async def client_delete(
    client_id: int,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.soft_delete_with_audit(
        db, Client, client_id, user.id, team.id, EntityType.CLIENT, context=context
    )
