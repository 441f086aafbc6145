"""Ticket routes - tickets and their comments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.team import Team
from ..models.ticket import ServiceTicket, TicketComment
from ..models.user import User
from ..schemas.ticket import (
    CommentCreate, CommentResponse, CommentUpdate,
    TicketCreate, TicketResponse, TicketUpdate,
)
from ..services import audit_svc
from ..services.activity_svc import EntityType
from ..services.audit_svc import ActivityContext
from ..tenant.deps import check_team_refs, get_activity_context, get_current_team, get_current_user

router = APIRouter(prefix="/teams/{team_id}/tickets", tags=["tickets"])


async def _ticket_or_404(db: AsyncSession, ticket_id: int, team_id: int) -> ServiceTicket:
    ticket = await audit_svc.get_active(db, ServiceTicket, ticket_id, team_id)
    if not ticket:
        raise HTTPException(status_code=404, detail=f"ticket not found with ID {ticket_id}")
    return ticket


async def _comment_or_404(
    db: AsyncSession, comment_id: int, ticket_id: int, team_id: int
) -> TicketComment:
    comment = await audit_svc.get_active(db, TicketComment, comment_id, team_id, ticket_id=ticket_id)
    if not comment:
        raise HTTPException(status_code=404, detail=f"comment not found with ID {comment_id}")
    return comment


@router.get("/", response_model=list[TicketResponse])
async def ticket_list(
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
    status: str | None = None,
    client_id: int | None = None,
    page: int = 1,
):
    per_page = 50
    tickets, _ = await audit_svc.list_active(
        db, ServiceTicket, team.id,
        offset=(max(page, 1) - 1) * per_page, limit=per_page,
        status=status, client_id=client_id,
    )
    return tickets


@router.post("/", response_model=TicketResponse, status_code=201)
async def ticket_create(
    data: TicketCreate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    payload = data.model_dump()
    await check_team_refs(
        db, team.id, client_id=payload["client_id"], user_id=payload["assigned_to"]
    )
    return await audit_svc.create_with_audit(
        db, ServiceTicket, payload, user.id, team.id, EntityType.TICKET, context=context
    )


@router.patch("/{ticket_id}", response_model=TicketResponse)
async def ticket_update(
    ticket_id: int,
    data: TicketUpdate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    patch = data.model_dump(exclude_unset=True)
    await check_team_refs(
        db, team.id, client_id=patch.get("client_id"), user_id=patch.get("assigned_to")
    )
    return await audit_svc.update_with_audit(
        db, ServiceTicket, ticket_id, patch,
        user.id, team.id, EntityType.TICKET, context=context,
    )


@router.delete("/{ticket_id}", response_model=TicketResponse)
async def ticket_delete(
    ticket_id: int,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.soft_delete_with_audit(
        db, ServiceTicket, ticket_id, user.id, team.id, EntityType.TICKET, context=context
    )


# Comments


@router.get("/{ticket_id}/comments", response_model=list[CommentResponse])
async def comment_list(
    ticket_id: int,
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
):
    await _ticket_or_404(db, ticket_id, team.id)
    comments, _ = await audit_svc.list_active(
        db, TicketComment, team.id, limit=200, ticket_id=ticket_id
    )
    return comments


@router.post("/{ticket_id}/comments", response_model=CommentResponse, status_code=201)
async def comment_create(
    ticket_id: int,
    data: CommentCreate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    await _ticket_or_404(db, ticket_id, team.id)
    return await audit_svc.create_with_audit(
        db, TicketComment, {**data.model_dump(), "ticket_id": ticket_id},
        user.id, team.id, EntityType.COMMENT, context=context,
    )


@router.patch("/{ticket_id}/comments/{comment_id}", response_model=CommentResponse)
async def comment_update(
    ticket_id: int,
    comment_id: int,
    data: CommentUpdate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    await _ticket_or_404(db, ticket_id, team.id)
    await _comment_or_404(db, comment_id, ticket_id, team.id)
    return await audit_svc.update_with_audit(
        db, TicketComment, comment_id, data.model_dump(exclude_unset=True),
        user.id, team.id, EntityType.COMMENT, context=context,
    )


@router.delete("/{ticket_id}/comments/{comment_id}", response_model=CommentResponse)
async def comment_delete(
    ticket_id: int,
    comment_id: int,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    await _ticket_or_404(db, ticket_id, team.id)
    await _comment_or_404(db, comment_id, ticket_id, team.id)
    return await audit_svc.soft_delete_with_audit(
        db, TicketComment, comment_id, user.id, team.id, EntityType.COMMENT, context=context
    )
