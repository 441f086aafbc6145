"""Time entry and expense routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.billing import Expense, TimeEntry
from ..models.team import Team
from ..models.user import User
from ..schemas.billing import (
    ExpenseCreate, ExpenseResponse, ExpenseUpdate,
    TimeEntryCreate, TimeEntryResponse, TimeEntryUpdate,
)
from ..services import audit_svc
from ..services.activity_svc import EntityType
from ..services.audit_svc import ActivityContext
from ..tenant.deps import check_team_refs, get_activity_context, get_current_team, get_current_user

router = APIRouter(prefix="/teams/{team_id}", tags=["billing"])


@router.get("/time-entries/", response_model=list[TimeEntryResponse])
async def time_entry_list(
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
    client_id: int | None = None,
    ticket_id: int | None = None,
    page: int = 1,
):
    per_page = 50
    entries, _ = await audit_svc.list_active(
        db, TimeEntry, team.id,
        offset=(max(page, 1) - 1) * per_page, limit=per_page,
        client_id=client_id, ticket_id=ticket_id,
    )
    return entries


@router.post("/time-entries/", response_model=TimeEntryResponse, status_code=201)
async def time_entry_create(
    data: TimeEntryCreate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    payload = data.model_dump()
    payload["user_id"] = payload["user_id"] or user.id
    await check_team_refs(
        db, team.id,
        client_id=payload["client_id"], ticket_id=payload["ticket_id"], user_id=payload["user_id"],
    )
    return await audit_svc.create_with_audit(
        db, TimeEntry, payload, user.id, team.id, EntityType.TIME_ENTRY, context=context
    )


@router.patch("/time-entries/{entry_id}", response_model=TimeEntryResponse)
async def time_entry_update(
    entry_id: int,
    data: TimeEntryUpdate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    patch = data.model_dump(exclude_unset=True)
    await check_team_refs(db, team.id, ticket_id=patch.get("ticket_id"))
    return await audit_svc.update_with_audit(
        db, TimeEntry, entry_id, patch,
        user.id, team.id, EntityType.TIME_ENTRY, context=context,
    )


@router.delete("/time-entries/{entry_id}", response_model=TimeEntryResponse)
async def time_entry_delete(
    entry_id: int,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.soft_delete_with_audit(
        db, TimeEntry, entry_id, user.id, team.id, EntityType.TIME_ENTRY, context=context
    )


@router.get("/expenses/", response_model=list[ExpenseResponse])
async def expense_list(
    team: Team = Depends(get_current_team),
    db: AsyncSession = Depends(get_db),
    client_id: int | None = None,
    ticket_id: int | None = None,
    page: int = 1,
):
    per_page = 50
    expenses, _ = await audit_svc.list_active(
        db, Expense, team.id,
        offset=(max(page, 1) - 1) * per_page, limit=per_page,
        client_id=client_id, ticket_id=ticket_id,
    )
    return expenses


@router.post("/expenses/", response_model=ExpenseResponse, status_code=201)
async def expense_create(
    data: ExpenseCreate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    payload = data.model_dump()
    payload["user_id"] = payload["user_id"] or user.id
    await check_team_refs(
        db, team.id,
        client_id=payload["client_id"], ticket_id=payload["ticket_id"], user_id=payload["user_id"],
    )
    return await audit_svc.create_with_audit(
        db, Expense, payload, user.id, team.id, EntityType.EXPENSE, context=context
    )


@router.patch("/expenses/{expense_id}", response_model=ExpenseResponse)
async def expense_update(
    expense_id: int,
    data: ExpenseUpdate,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    patch = data.model_dump(exclude_unset=True)
    await check_team_refs(db, team.id, ticket_id=patch.get("ticket_id"))
    return await audit_svc.update_with_audit(
        db, Expense, expense_id, patch,
        user.id, team.id, EntityType.EXPENSE, context=context,
    )


@router.delete("/expenses/{expense_id}", response_model=ExpenseResponse)
async def expense_delete(
    expense_id: int,
    team: Team = Depends(get_current_team),
    user: User = Depends(get_current_user),
    context: ActivityContext = Depends(get_activity_context),
    db: AsyncSession = Depends(get_db),
):
    return await audit_svc.soft_delete_with_audit(
        db, Expense, expense_id, user.id, team.id, EntityType.EXPENSE, context=context
    )
