"""Ticket and comment schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Priority = Literal["low", "medium", "high", "urgent"]
Status = Literal["open", "in_progress", "waiting", "resolved", "closed"]


class TicketCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    category: str | None = None
    priority: Priority = "medium"
    status: Status = "open"
    client_id: int | None = None
    assigned_to: int | None = None
    due_date: datetime | None = None


class TicketUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: str | None = None
    priority: Priority | None = None
    status: Status | None = None
    client_id: int | None = None
    assigned_to: int | None = None
    due_date: datetime | None = None
    closed_at: datetime | None = None


class TicketResponse(TicketCreate):
    id: int
    team_id: int
    closed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    attachments: list | None = None
    is_internal: bool = False


class CommentUpdate(BaseModel):
    content: str | None = Field(default=None, min_length=1)
    attachments: list | None = None
    is_internal: bool | None = None


class CommentResponse(CommentCreate):
    id: int
    team_id: int
    ticket_id: int
    created_by: int | None = None
    updated_by: int | None = None
    deleted_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}
