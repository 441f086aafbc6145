"""Time entry and expense schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class TimeEntryCreate(BaseModel):
    client_id: int
    ticket_id: int | None = None
    user_id: int | None = None  # defaults to the acting user
    description: str = Field(min_length=1)
    start_time: datetime
    duration: int = Field(gt=0)
    billable: bool = True
    billable_rate: str | None = None


class TimeEntryUpdate(BaseModel):
    ticket_id: int | None = None
    description: str | None = Field(default=None, min_length=1)
    start_time: datetime | None = None
    duration: int | None = Field(default=None, gt=0)
    billable: bool | None = None
    billed: bool | None = None
    billable_rate: str | None = None


class TimeEntryResponse(TimeEntryCreate):
    id: int
    team_id: int
    user_id: int
    billed: bool = False
    created_by: int | None = None
    updated_by: int | None = None
    deleted_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class ExpenseCreate(BaseModel):
    client_id: int
    ticket_id: int | None = None
    user_id: int | None = None
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    description: str = Field(min_length=1)
    category: str | None = None
    billable: bool = True
    notes: str | None = None
    receipt_url: str | None = None


class ExpenseUpdate(BaseModel):
    ticket_id: int | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    description: str | None = Field(default=None, min_length=1)
    category: str | None = None
    billable: bool | None = None
    billed: bool | None = None
    notes: str | None = None
    receipt_url: str | None = None


class ExpenseResponse(ExpenseCreate):
    id: int
    team_id: int
    user_id: int
    billed: bool = False
    created_by: int | None = None
    updated_by: int | None = None
    deleted_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}
