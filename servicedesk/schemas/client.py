"""Client schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    contact_name: str = Field(min_length=1)
    email: EmailStr
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    is_active: bool = True


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    contact_name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class ClientResponse(ClientCreate):
    id: int
    team_id: int
    created_by: int | None = None
    updated_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}
