"""Client model."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import (
    Base, IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin,
)


class Client(
    IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, Base,
):
    """Clients never got a deleted_by column."""

    __tablename__ = "clients"
    __table_args__ = (
        Index("ix_clients_team_email", "team_id", "email"),
    )

    name: Mapped[str] = mapped_column(String(255))
    contact_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    address: Mapped[str | None] = mapped_column(Text, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Client {self.name!r}>"
