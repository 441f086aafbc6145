"""Service ticket and ticket comment models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import (
    Base, IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin,
)


class ServiceTicket(IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin, Base):
    """Tickets carry no created_by/updated_by/deleted_by columns."""

    __tablename__ = "service_tickets"

    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category: Mapped[str | None] = mapped_column(String(100), default=None)
    priority: Mapped[str] = mapped_column(String(50), default="medium")
    status: Mapped[str] = mapped_column(String(50), default="open")
    client_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("clients.id"), default=None, index=True
    )
    assigned_to: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), default=None
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    def __repr__(self) -> str:
        return f"<ServiceTicket {self.title!r} {self.status}>"


class TicketComment(
    IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin, Base,
):
    __tablename__ = "ticket_comments"

    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("service_tickets.id"), index=True
    )
    content: Mapped[str] = mapped_column(Text)
    attachments: Mapped[list | None] = mapped_column(JSON, default=None)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<TicketComment ticket={self.ticket_id}>"
