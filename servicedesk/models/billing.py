"""Time entry and expense models - the billable work records."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import (
    Base, IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin,
)


class TimeEntry(
    IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin, Base,
):
    __tablename__ = "time_entries"

    ticket_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("service_tickets.id"), default=None, index=True
    )
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    description: Mapped[str] = mapped_column(Text)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    duration: Mapped[int] = mapped_column(Integer)  # minutes
    billable: Mapped[bool] = mapped_column(Boolean, default=True)
    billed: Mapped[bool] = mapped_column(Boolean, default=False)
    billable_rate: Mapped[str | None] = mapped_column(String(50), default=None)

    def __repr__(self) -> str:
        return f"<TimeEntry {self.duration}m client={self.client_id}>"


class Expense(
    IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin, Base,
):
    __tablename__ = "expenses"

    ticket_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("service_tickets.id"), default=None, index=True
    )
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(100), default=None)
    billable: Mapped[bool] = mapped_column(Boolean, default=True)
    billed: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    receipt_url: Mapped[str | None] = mapped_column(String(255), default=None)

    def __repr__(self) -> str:
        return f"<Expense {self.amount} client={self.client_id}>"
