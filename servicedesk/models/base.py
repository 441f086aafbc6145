"""Base model classes and mixins for service desk models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class IntIdMixin:
    """Adds a serial integer primary key."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """Adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class SoftDeleteMixin:
    """Adds deleted_at; a non-null value hides the row from listings."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, index=True
    )


class TenantMixin:
    """Adds team_id FK for multi-tenant isolation."""

    team_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        index=True,
    )


# Audit columns are optional per table; tables picked them up at different
# times, so each one mixes in only what its deployed schema actually has.


class CreatedByMixin:
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), default=None
    )


class UpdatedByMixin:
    updated_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), default=None
    )


class DeletedByMixin:
    deleted_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), default=None
    )
