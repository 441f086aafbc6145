"""Activity log model - append-only audit trail, plus the activity taxonomy."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IntIdMixin


class ActivityType(str, enum.Enum):
    # Authentication
    SIGN_UP = "SIGN_UP"
    SIGN_IN = "SIGN_IN"
    SIGN_OUT = "SIGN_OUT"
    UPDATE_PASSWORD = "UPDATE_PASSWORD"
    DELETE_ACCOUNT = "DELETE_ACCOUNT"
    UPDATE_ACCOUNT = "UPDATE_ACCOUNT"

    # Team
    CREATE_TEAM = "CREATE_TEAM"
    TEAM_CREATED = "TEAM_CREATED"
    TEAM_UPDATED = "TEAM_UPDATED"
    INVITE_TEAM_MEMBER = "INVITE_TEAM_MEMBER"
    REMOVE_TEAM_MEMBER = "REMOVE_TEAM_MEMBER"
    TEAM_INVITE_ACCEPTED = "TEAM_INVITE_ACCEPTED"
    TEAM_INVITE_REJECTED = "TEAM_INVITE_REJECTED"
    USER_INVITED = "USER_INVITED"
    USER_SIGNED_UP = "USER_SIGNED_UP"
    USER_JOINED_TEAM = "USER_JOINED_TEAM"
    ACCEPT_INVITATION = "ACCEPT_INVITATION"

    # Tickets
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    TICKET_DELETED = "TICKET_DELETED"
    TICKET_CLOSED = "TICKET_CLOSED"
    TICKET_REOPENED = "TICKET_REOPENED"
    TICKET_STATUS_UPDATED = "TICKET_STATUS_UPDATED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"

    # Comments
    COMMENT_ADDED = "COMMENT_ADDED"
    COMMENT_UPDATED = "COMMENT_UPDATED"
    COMMENT_DELETED = "COMMENT_DELETED"

    # Time tracking
    TIME_ENTRY_CREATED = "TIME_ENTRY_CREATED"
    TIME_ENTRY_UPDATED = "TIME_ENTRY_UPDATED"
    TIME_ENTRY_DELETED = "TIME_ENTRY_DELETED"

    # Expenses
    EXPENSE_CREATED = "EXPENSE_CREATED"
    EXPENSE_UPDATED = "EXPENSE_UPDATED"
    EXPENSE_DELETED = "EXPENSE_DELETED"

    # Clients
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"
    CLIENT_DELETED = "CLIENT_DELETED"

    # Subscriptions
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_UPDATED = "SUBSCRIPTION_UPDATED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"

    # Invoices
    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_UPDATED = "INVOICE_UPDATED"
    INVOICE_SENT = "INVOICE_SENT"
    INVOICE_PAID = "INVOICE_PAID"
    INVOICE_VOIDED = "INVOICE_VOIDED"
    INVOICE_OVERDUE = "INVOICE_OVERDUE"

    # Mutation of an entity type the classifier does not know
    ENTITY_UPDATED = "ENTITY_UPDATED"


class ActivityLog(IntIdMixin, Base):
    __tablename__ = "activity_logs"

    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), default=None, index=True
    )
    action: Mapped[str] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), default=None)
    entity_id: Mapped[int | None] = mapped_column(Integer, default=None)
    entity_type: Mapped[str | None] = mapped_column(String(50), default=None)  # client, ticket, ...
    details: Mapped[dict | None] = mapped_column(JSON, default=None)  # created | before/after | deleted

    action_category: Mapped[str | None] = mapped_column(String(50), default=None)
    status: Mapped[str] = mapped_column(String(20), default="success")
    server_action: Mapped[str | None] = mapped_column(String(100), default=None)
    duration_ms: Mapped[int | None] = mapped_column(Integer, default=None)
    user_agent: Mapped[str | None] = mapped_column(String(512), default=None)
    route: Mapped[str | None] = mapped_column(String(255), default=None)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} {self.entity_type}#{self.entity_id}>"
