"""Service desk models - re-exports all models and Base.metadata."""

from .base import (
    Base, IntIdMixin, TimestampMixin, SoftDeleteMixin, TenantMixin,
    CreatedByMixin, UpdatedByMixin, DeletedByMixin,
)
from .user import User
from .team import Team, TeamMember
from .client import Client
from .ticket import ServiceTicket, TicketComment
from .billing import TimeEntry, Expense
from .activity import ActivityLog, ActivityType

__all__ = [
    "Base",
    "IntIdMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    "TenantMixin",
    "CreatedByMixin",
    "UpdatedByMixin",
    "DeletedByMixin",
    "User",
    "Team",
    "TeamMember",
    "Client",
    "ServiceTicket",
    "TicketComment",
    "TimeEntry",
    "Expense",
    "ActivityLog",
    "ActivityType",
]
