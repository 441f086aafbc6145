"""Activity service - classify mutations and write the audit trail."""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.activity import ActivityLog, ActivityType
from ..models.user import User

log = logging.getLogger(__name__)


class EntityType(str, enum.Enum):
    CLIENT = "client"
    TICKET = "ticket"
    TIME_ENTRY = "timeentry"
    EXPENSE = "expense"
    COMMENT = "comment"
    INVOICE = "invoice"


class OperationKind(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


_CLASSIFICATION: dict[tuple[str, OperationKind], ActivityType] = {
    ("client", OperationKind.CREATE): ActivityType.CLIENT_CREATED,
    ("client", OperationKind.UPDATE): ActivityType.CLIENT_UPDATED,
    ("client", OperationKind.DELETE): ActivityType.CLIENT_DELETED,
    ("ticket", OperationKind.CREATE): ActivityType.TICKET_CREATED,
    ("ticket", OperationKind.UPDATE): ActivityType.TICKET_UPDATED,
    # Removing a ticket closes it as far as the desk is concerned
    ("ticket", OperationKind.DELETE): ActivityType.TICKET_CLOSED,
    ("timeentry", OperationKind.CREATE): ActivityType.TIME_ENTRY_CREATED,
    ("timeentry", OperationKind.UPDATE): ActivityType.TIME_ENTRY_UPDATED,
    ("timeentry", OperationKind.DELETE): ActivityType.TIME_ENTRY_DELETED,
    ("expense", OperationKind.CREATE): ActivityType.EXPENSE_CREATED,
    ("expense", OperationKind.UPDATE): ActivityType.EXPENSE_UPDATED,
    ("expense", OperationKind.DELETE): ActivityType.EXPENSE_DELETED,
    ("comment", OperationKind.CREATE): ActivityType.COMMENT_ADDED,
    ("comment", OperationKind.UPDATE): ActivityType.COMMENT_UPDATED,
    ("comment", OperationKind.DELETE): ActivityType.COMMENT_DELETED,
    ("invoice", OperationKind.CREATE): ActivityType.INVOICE_CREATED,
    ("invoice", OperationKind.UPDATE): ActivityType.INVOICE_UPDATED,
    ("invoice", OperationKind.DELETE): ActivityType.INVOICE_VOIDED,
}

# Legacy feed: these deletions were recorded as plain updates
_LEGACY_DELETES: dict[str, ActivityType] = {
    "timeentry": ActivityType.TIME_ENTRY_UPDATED,
    "expense": ActivityType.EXPENSE_UPDATED,
    "comment": ActivityType.COMMENT_UPDATED,
}

# Substring markers, first match wins. Anything unmatched stays uncategorised.
_CATEGORY_MARKERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("SIGN_", "PASSWORD", "ACCOUNT"), "authentication"),
    (("TEAM_", "INVITE"), "team"),
    (("CLIENT_",), "client"),
    (("TICKET_",), "ticket"),
    (("TIME_", "EXPENSE_"), "finance"),
    (("INVOICE_", "SUBSCRIPTION_"), "billing"),
)


def _entity_key(entity_type: str | EntityType) -> str:
    if isinstance(entity_type, EntityType):
        return entity_type.value
    return entity_type.strip().lower().replace("_", "").replace("-", "")


def classify(
    entity_type: str | EntityType,
    kind: str | OperationKind,
    *,
    distinct_deletes: bool | None = None,
) -> ActivityType:
    """Map an entity type tag and operation kind to its activity type.

    Unknown entity types map to ``ENTITY_UPDATED`` rather than failing.
    """
    kind = OperationKind(kind)
    key = _entity_key(entity_type)
    if distinct_deletes is None:
        distinct_deletes = settings.distinct_delete_activity_types
    if kind is OperationKind.DELETE and not distinct_deletes and key in _LEGACY_DELETES:
        return _LEGACY_DELETES[key]
    return _CLASSIFICATION.get((key, kind), ActivityType.ENTITY_UPDATED)


def categorize(activity_type: ActivityType | str) -> str | None:
    value = ActivityType(activity_type).value
    for markers, category in _CATEGORY_MARKERS:
        if any(m in value for m in markers):
            return category
    return None


async def log_activity(
    db: AsyncSession,
    team_id: int | None,
    user_id: int | None,
    activity_type: ActivityType | str,
    *,
    entity_id: int | None = None,
    entity_type: str | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    route: str | None = None,
    status: str = "success",
    action_category: str | None = None,
    server_action: str | None = None,
    duration_ms: int | None = None,
    commit: bool = True,
) -> ActivityLog | None:
    """Append one activity row. Without a team there is no feed to write to,
    so the call does nothing and returns None."""
    if team_id is None:
        return None

    activity_type = ActivityType(activity_type)
    entry = ActivityLog(
        team_id=team_id,
        user_id=user_id,
        action=activity_type.value,
        timestamp=datetime.now(timezone.utc),
        entity_id=entity_id,
        entity_type=entity_type,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        route=route,
        status=status,
        action_category=action_category or categorize(activity_type),
        server_action=server_action,
        duration_ms=duration_ms,
    )
    db.add(entry)
    if commit:
        await db.commit()
        await db.refresh(entry)
    else:
        await db.flush()
    log.debug("Logged %s for team %s (%s #%s)", activity_type.value, team_id, entity_type, entity_id)
    return entry


async def list_activities(
    db: AsyncSession,
    *,
    team_id: int | None,
    user_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[tuple[ActivityLog, str | None]], int]:
    """Newest-first feed rows paired with the acting user's display name.

    Scoped to the team; when the team is unknown, to the user's own rows.
    Returns (rows, total).
    """
    if team_id is None and user_id is None:
        return [], 0

    stmt = select(ActivityLog, User.name, User.email).outerjoin(User, ActivityLog.user_id == User.id)
    if team_id is not None:
        stmt = stmt.where(ActivityLog.team_id == team_id)
    else:
        stmt = stmt.where(ActivityLog.user_id == user_id)
    if entity_type:
        stmt = stmt.where(ActivityLog.entity_type == entity_type)
    if entity_id is not None:
        stmt = stmt.where(ActivityLog.entity_id == entity_id)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).offset(offset).limit(limit)
    result = await db.execute(stmt)
    rows = [(entry, name or email) for entry, name, email in result.all()]
    return rows, total
