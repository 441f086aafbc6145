"""Human-readable rendering of activity rows for the feed."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..models.activity import ActivityLog, ActivityType
from ..schemas.activity import ActivityFeedItem

ACTION_LABELS: dict[ActivityType, str] = {
    ActivityType.SIGN_UP: "You signed up",
    ActivityType.SIGN_IN: "You signed in",
    ActivityType.SIGN_OUT: "You signed out",
    ActivityType.UPDATE_PASSWORD: "You changed your password",
    ActivityType.DELETE_ACCOUNT: "You deleted your account",
    ActivityType.UPDATE_ACCOUNT: "You updated your account",
    ActivityType.CREATE_TEAM: "You created a new team",
    ActivityType.REMOVE_TEAM_MEMBER: "You removed a team member",
    ActivityType.INVITE_TEAM_MEMBER: "You invited a team member",
    ActivityType.ACCEPT_INVITATION: "You accepted an invitation",
    ActivityType.CLIENT_CREATED: "You created a new client",
    ActivityType.CLIENT_UPDATED: "You updated a client",
    ActivityType.CLIENT_DELETED: "You deleted a client",
    ActivityType.TICKET_CREATED: "You created a new ticket",
    ActivityType.TICKET_UPDATED: "You updated a ticket",
    ActivityType.TICKET_DELETED: "You deleted a ticket",
    ActivityType.TICKET_CLOSED: "You closed a ticket",
    ActivityType.TICKET_REOPENED: "You reopened a ticket",
    ActivityType.TICKET_STATUS_UPDATED: "Ticket status was updated",
    ActivityType.TICKET_ASSIGNED: "Ticket was assigned",
    ActivityType.TIME_ENTRY_CREATED: "You created a time entry",
    ActivityType.TIME_ENTRY_UPDATED: "Time entry was updated",
    ActivityType.TIME_ENTRY_DELETED: "Time entry was deleted",
    ActivityType.EXPENSE_CREATED: "You created an expense",
    ActivityType.EXPENSE_UPDATED: "Expense was updated",
    ActivityType.EXPENSE_DELETED: "Expense was deleted",
    ActivityType.COMMENT_ADDED: "Comment was added",
    ActivityType.COMMENT_UPDATED: "Comment was updated",
    ActivityType.COMMENT_DELETED: "Comment was deleted",
    ActivityType.TEAM_CREATED: "Team was created",
    ActivityType.TEAM_UPDATED: "Team was updated",
    ActivityType.TEAM_INVITE_ACCEPTED: "User accepted invitation",
    ActivityType.TEAM_INVITE_REJECTED: "User declined invitation",
    ActivityType.USER_INVITED: "User was invited",
    ActivityType.USER_SIGNED_UP: "New user signed up",
    ActivityType.USER_JOINED_TEAM: "User joined the team",
    ActivityType.SUBSCRIPTION_CREATED: "Subscription was started",
    ActivityType.SUBSCRIPTION_UPDATED: "Subscription was changed",
    ActivityType.SUBSCRIPTION_CANCELLED: "Subscription was cancelled",
    ActivityType.INVOICE_CREATED: "You created an invoice",
    ActivityType.INVOICE_UPDATED: "Invoice was updated",
    ActivityType.INVOICE_SENT: "Invoice was sent",
    ActivityType.INVOICE_PAID: "Invoice was paid",
    ActivityType.INVOICE_VOIDED: "Invoice was voided",
    ActivityType.INVOICE_OVERDUE: "Invoice is overdue",
    ActivityType.ENTITY_UPDATED: "A record was updated",
}

# Bookkeeping columns that change on every update and say nothing to a reader
IGNORED_CHANGES = frozenset({"updated_at", "updated_by"})

_NAME_KEYS = ("name", "title")


def format_action(action: ActivityType | str) -> str:
    try:
        return ACTION_LABELS[ActivityType(action)]
    except (KeyError, ValueError):
        return "Unknown action occurred"


def changed_fields(before: dict[str, Any], after: dict[str, Any]) -> list[str]:
    """Keys of ``after`` whose value differs from ``before``, in ``after`` order."""
    return [
        key for key, value in after.items()
        if key not in IGNORED_CHANGES and before.get(key) != value
    ]


def _name_of(snapshot: Any) -> str | None:
    if not isinstance(snapshot, dict):
        return None
    for key in _NAME_KEYS:
        if snapshot.get(key):
            return str(snapshot[key])
    return None


def entity_name(details: dict[str, Any] | None) -> str | None:
    if not details:
        return None
    for key in ("created", "deleted", "after"):
        name = _name_of(details.get(key))
        if name:
            return name
    return None


def summarize_details(details: dict[str, Any] | None) -> str:
    """``: "Acme"`` for creates/deletes, ``: changed status`` for updates."""
    if not details:
        return ""
    for key in ("created", "deleted"):
        if key in details:
            name = _name_of(details[key])
            return f': "{name}"' if name else ""
    before, after = details.get("before"), details.get("after")
    if isinstance(before, dict) and isinstance(after, dict):
        changes = changed_fields(before, after)
        if changes:
            return f": changed {', '.join(changes)}"
    return ""


def entity_label(entity_type: str | None, entity_id: int | None, name: str | None = None) -> str:
    if not entity_type or not entity_id:
        return ""
    return f" - {name}" if name else f" - {entity_type} #{entity_id}"


def relative_time(ts: datetime, now: datetime | None = None) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - ts).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 604800:
        return f"{seconds // 86400} days ago"
    return ts.date().isoformat()


def build_feed_item(
    entry: ActivityLog, user_name: str | None, now: datetime | None = None
) -> ActivityFeedItem:
    name = entity_name(entry.details)
    sentence = format_action(entry.action)
    sentence += entity_label(entry.entity_type, entry.entity_id, name)
    sentence += summarize_details(entry.details)
    if entry.ip_address:
        sentence += f" from IP {entry.ip_address}"
    return ActivityFeedItem(
        id=entry.id,
        action=entry.action,
        action_label=format_action(entry.action),
        message=sentence,
        timestamp=entry.timestamp,
        relative_time=relative_time(entry.timestamp, now),
        ip_address=entry.ip_address,
        user_name=user_name,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        entity_name=name,
        details=entry.details,
        server_action=entry.server_action,
        duration_ms=entry.duration_ms,
    )
