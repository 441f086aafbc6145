"""Test the audit-wrapped create/update/soft-delete operations."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.models.activity import ActivityLog, ActivityType
from servicedesk.models.billing import Expense, TimeEntry
from servicedesk.models.client import Client
from servicedesk.models.team import Team
from servicedesk.models.ticket import ServiceTicket, TicketComment
from servicedesk.models.user import User
from servicedesk.services import activity_svc, audit_svc
from servicedesk.services.activity_svc import EntityType
from servicedesk.services.audit_svc import (
    ActivityContext, EntityNotFound, MutationFailed, UnknownColumn, entity_snapshot,
)
from servicedesk.services.schema_svc import AuditCapabilities

ACME = {"name": "Acme", "contact_name": "Jane", "email": "jane@acme.io"}


async def _logs(db: AsyncSession) -> list[ActivityLog]:
    result = await db.execute(select(ActivityLog).order_by(ActivityLog.id))
    return list(result.scalars().all())


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar()


async def _ticket(db: AsyncSession, team: Team, user: User, **extra) -> ServiceTicket:
    return await audit_svc.create_with_audit(
        db, ServiceTicket, {"title": "Printer jammed", **extra}, user.id, team.id, EntityType.TICKET
    )


# Create


@pytest.mark.asyncio
async def test_create_client_scenario(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT
    )
    assert client.id is not None
    assert client.team_id == team.id
    assert client.created_by == user.id
    assert client.updated_by == user.id

    logs = await _logs(db)
    assert len(logs) == 1
    entry = logs[0]
    assert entry.action == ActivityType.CLIENT_CREATED.value
    assert entry.team_id == team.id
    assert entry.user_id == user.id
    assert entry.entity_type == "client"
    assert entry.entity_id == client.id
    assert entry.action_category == "client"
    assert entry.details["created"]["name"] == "Acme"


@pytest.mark.asyncio
async def test_create_logs_snapshot_of_returned_entity(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT
    )
    entry = (await _logs(db))[0]
    assert entry.details == {"created": entity_snapshot(client)}


@pytest.mark.asyncio
async def test_create_skips_missing_audit_columns(db: AsyncSession, team: Team, user: User):
    ticket = await _ticket(db, team, user)
    assert ticket.id is not None
    assert ticket.status == "open"

    created = (await _logs(db))[0].details["created"]
    assert "updated_by" not in created
    assert "created_by" not in created
    assert created["title"] == "Printer jammed"


@pytest.mark.asyncio
async def test_create_ignores_managed_columns(db: AsyncSession, team: Team, other_team: Team, user: User):
    data = {**ACME, "id": 999, "team_id": other_team.id, "created_by": 12345}
    client = await audit_svc.create_with_audit(
        db, Client, data, user.id, team.id, EntityType.CLIENT
    )
    assert client.id != 999
    assert client.team_id == team.id
    assert client.created_by == user.id


@pytest.mark.asyncio
async def test_create_rejects_unknown_column(db: AsyncSession, team: Team, user: User):
    with pytest.raises(UnknownColumn, match="colour"):
        await audit_svc.create_with_audit(
            db, Client, {**ACME, "colour": "red"}, user.id, team.id, EntityType.CLIENT
        )
    assert await _count(db, Client) == 0
    assert await _logs(db) == []


@pytest.mark.asyncio
async def test_create_failure_writes_no_log(db: AsyncSession, team: Team, user: User):
    # contact_name is NOT NULL
    with pytest.raises(MutationFailed):
        await audit_svc.create_with_audit(
            db, Client, {"name": "Acme", "email": "jane@acme.io"}, user.id, team.id, EntityType.CLIENT
        )
    assert await _logs(db) == []


@pytest.mark.asyncio
async def test_create_records_request_context(db: AsyncSession, team: Team, user: User):
    context = ActivityContext(ip_address="203.0.113.9", user_agent="curl/8", route="POST /clients")
    await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT, context=context
    )
    entry = (await _logs(db))[0]
    assert entry.ip_address == "203.0.113.9"
    assert entry.user_agent == "curl/8"
    assert entry.route == "POST /clients"
    assert entry.status == "success"


@pytest.mark.asyncio
async def test_capabilities_skip_probing(db: AsyncSession, team: Team, user: User, monkeypatch):
    async def _no_probe(*args, **kwargs):
        raise AssertionError("column probe should not run")

    monkeypatch.setattr(audit_svc, "column_exists", _no_probe)
    client = await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT,
        capabilities=AuditCapabilities(created_by=True, updated_by=False),
    )
    assert client.created_by == user.id
    assert client.updated_by is None


@pytest.mark.asyncio
async def test_create_serializes_decimals_and_datetimes(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    expense = await audit_svc.create_with_audit(
        db, Expense,
        {"client_id": client.id, "user_id": user.id, "amount": Decimal("42.50"), "description": "Toner"},
        user.id, team.id, EntityType.EXPENSE,
    )
    entry = (await _logs(db))[-1]
    assert entry.action == ActivityType.EXPENSE_CREATED.value
    assert entry.entity_id == expense.id
    assert entry.details["created"]["amount"] == "42.50"
    assert isinstance(entry.details["created"]["created_at"], str)


# Update


@pytest.mark.asyncio
async def test_update_before_after(db: AsyncSession, team: Team, user: User):
    ticket = await _ticket(db, team, user)
    updated = await audit_svc.update_with_audit(
        db, ServiceTicket, ticket.id, {"status": "closed"}, user.id, team.id, EntityType.TICKET
    )
    assert updated.status == "closed"

    entry = (await _logs(db))[-1]
    assert entry.action == ActivityType.TICKET_UPDATED.value
    assert entry.details["before"]["status"] == "open"
    assert entry.details["after"]["status"] == "closed"
    assert entry.details["before"]["title"] == entry.details["after"]["title"]


@pytest.mark.asyncio
async def test_update_sets_updated_by_where_supported(db: AsyncSession, team: Team, user: User, other_user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    updated = await audit_svc.update_with_audit(
        db, Client, client.id, {"phone": "555-0100"}, other_user.id, team.id, EntityType.CLIENT
    )
    assert updated.updated_by == other_user.id
    assert updated.created_by == user.id
    assert updated.phone == "555-0100"


@pytest.mark.asyncio
async def test_update_not_found_writes_no_log(db: AsyncSession, team: Team, user: User):
    with pytest.raises(EntityNotFound) as exc_info:
        await audit_svc.update_with_audit(
            db, Client, 4242, {"name": "Ghost"}, user.id, team.id, EntityType.CLIENT
        )
    assert str(exc_info.value) == "client not found with ID 4242"
    assert exc_info.value.entity_id == 4242
    assert await _logs(db) == []


@pytest.mark.asyncio
async def test_update_other_team_is_not_found(db: AsyncSession, team: Team, other_team: Team, user: User, other_user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    with pytest.raises(EntityNotFound):
        await audit_svc.update_with_audit(
            db, Client, client.id, {"name": "Stolen"}, other_user.id, other_team.id, EntityType.CLIENT
        )
    assert len(await _logs(db)) == 1


# Soft delete


@pytest.mark.asyncio
async def test_soft_delete_keeps_row(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    before = entity_snapshot(client)

    deleted = await audit_svc.soft_delete_with_audit(
        db, Client, client.id, user.id, team.id, EntityType.CLIENT
    )
    assert deleted.deleted_at is not None

    row = (await db.execute(select(Client).where(Client.id == client.id))).scalar_one()
    assert row.name == "Acme"
    assert row.contact_name == "Jane"
    assert row.deleted_at is not None

    items, total = await audit_svc.list_active(db, Client, team.id)
    assert items == [] and total == 0
    assert await audit_svc.get_active(db, Client, client.id, team.id) is None

    entry = (await _logs(db))[-1]
    assert entry.action == ActivityType.CLIENT_DELETED.value
    assert entry.details == {"deleted": before}


@pytest.mark.asyncio
async def test_soft_delete_sets_deleted_by_where_supported(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    entry = await audit_svc.create_with_audit(
        db, TimeEntry,
        {
            "client_id": client.id, "user_id": user.id, "description": "Onsite visit",
            "start_time": datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc), "duration": 90,
        },
        user.id, team.id, EntityType.TIME_ENTRY,
    )
    deleted = await audit_svc.soft_delete_with_audit(
        db, TimeEntry, entry.id, user.id, team.id, EntityType.TIME_ENTRY
    )
    assert deleted.deleted_by == user.id
    assert (await _logs(db))[-1].action == ActivityType.TIME_ENTRY_DELETED.value


@pytest.mark.asyncio
async def test_soft_delete_ticket_is_closed(db: AsyncSession, team: Team, user: User):
    ticket = await _ticket(db, team, user)
    await audit_svc.soft_delete_with_audit(
        db, ServiceTicket, ticket.id, user.id, team.id, EntityType.TICKET
    )
    assert (await _logs(db))[-1].action == ActivityType.TICKET_CLOSED.value


@pytest.mark.asyncio
async def test_soft_delete_twice_is_not_found(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(db, Client, ACME, user.id, team.id, EntityType.CLIENT)
    await audit_svc.soft_delete_with_audit(db, Client, client.id, user.id, team.id, EntityType.CLIENT)
    with pytest.raises(EntityNotFound):
        await audit_svc.soft_delete_with_audit(db, Client, client.id, user.id, team.id, EntityType.CLIENT)
    assert len(await _logs(db)) == 2


@pytest.mark.asyncio
async def test_soft_delete_not_found_writes_no_log(db: AsyncSession, team: Team, user: User):
    with pytest.raises(EntityNotFound):
        await audit_svc.soft_delete_with_audit(db, Expense, 77, user.id, team.id, EntityType.EXPENSE)
    assert await _logs(db) == []


@pytest.mark.asyncio
async def test_comment_flow(db: AsyncSession, team: Team, user: User):
    ticket = await _ticket(db, team, user)
    comment = await audit_svc.create_with_audit(
        db, TicketComment, {"ticket_id": ticket.id, "content": "Rebooted it"},
        user.id, team.id, EntityType.COMMENT,
    )
    await audit_svc.update_with_audit(
        db, TicketComment, comment.id, {"content": "Rebooted it twice"}, user.id, team.id, EntityType.COMMENT
    )
    actions = [e.action for e in await _logs(db)]
    assert actions[-2:] == [ActivityType.COMMENT_ADDED.value, ActivityType.COMMENT_UPDATED.value]


# Logging failures


@pytest.mark.asyncio
async def test_log_failure_keeps_mutation(db: AsyncSession, team: Team, user: User, monkeypatch, caplog):
    async def _broken_log(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(activity_svc, "log_activity", _broken_log)
    with caplog.at_level("ERROR", logger="servicedesk.services.audit_svc"):
        client = await audit_svc.create_with_audit(
            db, Client, ACME, user.id, team.id, EntityType.CLIENT, atomic=False
        )

    assert client.name == "Acme"
    assert await _count(db, Client) == 1
    assert await _logs(db) == []
    assert "Activity log write failed" in caplog.text


@pytest.mark.asyncio
async def test_log_failure_survives_failed_reload(
    db: AsyncSession, team: Team, user: User, monkeypatch, caplog
):
    async def _unreachable(*args, **kwargs):
        raise ConnectionError("storage unreachable")

    async def _broken_log(*args, **kwargs):
        # the reload after the rollback hits the same outage
        monkeypatch.setattr(db, "refresh", _unreachable)
        raise ConnectionError("storage unreachable")

    monkeypatch.setattr(activity_svc, "log_activity", _broken_log)
    with caplog.at_level("WARNING", logger="servicedesk.services.audit_svc"):
        client = await audit_svc.create_with_audit(
            db, Client, ACME, user.id, team.id, EntityType.CLIENT, atomic=False
        )

    assert client.id is not None
    assert client.name == "Acme"
    assert client.created_by == user.id
    assert "Activity log write failed" in caplog.text
    assert "Could not reload" in caplog.text

    monkeypatch.undo()
    assert await _count(db, Client) == 1
    assert await _logs(db) == []


@pytest.mark.asyncio
async def test_wrappers_record_server_action_and_duration(db: AsyncSession, team: Team, user: User):
    context = ActivityContext(server_action="client_create")
    await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT, context=context
    )
    entry = (await _logs(db))[0]
    assert entry.server_action == "client_create"
    assert entry.duration_ms is not None
    assert entry.duration_ms >= 0


@pytest.mark.asyncio
async def test_atomic_log_failure_rolls_back(db: AsyncSession, team: Team, user: User, monkeypatch):
    async def _broken_log(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(activity_svc, "log_activity", _broken_log)
    with pytest.raises(MutationFailed):
        await audit_svc.create_with_audit(
            db, Client, ACME, user.id, team.id, EntityType.CLIENT, atomic=True
        )
    assert await _count(db, Client) == 0


@pytest.mark.asyncio
async def test_atomic_write_commits_both(db: AsyncSession, team: Team, user: User):
    client = await audit_svc.create_with_audit(
        db, Client, ACME, user.id, team.id, EntityType.CLIENT, atomic=True
    )
    await db.rollback()
    assert await _count(db, Client) == 1
    logs = await _logs(db)
    assert len(logs) == 1
    assert logs[0].entity_id == client.id


# Listing


@pytest.mark.asyncio
async def test_list_active_filters_and_counts(db: AsyncSession, team: Team, other_team: Team, user: User, other_user: User):
    await _ticket(db, team, user)
    await _ticket(db, team, user, status="pending")
    await audit_svc.create_with_audit(
        db, ServiceTicket, {"title": "Elsewhere"}, other_user.id, other_team.id, EntityType.TICKET
    )

    items, total = await audit_svc.list_active(db, ServiceTicket, team.id)
    assert total == 2
    assert {t.team_id for t in items} == {team.id}

    items, total = await audit_svc.list_active(db, ServiceTicket, team.id, status="pending")
    assert total == 1
    assert items[0].status == "pending"

    items, total = await audit_svc.list_active(db, ServiceTicket, team.id, limit=1)
    assert len(items) == 1 and total == 2
