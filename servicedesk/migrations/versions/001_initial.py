"""Initial service desk schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

Audit columns differ per table: clients have created_by/updated_by only,
service_tickets have none, comments, time entries and expenses have all three.
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _tenant() -> sa.Column:
    return sa.Column(
        "team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )


def _audit(*names: str) -> list[sa.Column]:
    return [sa.Column(name, sa.Integer, sa.ForeignKey("users.id"), nullable=True) for name in names]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100)),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("plan_name", sa.String(50)),
        sa.Column("subscription_status", sa.String(20)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "team_id", name="uq_team_member"),
    )
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])
    op.create_index("ix_team_members_team_id", "team_members", ["team_id"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        *_audit("created_by", "updated_by"),
    )
    op.create_index("ix_clients_team_id", "clients", ["team_id"])
    op.create_index("ix_clients_deleted_at", "clients", ["deleted_at"])
    op.create_index("ix_clients_team_email", "clients", ["team_id", "email"])

    op.create_table(
        "service_tickets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("category", sa.String(100)),
        sa.Column("priority", sa.String(50), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(50), nullable=False, server_default="open"),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id")),
        sa.Column("assigned_to", sa.Integer, sa.ForeignKey("users.id")),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column("closed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_service_tickets_team_id", "service_tickets", ["team_id"])
    op.create_index("ix_service_tickets_client_id", "service_tickets", ["client_id"])
    op.create_index("ix_service_tickets_deleted_at", "service_tickets", ["deleted_at"])

    op.create_table(
        "ticket_comments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("ticket_id", sa.Integer, sa.ForeignKey("service_tickets.id"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("attachments", sa.JSON),
        sa.Column("is_internal", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        *_audit("created_by", "updated_by", "deleted_by"),
    )
    op.create_index("ix_ticket_comments_team_id", "ticket_comments", ["team_id"])
    op.create_index("ix_ticket_comments_ticket_id", "ticket_comments", ["ticket_id"])
    op.create_index("ix_ticket_comments_deleted_at", "ticket_comments", ["deleted_at"])

    op.create_table(
        "time_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("ticket_id", sa.Integer, sa.ForeignKey("service_tickets.id")),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer, nullable=False),
        sa.Column("billable", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("billed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("billable_rate", sa.String(50)),
        *_timestamps(),
        *_audit("created_by", "updated_by", "deleted_by"),
    )
    op.create_index("ix_time_entries_team_id", "time_entries", ["team_id"])
    op.create_index("ix_time_entries_ticket_id", "time_entries", ["ticket_id"])
    op.create_index("ix_time_entries_client_id", "time_entries", ["client_id"])
    op.create_index("ix_time_entries_deleted_at", "time_entries", ["deleted_at"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("ticket_id", sa.Integer, sa.ForeignKey("service_tickets.id")),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(100)),
        sa.Column("billable", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("billed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text),
        sa.Column("receipt_url", sa.String(255)),
        *_timestamps(),
        *_audit("created_by", "updated_by", "deleted_by"),
    )
    op.create_index("ix_expenses_team_id", "expenses", ["team_id"])
    op.create_index("ix_expenses_ticket_id", "expenses", ["ticket_id"])
    op.create_index("ix_expenses_client_id", "expenses", ["client_id"])
    op.create_index("ix_expenses_deleted_at", "expenses", ["deleted_at"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant(),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("entity_id", sa.Integer),
        sa.Column("entity_type", sa.String(50)),
        sa.Column("details", sa.JSON),
        sa.Column("action_category", sa.String(50)),
        sa.Column("status", sa.String(20), nullable=False, server_default="success"),
        sa.Column("server_action", sa.String(100)),
        sa.Column("duration_ms", sa.Integer),
        sa.Column("user_agent", sa.String(512)),
        sa.Column("route", sa.String(255)),
    )
    op.create_index("ix_activity_logs_team_id", "activity_logs", ["team_id"])
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_timestamp", "activity_logs", ["timestamp"])
    op.create_index("ix_activity_logs_team_entity", "activity_logs", ["team_id", "entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("expenses")
    op.drop_table("time_entries")
    op.drop_table("ticket_comments")
    op.drop_table("service_tickets")
    op.drop_table("clients")
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("users")
