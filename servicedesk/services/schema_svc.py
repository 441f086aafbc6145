"""Schema introspection for the optional audit columns.

Tables in the service desk were given ``created_by`` / ``updated_by`` /
``deleted_by`` at different times, so a write has to find out per table
which of them it may set. ``column_exists`` answers that question and never
raises: when in doubt it says the column is absent and the caller simply
skips it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Table, inspect as sa_inspect, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper

log = logging.getLogger(__name__)

AUDIT_COLUMNS = frozenset({"created_by", "updated_by", "deleted_by"})
COMMON_AUDIT_FIELDS = frozenset({"created_at", "updated_at", "deleted_at"}) | AUDIT_COLUMNS

# Known deployment facts. Sampling an empty table would report these columns
# as missing, so they are answered from here without touching the database.
AUDIT_COLUMN_OVERRIDES: dict[str, dict[str, bool]] = {
    "clients": {"created_by": True, "updated_by": True, "deleted_by": False},
    "service_tickets": {"created_by": False, "updated_by": False, "deleted_by": False},
    "ticket_comments": {"created_by": True, "updated_by": True, "deleted_by": True},
    "time_entries": {"created_by": True, "updated_by": True, "deleted_by": True},
    "expenses": {"created_by": True, "updated_by": True, "deleted_by": True},
}

# Distinguishing attributes -> table name, for handles without a usable name
_IDENTITY_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("contact_name",), "clients"),
    (("closed_at",), "service_tickets"),
    (("is_internal",), "ticket_comments"),
    (("start_time", "duration"), "time_entries"),
    (("receipt_url",), "expenses"),
)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_column(name: str) -> str:
    """``updatedBy`` -> ``updated_by``; snake_case names pass through."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _has_attrs(table: Any, attrs: tuple[str, ...]) -> bool:
    if isinstance(table, Mapping):
        return all(a in table for a in attrs)
    return all(hasattr(table, a) for a in attrs)


def resolve_table_name(table: Any) -> str | None:
    """Stable identity for a table reference, or None when it can't be told."""
    if isinstance(table, str):
        return table or None
    if isinstance(table, Table):
        return table.name
    name = getattr(table, "__tablename__", None)
    if isinstance(name, str):
        return name
    for attrs, inferred in _IDENTITY_HINTS:
        if _has_attrs(table, attrs):
            return inferred
    return None


def static_columns(table: Any) -> frozenset[str] | None:
    """Column names from mapped/Core metadata, without I/O. None if unavailable."""
    if isinstance(table, Table):
        return frozenset(table.columns.keys())
    if isinstance(table, str):
        return None
    insp = sa_inspect(table, raiseerr=False)
    mapper = insp if isinstance(insp, Mapper) else getattr(insp, "mapper", None)
    if isinstance(mapper, Mapper):
        return frozenset(c.key for c in mapper.column_attrs)
    return None


async def sample_columns(db: AsyncSession, name: str) -> frozenset[str] | None:
    """Column names taken from one sample row, or None for an empty table."""
    conn = await db.connection()
    quoted = conn.dialect.identifier_preparer.quote(name)
    row = (await conn.execute(text(f"SELECT * FROM {quoted} LIMIT 1"))).first()
    if row is None:
        return None
    return frozenset(row._mapping.keys())


class ColumnProbe:
    """Answers "may I set this column on this table?" and remembers the answer.

    Column sets are cached per table name for the life of the process and
    are never replaced once stored. Concurrent first lookups may probe twice;
    the first stored set wins.
    """

    def __init__(self, overrides: Mapping[str, Mapping[str, bool]] | None = None):
        source = AUDIT_COLUMN_OVERRIDES if overrides is None else overrides
        self.overrides: dict[str, dict[str, bool]] = {
            name: {normalize_column(c): v for c, v in cols.items()}
            for name, cols in source.items()
        }
        self._columns: dict[str, frozenset[str]] = {}

    def cached_columns(self, name: str) -> frozenset[str] | None:
        return self._columns.get(name)

    def clear(self) -> None:
        self._columns.clear()

    def _remember(self, name: str, columns: frozenset[str]) -> frozenset[str]:
        return self._columns.setdefault(name, columns)

    async def column_exists(self, db: AsyncSession, table: Any, column: str) -> bool:
        column = normalize_column(column)
        try:
            return await self._resolve(db, table, column)
        except Exception:
            log.warning(
                "Column probe failed for %s.%s; treating column as absent",
                resolve_table_name(table) or "<unknown>", column, exc_info=True,
            )
            return False

    async def _resolve(self, db: AsyncSession, table: Any, column: str) -> bool:
        name = resolve_table_name(table)

        if name is None:
            columns = static_columns(table)
            if columns is not None:
                return column in columns
            log.debug("Unknown table handle %r; skipping %s", table, column)
            return column not in COMMON_AUDIT_FIELDS

        if column in AUDIT_COLUMNS:
            override = self.overrides.get(name, {}).get(column)
            if override is not None:
                return override

        columns = self._columns.get(name)
        if columns is None:
            found = static_columns(table)
            if found is None:
                found = await sample_columns(db, name)
            if found is None:
                # Empty table: nothing to learn from, try again next time
                return column not in COMMON_AUDIT_FIELDS
            columns = self._remember(name, found)
        return column in columns


default_probe = ColumnProbe()


async def column_exists(db: AsyncSession, table: Any, column: str) -> bool:
    """Process-wide probe; see ``ColumnProbe.column_exists``."""
    return await default_probe.column_exists(db, table, column)


@dataclass(frozen=True)
class AuditCapabilities:
    """Which audit columns a table supports, declared by the caller.

    Passing one to the audit wrappers skips probing altogether.
    """

    created_by: bool = False
    updated_by: bool = False
    deleted_by: bool = False

    def supports(self, column: str) -> bool:
        return bool(getattr(self, normalize_column(column), False))

    @classmethod
    def from_model(cls, model: Any) -> "AuditCapabilities":
        columns = static_columns(model) or frozenset()
        return cls(
            created_by="created_by" in columns,
            updated_by="updated_by" in columns,
            deleted_by="deleted_by" in columns,
        )


@dataclass
class AuditColumnReport:
    table: str
    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    # column -> (override says, schema says)
    mismatches: dict[str, tuple[bool, bool]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.mismatches


async def audit_column_report(
    db: AsyncSession, probe: ColumnProbe | None = None
) -> list[AuditColumnReport]:
    """Compare every table's audit fields with the override table."""
    probe = probe or default_probe
    conn = await db.connection()

    def _collect(sync_conn) -> dict[str, set[str]]:
        insp = sa_inspect(sync_conn)
        return {
            name: {c["name"] for c in insp.get_columns(name)}
            for name in insp.get_table_names()
            if name != "alembic_version"
        }

    schema = await conn.run_sync(_collect)
    reports = []
    for name in sorted(schema):
        columns = schema[name]
        report = AuditColumnReport(
            table=name,
            present=sorted(COMMON_AUDIT_FIELDS & columns),
            missing=sorted(COMMON_AUDIT_FIELDS - columns),
        )
        for column, expected in probe.overrides.get(name, {}).items():
            actual = column in columns
            if expected != actual:
                report.mismatches[column] = (expected, actual)
        reports.append(report)

    for name in sorted(set(probe.overrides) - set(schema)):
        log.warning("Override table lists %s, which is not in the schema", name)
    return reports
