"""Audit service - create/update/soft-delete wrappers that journal every mutation.

Each wrapper performs the write, commits it, then appends exactly one
activity row holding a full snapshot of the entity:

* create -> ``{"created": <row>}``
* update -> ``{"before": <row>, "after": <row>}``
* delete -> ``{"deleted": <row before deletion>}``

Optional audit columns are only written where the table has them (see
``schema_svc``). A failed write raises and logs nothing. A failed log write
is reported and swallowed: the business change stands without its trail,
unless ``audit_atomic_writes`` ties both into one transaction.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from ..config import settings
from . import activity_svc
from .activity_svc import EntityType, OperationKind
from .schema_svc import AuditCapabilities, column_exists, static_columns

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

# Written by the wrappers only; ignored if they show up in caller data
MANAGED_COLUMNS = frozenset({
    "id", "team_id",
    "created_at", "updated_at", "deleted_at",
    "created_by", "updated_by", "deleted_by",
})


class AuditError(Exception):
    """Base class for audit-layer failures."""


class EntityNotFound(AuditError, LookupError):
    """Update/delete target is missing, soft-deleted, or in another team."""

    def __init__(self, entity_type: str, entity_id: int):
        super().__init__(f"{entity_type} not found with ID {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class MutationFailed(AuditError):
    """The underlying insert/update was rejected by the database."""


class UnknownColumn(AuditError, ValueError):
    """Caller data names a column the table does not have."""


@dataclass(frozen=True)
class ActivityContext:
    """Request details recorded alongside the activity row."""

    ip_address: str | None = None
    user_agent: str | None = None
    route: str | None = None
    server_action: str | None = None


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def entity_snapshot(entity: Any) -> dict[str, Any]:
    """Every column of a loaded entity as a JSON-safe dict."""
    columns = static_columns(type(entity)) or frozenset()
    return {key: _jsonable(getattr(entity, key)) for key in sorted(columns)}


def _entity_tag(entity_type: str | EntityType) -> str:
    return entity_type.value if isinstance(entity_type, EntityType) else entity_type


def _check_columns(model: Any, data: dict[str, Any]) -> None:
    known = static_columns(model) or frozenset()
    unknown = sorted(set(data) - known)
    if unknown:
        raise UnknownColumn(f"{model.__tablename__} has no column(s): {', '.join(unknown)}")


async def _supports(
    db: AsyncSession, model: Any, column: str, capabilities: AuditCapabilities | None
) -> bool:
    if capabilities is not None:
        return capabilities.supports(column)
    return await column_exists(db, model, column)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def get_active(
    db: AsyncSession, model: type[ModelT], entity_id: int, team_id: int, **filters: Any
) -> ModelT | None:
    """A team's entity by id, unless soft-deleted. Extra filters narrow the match."""
    stmt = select(model).where(
        model.id == entity_id,
        model.team_id == team_id,
        model.deleted_at.is_(None),
    )
    for key, value in filters.items():
        stmt = stmt.where(getattr(model, key) == value)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_active(
    db: AsyncSession,
    model: type[ModelT],
    team_id: int,
    *,
    offset: int = 0,
    limit: int = 50,
    **filters: Any,
) -> tuple[list[ModelT], int]:
    """A team's entities that are not soft-deleted. Returns (items, total)."""
    stmt = select(model).where(model.team_id == team_id, model.deleted_at.is_(None))
    for key, value in filters.items():
        if value is not None:
            stmt = stmt.where(getattr(model, key) == value)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(model.created_at.desc(), model.id.desc()).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def _commit_mutation(db: AsyncSession, entity: Any, atomic: bool) -> None:
    try:
        if atomic:
            await db.flush()
        else:
            await db.commit()
        await db.refresh(entity)
    except SQLAlchemyError as exc:
        await db.rollback()
        raise MutationFailed(str(exc.__cause__ or exc)) from exc


async def _record(
    db: AsyncSession,
    entity: Any,
    *,
    atomic: bool,
    team_id: int,
    user_id: int,
    entity_type: str | EntityType,
    kind: OperationKind,
    entity_id: int,
    details: dict[str, Any],
    context: ActivityContext | None,
    duration_ms: int,
) -> None:
    activity_type = activity_svc.classify(entity_type, kind)
    context = context or ActivityContext()
    loaded = {key: getattr(entity, key) for key in static_columns(type(entity)) or ()}
    try:
        await activity_svc.log_activity(
            db, team_id, user_id, activity_type,
            entity_id=entity_id,
            entity_type=_entity_tag(entity_type),
            details=details,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            route=context.route,
            server_action=context.server_action,
            duration_ms=duration_ms,
            commit=not atomic,
        )
        if atomic:
            await db.commit()
    except Exception as exc:
        await db.rollback()
        if atomic:
            raise MutationFailed(f"activity log write failed: {exc}") from exc
        log.error(
            "Activity log write failed for %s %s #%s (team %s); mutation kept",
            kind.value, _entity_tag(entity_type), entity_id, team_id, exc_info=True,
        )
        # rollback expired the committed entity; reload it for the caller
        try:
            await db.refresh(entity)
        except Exception:
            log.warning(
                "Could not reload %s #%s after failed log write; returning committed state",
                _entity_tag(entity_type), entity_id, exc_info=True,
            )
            for key, value in loaded.items():
                set_committed_value(entity, key, value)


async def create_with_audit(
    db: AsyncSession,
    model: type[ModelT],
    data: dict[str, Any],
    user_id: int,
    team_id: int,
    entity_type: str | EntityType,
    *,
    capabilities: AuditCapabilities | None = None,
    context: ActivityContext | None = None,
    atomic: bool | None = None,
) -> ModelT:
    """Insert a row for ``team_id`` on behalf of ``user_id`` and log its creation."""
    atomic = settings.audit_atomic_writes if atomic is None else atomic
    started = time.perf_counter()
    payload = {k: v for k, v in data.items() if k not in MANAGED_COLUMNS}
    _check_columns(model, payload)

    now = _now()
    row: dict[str, Any] = {**payload, "team_id": team_id, "created_at": now, "updated_at": now}
    if await _supports(db, model, "created_by", capabilities):
        row["created_by"] = user_id
    if await _supports(db, model, "updated_by", capabilities):
        row["updated_by"] = user_id

    entity = model(**row)
    db.add(entity)
    await _commit_mutation(db, entity, atomic)
    snapshot = entity_snapshot(entity)
    log.info("Created %s #%s for team %s", _entity_tag(entity_type), entity.id, team_id)

    await _record(
        db, entity, atomic=atomic, team_id=team_id, user_id=user_id,
        entity_type=entity_type, kind=OperationKind.CREATE,
        entity_id=entity.id, details={"created": snapshot}, context=context,
        duration_ms=_elapsed_ms(started),
    )
    return entity


async def update_with_audit(
    db: AsyncSession,
    model: type[ModelT],
    entity_id: int,
    data: dict[str, Any],
    user_id: int,
    team_id: int,
    entity_type: str | EntityType,
    *,
    capabilities: AuditCapabilities | None = None,
    context: ActivityContext | None = None,
    atomic: bool | None = None,
) -> ModelT:
    """Patch an existing row and log before/after snapshots."""
    atomic = settings.audit_atomic_writes if atomic is None else atomic
    started = time.perf_counter()
    entity = await get_active(db, model, entity_id, team_id)
    if entity is None:
        raise EntityNotFound(_entity_tag(entity_type), entity_id)
    before = entity_snapshot(entity)

    patch = {k: v for k, v in data.items() if k not in MANAGED_COLUMNS}
    _check_columns(model, patch)
    patch["updated_at"] = _now()
    if await _supports(db, model, "updated_by", capabilities):
        patch["updated_by"] = user_id

    for key, value in patch.items():
        setattr(entity, key, value)
    await _commit_mutation(db, entity, atomic)
    after = entity_snapshot(entity)

    await _record(
        db, entity, atomic=atomic, team_id=team_id, user_id=user_id,
        entity_type=entity_type, kind=OperationKind.UPDATE,
        entity_id=entity_id, details={"before": before, "after": after}, context=context,
        duration_ms=_elapsed_ms(started),
    )
    return entity


async def soft_delete_with_audit(
    db: AsyncSession,
    model: type[ModelT],
    entity_id: int,
    user_id: int,
    team_id: int,
    entity_type: str | EntityType,
    *,
    capabilities: AuditCapabilities | None = None,
    context: ActivityContext | None = None,
    atomic: bool | None = None,
) -> ModelT:
    """Mark a row deleted (it stays in the table) and log its last state."""
    atomic = settings.audit_atomic_writes if atomic is None else atomic
    started = time.perf_counter()
    entity = await get_active(db, model, entity_id, team_id)
    if entity is None:
        raise EntityNotFound(_entity_tag(entity_type), entity_id)
    before = entity_snapshot(entity)

    now = _now()
    patch: dict[str, Any] = {"deleted_at": now, "updated_at": now}
    if await _supports(db, model, "deleted_by", capabilities):
        patch["deleted_by"] = user_id
    if await _supports(db, model, "updated_by", capabilities):
        patch["updated_by"] = user_id

    for key, value in patch.items():
        setattr(entity, key, value)
    await _commit_mutation(db, entity, atomic)
    log.info("Soft-deleted %s #%s for team %s", _entity_tag(entity_type), entity_id, team_id)

    await _record(
        db, entity, atomic=atomic, team_id=team_id, user_id=user_id,
        entity_type=entity_type, kind=OperationKind.DELETE,
        entity_id=entity_id, details={"deleted": before}, context=context,
        duration_ms=_elapsed_ms(started),
    )
    return entity
