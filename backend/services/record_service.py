"""
record_service.py — Scoped record store
Select / insert / update / delete for the owned tables, PostgREST-style
filters, and a change signal on the hub after every successful write.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable

from sqlalchemy import Boolean, Date, DateTime, Time, asc, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import server_now
from models import TABLES
from models.goal import Goal
from models.milestone import Milestone
from schemas import CREATE_SCHEMAS, UPDATE_SCHEMAS
from services.access_policy import check_insert, check_update, scoped, scoped_to_day
from services.change_hub import change_hub

logger = logging.getLogger(__name__)

# Query-string keys that are not column filters
RESERVED_PARAMS = {"select", "order", "apikey"}

FILTER_OPERATORS = ("eq", "neq", "is")

DEFAULT_ORDER = {
    "profiles": [("created_at", False)],
    "tasks": [("created_at", False)],
    "time_blocks": [("start_time", False)],
    "goals": [("created_at", True)],
    "milestones": [("created_at", True)],
}


class UnknownTable(LookupError):
    pass


class QueryError(ValueError):
    """Malformed filter, ordering, column list, or empty update."""


class RecordConflict(Exception):
    """The write violated a uniqueness or foreign-key constraint."""


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any


def get_model(table: str):
    model = TABLES.get(table)
    if model is None:
        raise UnknownTable(table)
    return model


def _column(model, name: str):
    if name not in model.__table__.columns:
        raise QueryError(f"Unknown column {name!r} on {model.__tablename__}")
    return model.__table__.columns[name]


def coerce_value(model, column: str, raw: str) -> Any:
    """Convert a query-string literal to the column's Python type."""
    col_type = _column(model, column).type
    try:
        if isinstance(col_type, Boolean):
            if raw not in ("true", "false"):
                raise ValueError(raw)
            return raw == "true"
        if isinstance(col_type, DateTime):
            return datetime.fromisoformat(raw)
        if isinstance(col_type, Date):
            return date.fromisoformat(raw)
        if isinstance(col_type, Time):
            return time.fromisoformat(raw)
    except ValueError:
        raise QueryError(f"Invalid value {raw!r} for {column}")
    return raw


def parse_filters(model, params: Iterable[tuple[str, str]]) -> list[Filter]:
    """Parse `col=op.value` pairs, e.g. ("task_date", "eq.2025-01-01")."""
    filters = []
    for key, expr in params:
        if key in RESERVED_PARAMS:
            continue
        _column(model, key)
        op, sep, raw = expr.partition(".")
        if not sep or op not in FILTER_OPERATORS:
            raise QueryError(f"Unsupported filter {key}={expr}")
        if op == "is":
            if raw not in ("null", "true", "false"):
                raise QueryError(f"Unsupported filter {key}={expr}")
            value = None if raw == "null" else raw == "true"
        else:
            value = coerce_value(model, key, raw)
        filters.append(Filter(key, op, value))
    return filters


def parse_order(model, expr: str | None) -> list[tuple[str, bool]]:
    """Parse `col.asc,col2.desc` into [(column, descending)]."""
    if not expr:
        return list(DEFAULT_ORDER.get(model.__tablename__, []))
    order = []
    for part in expr.split(","):
        name, _, direction = part.strip().partition(".")
        _column(model, name)
        if direction not in ("", "asc", "desc"):
            raise QueryError(f"Invalid order direction {direction!r}")
        order.append((name, direction == "desc"))
    return order


def parse_columns(model, expr: str | None) -> list[str] | None:
    if not expr or expr.strip() == "*":
        return None
    names = [c.strip() for c in expr.split(",") if c.strip()]
    for name in names:
        _column(model, name)
    return names


def serialize(row, columns: list[str] | None = None) -> dict:
    names = columns or [c.name for c in row.__table__.columns]
    result = {}
    for name in names:
        value = getattr(row, name)
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.isoformat()
        elif isinstance(value, (date, time)):
            value = value.isoformat()
        result[name] = value
    return result


def _apply_filters(query, model, filters: Iterable[Filter]):
    for f in filters:
        column = getattr(model, f.column)
        if f.op == "eq":
            query = query.filter(column == f.value)
        elif f.op == "neq":
            query = query.filter(column != f.value)
        else:
            query = query.filter(column.is_(f.value))
    return query


class RecordService:
    @staticmethod
    def select(
        db: Session,
        identity: str,
        table: str,
        filters: Iterable[Filter] = (),
        order: list[tuple[str, bool]] | None = None,
        columns: list[str] | None = None,
    ) -> list[dict]:
        model = get_model(table)
        query = _apply_filters(scoped(db, model, identity), model, filters)
        if order is None:
            order = DEFAULT_ORDER.get(table, [])
        for name, descending in order:
            column = getattr(model, name)
            query = query.order_by(desc(column) if descending else asc(column))
        return [serialize(row, columns) for row in query.all()]

    @staticmethod
    def list_for_day(db: Session, identity: str, table: str, day: date) -> list[dict]:
        """Tasks or time blocks for one date, in their display order."""
        model = get_model(table)
        query = scoped_to_day(db, model, identity, day)
        for name, descending in DEFAULT_ORDER[table]:
            column = getattr(model, name)
            query = query.order_by(desc(column) if descending else asc(column))
        return [serialize(row) for row in query.all()]

    @staticmethod
    def insert(db: Session, identity: str, table: str, data: dict) -> dict:
        model = get_model(table)
        payload = CREATE_SCHEMAS[table].model_validate(data).model_dump()
        check_insert(db, model, identity, payload)
        row = model(**payload)
        try:
            db.add(row)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise RecordConflict(str(e.orig)) from e
        db.refresh(row)
        change_hub.publish(table, identity, "INSERT")
        return serialize(row)

    @staticmethod
    def update(db: Session, identity: str, table: str, filters: Iterable[Filter], delta: dict) -> list[dict]:
        model = get_model(table)
        changes = UPDATE_SCHEMAS[table].model_validate(delta).model_dump(exclude_unset=True)
        if not changes:
            raise QueryError("No fields to update")
        check_update(db, model, identity, changes)
        rows = _apply_filters(scoped(db, model, identity), model, filters).all()
        if not rows:
            return []
        for row in rows:
            for key, value in changes.items():
                setattr(row, key, value)
            if hasattr(row, "updated_at"):
                row.updated_at = server_now()
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise RecordConflict(str(e.orig)) from e
        for row in rows:
            db.refresh(row)
        change_hub.publish(table, identity, "UPDATE")
        return [serialize(row) for row in rows]

    @staticmethod
    def delete(db: Session, identity: str, table: str, filters: Iterable[Filter]) -> list[dict]:
        model = get_model(table)
        rows = _apply_filters(scoped(db, model, identity), model, filters).all()
        if not rows:
            return []
        deleted = [serialize(row) for row in rows]
        cascaded = 0
        if model is Goal:
            goal_ids = [row.id for row in rows]
            cascaded = scoped(db, Milestone, identity).filter(Milestone.goal_id.in_(goal_ids)).count()
        for row in rows:
            db.delete(row)
        db.commit()
        change_hub.publish(table, identity, "DELETE")
        if cascaded:
            # The database removed these through ON DELETE CASCADE
            change_hub.publish("milestones", identity, "DELETE")
        logger.info("deleted %d row(s) from %s for %s", len(deleted), table, identity)
        return deleted
