"""
Record routes — a PostgREST-compatible subset over the owned tables.

    GET    /rest/v1/{table}?select=*&user_id=eq.<id>&order=created_at.asc
    POST   /rest/v1/{table}
    PATCH  /rest/v1/{table}?id=eq.<id>
    DELETE /rest/v1/{table}?id=eq.<id>

Every operation is scoped to the caller's identity by the access policy.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from services.access_policy import PolicyDenied
from services.record_service import (
    QueryError,
    RecordConflict,
    RecordService,
    UnknownTable,
    get_model,
    parse_columns,
    parse_filters,
    parse_order,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rest/v1", tags=["Records"])


def _run(operation, table: str):
    """Map service errors to HTTP errors without leaking row detail."""
    try:
        return operation()
    except HTTPException:
        raise
    except UnknownTable:
        raise HTTPException(status_code=404, detail=f"Unknown table {table}")
    except PolicyDenied as e:
        logger.warning("policy denied on %s: %s", table, e.reason)
        raise HTTPException(status_code=403, detail="permission denied")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except QueryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecordConflict:
        raise HTTPException(status_code=409, detail="conflict")
    except SQLAlchemyError:
        logger.exception("database error on %s", table)
        raise HTTPException(status_code=500, detail="database error")


@router.get("/{table}")
async def select_rows(table: str, request: Request, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    def operation():
        model = get_model(table)
        params = request.query_params
        return RecordService.select(
            db,
            user_id,
            table,
            filters=parse_filters(model, params.multi_items()),
            order=parse_order(model, params.get("order")),
            columns=parse_columns(model, params.get("select")),
        )

    return _run(operation, table)


@router.post("/{table}", status_code=201)
async def insert_row(table: str, body: dict = Body(...), user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    return _run(lambda: [RecordService.insert(db, user_id, table, body)], table)


@router.patch("/{table}")
async def update_rows(table: str, request: Request, body: dict = Body(...), user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    def operation():
        model = get_model(table)
        filters = parse_filters(model, request.query_params.multi_items())
        return RecordService.update(db, user_id, table, filters, body)

    return _run(operation, table)


@router.delete("/{table}")
async def delete_rows(table: str, request: Request, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    def operation():
        model = get_model(table)
        filters = parse_filters(model, request.query_params.multi_items())
        return RecordService.delete(db, user_id, table, filters)

    return _run(operation, table)
