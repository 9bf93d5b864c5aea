"""
access_policy.py — Row ownership rules
Every read and write against an owned table goes through here. The owner
predicate is always applied first; caller filters can only narrow it.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session, Query

from models.goal import Goal
from models.milestone import Milestone

logger = logging.getLogger(__name__)

# Tables whose "today" reads are additionally pinned to a calendar date
DATE_COLUMNS = {
    "tasks": "task_date",
    "time_blocks": "block_date",
}


class PolicyDenied(Exception):
    """A row operation failed the owner predicate.

    The message is always the same generic text; `reason` is for the log only.
    """

    def __init__(self, reason: str = ""):
        self.reason = reason
        super().__init__("permission denied")


def owner_column(model):
    return getattr(model, model.owner_column)


def scoped(db: Session, model, identity: str) -> Query:
    """Query over the rows of `model` owned by `identity`."""
    if not identity:
        raise PolicyDenied("request has no identity")
    return db.query(model).filter(owner_column(model) == identity)


def scoped_to_day(db: Session, model, identity: str, day: date) -> Query:
    """Owner-scoped query further restricted to one calendar date."""
    column = DATE_COLUMNS.get(model.__tablename__)
    if column is None:
        raise ValueError(f"{model.__tablename__} has no date scope")
    return scoped(db, model, identity).filter(getattr(model, column) == day)


def _check_goal_reference(db: Session, model, identity: str, data: dict):
    if model is not Milestone or data.get("goal_id") is None:
        return
    visible = scoped(db, Goal, identity).filter(Goal.id == data["goal_id"]).first()
    if visible is None:
        raise PolicyDenied(f"goal {data['goal_id']} is not visible to {identity}")


def check_insert(db: Session, model, identity: str, data: dict):
    """An inserted row must name the caller as its owner."""
    if not identity:
        raise PolicyDenied("request has no identity")
    owner = data.get(model.owner_column)
    if owner != identity:
        logger.warning("insert into %s denied: owner %r != identity %r", model.__tablename__, owner, identity)
        raise PolicyDenied(f"owner {owner!r} does not match identity")
    _check_goal_reference(db, model, identity, data)


def check_update(db: Session, model, identity: str, delta: dict):
    """A delta may not move a row to another owner or change its key."""
    if "id" in delta and model.owner_column != "id":
        raise PolicyDenied("row ids are immutable")
    if model.owner_column in delta and delta[model.owner_column] != identity:
        logger.warning("update on %s denied: owner change to %r", model.__tablename__, delta[model.owner_column])
        raise PolicyDenied("owner change")
    _check_goal_reference(db, model, identity, delta)
