"""
Insert-or-replace by natural key.

Reference rows (rate defaults, enumerations, party rate slabs) are keyed by a
business tuple rather than their surrogate id. Writing a row whose key already
exists replaces the non-key columns: last write wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    row: Any
    created: bool
    before: Optional[Dict[str, Any]] = None


def row_to_dict(row) -> Dict[str, Any]:
    """Column values of a mapped row, keyed by attribute name."""
    mapper = inspect(row).mapper
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


def _key_filter(model, key: Dict[str, Any]):
    # IS NULL for null key parts, since NULL = NULL is never true
    clauses = []
    for name, value in key.items():
        column = getattr(model, name)
        clauses.append(column.is_(None) if value is None else column == value)
    return clauses


def find_by_natural_key(db: Session, model: Type, key: Dict[str, Any], lock: bool = False):
    query = db.query(model).filter(*_key_filter(model, key))
    if lock:
        query = query.with_for_update()
    return query.first()


def upsert_by_natural_key(
    db: Session,
    model: Type,
    key: Dict[str, Any],
    values: Dict[str, Any],
) -> UpsertResult:
    """
    Insert a row for ``key`` or overwrite the existing row's ``values``.

    Does not commit. A concurrent insert of the same key surfaces as a unique
    violation inside the savepoint and is retried as an update.
    """
    existing = find_by_natural_key(db, model, key, lock=True)
    if existing is None:
        row = model(**key, **values)
        try:
            with db.begin_nested():
                db.add(row)
                db.flush()
            return UpsertResult(row=row, created=True)
        except IntegrityError:
            logger.info(f"Concurrent insert for {model.__name__} key {key}, retrying as update")
            existing = find_by_natural_key(db, model, key, lock=True)
            if existing is None:
                raise

    before = row_to_dict(existing)
    for name, value in values.items():
        setattr(existing, name, value)
    db.flush()
    return UpsertResult(row=existing, created=False, before=before)
