"""
Rate table - party rate slabs and region defaults.

Every committed write to a party rate slab carries exactly one audit row in
the same transaction. If the audit insert fails, the rate edit rolls back.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from courier_billing.db.repository import UpsertResult, find_by_natural_key, row_to_dict, upsert_by_natural_key
from courier_billing.models import (
    DistanceSlab,
    Mode,
    Party,
    PartyRateSlab,
    RateAuditAction,
    RateDefault,
    Region,
    ServiceType,
    WeightSlab,
)
from courier_billing.services import rate_audit
from courier_billing.services.errors import ConflictError, NotFound, ValidationError
from courier_billing.services.price_calculator import round2, to_decimal

logger = logging.getLogger(__name__)

PARTY_RATE_KEY_FIELDS = (
    "party_id",
    "shipment_type",
    "mode_id",
    "service_type_id",
    "distance_slab_id",
    "weight_slab_id",
)
PARTY_RATE_VALUE_FIELDS = ("base_rate", "fuel_pct", "packing", "handling", "gst_pct", "is_active")

RATE_DEFAULT_KEY_FIELDS = ("region_id", "shipment_type", "weight_slab_id")
RATE_DEFAULT_VALUE_FIELDS = ("base_rate", "extra_per_1000g", "notes")

_REFERENCES = {
    "party_id": Party,
    "mode_id": Mode,
    "service_type_id": ServiceType,
    "distance_slab_id": DistanceSlab,
    "weight_slab_id": WeightSlab,
}


def _split(values: Dict[str, Any], key_fields, value_fields):
    missing = [name for name in key_fields if name not in values]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")
    key = {name: values[name] for name in key_fields}
    data = {name: values[name] for name in value_fields if name in values and values[name] is not None}
    return key, data


def _check_references(db: Session, key: Dict[str, Any]) -> None:
    for field, model in _REFERENCES.items():
        if field in key and key[field] is not None:
            if db.query(model.id).filter(model.id == key[field]).first() is None:
                raise ValidationError(f"Unknown {field}: {key[field]}")


def _normalize_amounts(data: Dict[str, Any]) -> None:
    """Reject negatives and round to the 2 places the columns store, in place."""
    for name in ("base_rate", "fuel_pct", "packing", "handling", "gst_pct", "extra_per_1000g"):
        if name not in data:
            continue
        if to_decimal(data[name]) < 0:
            raise ValidationError(f"{name} cannot be negative")
        data[name] = round2(data[name])


def list_party_rate_slabs(db: Session, filters: Optional[Dict[str, Any]] = None) -> List[PartyRateSlab]:
    query = db.query(PartyRateSlab)
    for name, value in (filters or {}).items():
        if value is not None:
            query = query.filter(getattr(PartyRateSlab, name) == value)
    return query.order_by(PartyRateSlab.created_at.desc()).all()


def upsert_party_rate_slab(db: Session, values: Dict[str, Any], actor: Optional[str] = None) -> UpsertResult:
    """
    Insert or replace a party rate slab by its six-column key.

    Re-posting an existing key overwrites its rates and reactivates it unless
    ``is_active`` says otherwise.
    """
    key, data = _split(values, PARTY_RATE_KEY_FIELDS, PARTY_RATE_VALUE_FIELDS)
    if "base_rate" not in data:
        raise ValidationError("Missing fields: base_rate")
    data.setdefault("is_active", True)
    _normalize_amounts(data)
    try:
        _check_references(db, key)
        result = upsert_by_natural_key(db, PartyRateSlab, key, data)
        action = RateAuditAction.CREATE if result.created else RateAuditAction.UPDATE
        rate_audit.write_audit(
            db,
            result.row.id,
            action,
            actor,
            before=result.before,
            after=row_to_dict(result.row),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(result.row)
    logger.info(f"{action.value} party rate slab {result.row.id} by {actor}")
    return result


def update_party_rate_slab(
    db: Session,
    rate_id: UUID,
    values: Dict[str, Any],
    actor: Optional[str] = None,
) -> PartyRateSlab:
    """Row-locked update; concurrent editors serialize and each commit is audited."""
    key, data = _split(values, PARTY_RATE_KEY_FIELDS, PARTY_RATE_VALUE_FIELDS)
    _normalize_amounts(data)
    try:
        row = db.query(PartyRateSlab).filter(PartyRateSlab.id == rate_id).with_for_update().first()
        if not row:
            raise NotFound(f"Party rate slab {rate_id} not found")
        _check_references(db, key)
        clash = find_by_natural_key(db, PartyRateSlab, key)
        if clash is not None and clash.id != row.id:
            raise ConflictError(
                "Duplicate mapping exists",
                {"conflict_id": str(clash.id)},
            )
        before = row_to_dict(row)
        for name, value in {**key, **data}.items():
            setattr(row, name, value)
        db.flush()
        rate_audit.write_audit(db, row.id, RateAuditAction.UPDATE, actor, before=before, after=row_to_dict(row))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    logger.info(f"UPDATE party rate slab {row.id} by {actor}")
    return row


def deactivate_party_rate_slab(db: Session, rate_id: UUID, actor: Optional[str] = None) -> PartyRateSlab:
    """Soft delete. Historical invoices may still point at the row."""
    try:
        row = db.query(PartyRateSlab).filter(PartyRateSlab.id == rate_id).with_for_update().first()
        if not row:
            raise NotFound(f"Party rate slab {rate_id} not found")
        before = row_to_dict(row)
        row.is_active = False
        db.flush()
        rate_audit.write_audit(db, row.id, RateAuditAction.DEACTIVATE, actor, before=before, after=row_to_dict(row))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    logger.info(f"DEACTIVATE party rate slab {row.id} by {actor}")
    return row


def list_rate_defaults(db: Session, region_id: Optional[UUID] = None) -> List[RateDefault]:
    query = db.query(RateDefault).join(WeightSlab, RateDefault.weight_slab_id == WeightSlab.id)
    if region_id is not None:
        query = query.filter(RateDefault.region_id == region_id)
    return query.order_by(RateDefault.shipment_type, WeightSlab.min_weight_grams).all()


def upsert_rate_default(db: Session, values: Dict[str, Any]) -> UpsertResult:
    """Insert or replace a default by (region, shipment type, weight slab)."""
    values = dict(values)
    values.setdefault("region_id", None)
    key, data = _split(values, RATE_DEFAULT_KEY_FIELDS, RATE_DEFAULT_VALUE_FIELDS)
    if "base_rate" not in data:
        raise ValidationError("Missing fields: base_rate")
    data.setdefault("extra_per_1000g", Decimal("0"))
    data.setdefault("notes", None)
    _normalize_amounts(data)
    try:
        if key["region_id"] is not None and db.query(Region.id).filter(Region.id == key["region_id"]).first() is None:
            raise ValidationError(f"Unknown region_id: {key['region_id']}")
        _check_references(db, key)
        result = upsert_by_natural_key(db, RateDefault, key, data)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(result.row)
    return result
