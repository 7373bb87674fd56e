"""
Rate audit trail - append-only history of party rate slab writes.
"""
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from courier_billing.config.billing_config import get_audit_limits
from courier_billing.models import RateAudit, RateAuditAction


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def snapshot(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    return {key: _json_safe(value) for key, value in values.items()}


def write_audit(
    db: Session,
    party_rate_slab_id: UUID,
    action: RateAuditAction,
    changed_by: Optional[str],
    before: Optional[Dict[str, Any]],
    after: Optional[Dict[str, Any]],
) -> RateAudit:
    """
    Add one audit row to the caller's transaction and flush it.

    Never commits: the audit row lands or fails together with the rate edit.
    """
    audit = RateAudit(
        party_rate_slab_id=party_rate_slab_id,
        action=action.value,
        changed_by=changed_by,
        changed_at=datetime.utcnow(),
        before_data=snapshot(before),
        after_data=snapshot(after),
    )
    db.add(audit)
    db.flush()
    return audit


def clamp_paging(limit: Optional[int], offset: Optional[int]) -> tuple:
    limits = get_audit_limits()
    if not limit or limit < 1:
        limit = limits["default_limit"]
    limit = min(limit, limits["max_limit"])
    offset = max(offset or 0, 0)
    return limit, offset


def list_audits(
    db: Session,
    party_rate_slab_id: Optional[UUID] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[RateAudit]:
    """Audit rows, newest first."""
    limit, offset = clamp_paging(limit, offset)
    query = db.query(RateAudit)
    if party_rate_slab_id is not None:
        query = query.filter(RateAudit.party_rate_slab_id == party_rate_slab_id)
    return (
        query.order_by(RateAudit.changed_at.desc(), RateAudit.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
