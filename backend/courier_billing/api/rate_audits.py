"""
Rate audit API endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from courier_billing.db.database import get_db
from courier_billing.schemas.rate import RateAuditResponse
from courier_billing.services.rate_audit import list_audits

router = APIRouter()


@router.get("/", response_model=List[RateAuditResponse])
async def list_rate_audits(
    party_rate_slab_id: Optional[UUID] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """Rate audit rows, newest first. The page size is capped by configuration."""
    return list_audits(db, party_rate_slab_id, limit, offset)
