"""
Rate book API endpoints: resolution, party rate slabs and region defaults.
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from courier_billing.api.deps import get_slab_catalog, require_rate_editor
from courier_billing.db.database import get_db
from courier_billing.models import ShipmentType, User
from courier_billing.schemas.rate import (
    PartyRateSlabResponse,
    PartyRateSlabWrite,
    RateDefaultResponse,
    RateDefaultWrite,
    ResolvedRateResponse,
)
from courier_billing.services import rate_table
from courier_billing.services.errors import ValidationError
from courier_billing.services.rate_resolver import RateQuery, Unresolved, resolve_rate
from courier_billing.services.slab_catalog import SlabCatalog

router = APIRouter()


def _shipment_type(value: str) -> ShipmentType:
    try:
        return ShipmentType((value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown shipment_type: {value}")


@router.get("/resolve", response_model=ResolvedRateResponse)
async def resolve(
    party_id: UUID,
    shipment_type: str,
    mode_id: UUID,
    service_type_id: UUID,
    distance_slab_id: UUID,
    weight_grams: Optional[Decimal] = Query(default=None, ge=0),
    slab_id: Optional[UUID] = None,
    region_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
):
    """
    Resolve the rate for a booking and return its price breakdown.

    Returns 404 with a reason when no slab or rate is configured.
    """
    result = resolve_rate(
        db,
        catalog,
        RateQuery(
            party_id=party_id,
            shipment_type=_shipment_type(shipment_type),
            mode_id=mode_id,
            service_type_id=service_type_id,
            distance_slab_id=distance_slab_id,
            weight_grams=weight_grams,
            slab_id=slab_id,
            region_id=region_id,
        ),
    )
    if isinstance(result, Unresolved):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "No rate configured",
                "reason": result.reason.value,
                "message": result.message,
                "slab_id": str(result.slab_id) if result.slab_id else None,
                "slab_name": result.slab_name,
            },
        )
    return result


@router.get("/party-slabs", response_model=List[PartyRateSlabResponse])
async def list_party_slabs(
    party_id: Optional[UUID] = None,
    shipment_type: Optional[str] = None,
    mode_id: Optional[UUID] = None,
    service_type_id: Optional[UUID] = None,
    distance_slab_id: Optional[UUID] = None,
    weight_slab_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
):
    """List party rate slabs, optionally filtered."""
    filters = {
        "party_id": party_id,
        "shipment_type": _shipment_type(shipment_type) if shipment_type else None,
        "mode_id": mode_id,
        "service_type_id": service_type_id,
        "distance_slab_id": distance_slab_id,
        "weight_slab_id": weight_slab_id,
    }
    return rate_table.list_party_rate_slabs(db, filters)


@router.post("/party-slabs", response_model=PartyRateSlabResponse, status_code=status.HTTP_201_CREATED)
async def upsert_party_slab(
    payload: PartyRateSlabWrite,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    """Create a party rate slab, or replace the rates of the one with the same key."""
    result = rate_table.upsert_party_rate_slab(db, payload.model_dump(), actor=user.username)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.row


@router.put("/party-slabs/{rate_id}", response_model=PartyRateSlabResponse)
async def update_party_slab(
    rate_id: UUID,
    payload: PartyRateSlabWrite,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    """Update a party rate slab by id. 409 if it would duplicate another row's key."""
    return rate_table.update_party_rate_slab(db, rate_id, payload.model_dump(), actor=user.username)


@router.delete("/party-slabs/{rate_id}", response_model=PartyRateSlabResponse)
async def deactivate_party_slab(
    rate_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    """Soft-delete a party rate slab."""
    return rate_table.deactivate_party_rate_slab(db, rate_id, actor=user.username)


@router.get("/defaults", response_model=List[RateDefaultResponse])
async def list_defaults(
    region_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
):
    """List region and global default rates."""
    return rate_table.list_rate_defaults(db, region_id)


@router.post("/defaults", response_model=RateDefaultResponse, status_code=status.HTTP_201_CREATED)
async def upsert_default(
    payload: RateDefaultWrite,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    """Insert or replace a default rate by (region, shipment type, weight slab)."""
    result = rate_table.upsert_rate_default(db, payload.model_dump())
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.row
