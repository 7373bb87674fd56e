"""
Party API endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from courier_billing.api.deps import require_allocator, require_rate_editor
from courier_billing.db.database import get_db
from courier_billing.models import Party, Region, User
from courier_billing.schemas.party import (
    OutstandingSummaryResponse,
    PartyCreate,
    PartyResponse,
    RegionCreate,
    RegionResponse,
)
from courier_billing.services.invoicing import party_outstanding
from courier_billing.services.parties import create_party, create_region, get_party

router = APIRouter()


@router.get("/regions", response_model=List[RegionResponse])
async def list_regions(
    db: Session = Depends(get_db)
):
    return db.query(Region).order_by(Region.name).all()


@router.post("/regions", response_model=RegionResponse, status_code=status.HTTP_201_CREATED)
async def add_region(
    region_data: RegionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    return create_region(db, region_data.code, region_data.name)


@router.post("/", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def add_party(
    party_data: PartyCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Create a new party."""
    return create_party(
        db,
        party_data.name,
        region_id=party_data.region_id,
        contact_name=party_data.contact_name,
        contact_email=party_data.contact_email,
    )


@router.get("/", response_model=List[PartyResponse])
async def list_parties(
    db: Session = Depends(get_db)
):
    """List all parties."""
    return db.query(Party).order_by(Party.name).all()


@router.get("/{party_id}", response_model=PartyResponse)
async def read_party(
    party_id: UUID,
    db: Session = Depends(get_db)
):
    """Get a specific party."""
    return get_party(db, party_id)


@router.get("/{party_id}/outstanding", response_model=OutstandingSummaryResponse)
async def read_party_outstanding(
    party_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Outstanding balance and open invoices for a party."""
    return OutstandingSummaryResponse.model_validate(party_outstanding(db, party_id))
