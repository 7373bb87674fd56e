"""
Slab catalog API endpoints.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from courier_billing.api.deps import get_slab_catalog, require_rate_editor
from courier_billing.db.database import get_db
from courier_billing.models import User
from courier_billing.schemas.slab import (
    EnumerationResponse,
    EnumerationUpsert,
    WeightSlabCreate,
    WeightSlabResponse,
    WeightSlabUpdate,
)
from courier_billing.services.slab_catalog import SlabCatalog, list_enumeration, list_weight_slabs, upsert_enumeration

router = APIRouter()


@router.post("/refresh-cache", status_code=status.HTTP_200_OK)
async def refresh_slab_cache(
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
    user: User = Depends(require_rate_editor),
):
    """Force a reload of the cached weight slabs."""
    slabs = catalog.active_weight_slabs(db, force_reload=True)
    return {"message": "Slab cache refreshed", "active_weight_slabs": len(slabs)}


@router.get("/weight", response_model=List[WeightSlabResponse])
async def get_weight_slabs(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    """List weight slabs ordered by minimum weight."""
    return list_weight_slabs(db, include_inactive)


@router.post("/weight", response_model=WeightSlabResponse, status_code=status.HTTP_201_CREATED)
async def create_weight_slab(
    payload: WeightSlabCreate,
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
    user: User = Depends(require_rate_editor),
):
    """Create a weight slab. Its range may not overlap an active slab."""
    return catalog.create_weight_slab(db, payload.name.strip(), payload.min_weight_grams, payload.max_weight_grams)


@router.put("/weight/{slab_id}", response_model=WeightSlabResponse)
async def update_weight_slab(
    slab_id: UUID,
    payload: WeightSlabUpdate,
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
    user: User = Depends(require_rate_editor),
):
    return catalog.update_weight_slab(
        db,
        slab_id,
        payload.name.strip(),
        payload.min_weight_grams,
        payload.max_weight_grams,
        payload.is_active,
    )


@router.delete("/weight/{slab_id}", response_model=WeightSlabResponse)
async def deactivate_weight_slab(
    slab_id: UUID,
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
    user: User = Depends(require_rate_editor),
):
    """Deactivate a weight slab. Slabs are never hard-deleted."""
    return catalog.deactivate_weight_slab(db, slab_id)


@router.get("/{kind}", response_model=List[EnumerationResponse])
async def get_enumeration(
    kind: str,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    """List distance slabs, service types or modes."""
    return list_enumeration(db, kind, include_inactive)


@router.post("/{kind}", response_model=EnumerationResponse, status_code=status.HTTP_201_CREATED)
async def put_enumeration(
    kind: str,
    payload: EnumerationUpsert,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(require_rate_editor),
):
    """Insert or replace a distance slab, service type or mode by its code."""
    result = upsert_enumeration(db, kind, payload.code, payload.title.strip(), payload.is_active)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.row
