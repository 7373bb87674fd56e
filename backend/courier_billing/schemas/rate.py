"""
Rate book schemas.
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Optional
from courier_billing.models.rate import RateAuditAction, ShipmentType


class PartyRateSlabWrite(BaseModel):
    party_id: UUID
    shipment_type: ShipmentType
    mode_id: UUID
    service_type_id: UUID
    distance_slab_id: UUID
    weight_slab_id: UUID
    base_rate: Decimal = Field(ge=0, decimal_places=2)
    fuel_pct: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    packing: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    handling: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    gst_pct: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    is_active: bool = True


class PartyRateSlabResponse(BaseModel):
    id: UUID
    party_id: UUID
    shipment_type: ShipmentType
    mode_id: UUID
    service_type_id: UUID
    distance_slab_id: UUID
    weight_slab_id: UUID
    base_rate: Decimal
    fuel_pct: Decimal
    packing: Decimal
    handling: Decimal
    gst_pct: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RateDefaultWrite(BaseModel):
    region_id: Optional[UUID] = None
    shipment_type: ShipmentType
    weight_slab_id: UUID
    base_rate: Decimal = Field(ge=0, decimal_places=2)
    extra_per_1000g: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    notes: Optional[str] = None


class RateDefaultResponse(BaseModel):
    id: UUID
    region_id: Optional[UUID] = None
    shipment_type: ShipmentType
    weight_slab_id: UUID
    base_rate: Decimal
    extra_per_1000g: Decimal
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class BreakdownResponse(BaseModel):
    base_rate: Decimal
    fuel_amount: Decimal
    pre_gst_total: Decimal
    gst_amount: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class ResolvedRateResponse(BaseModel):
    source: str
    rate_id: UUID
    slab_id: UUID
    slab_name: str
    base_rate: Decimal
    fuel_pct: Decimal
    packing: Decimal
    handling: Decimal
    gst_pct: Decimal
    extra_per_1000g: Optional[Decimal] = None
    breakdown: BreakdownResponse

    class Config:
        from_attributes = True


class RateAuditResponse(BaseModel):
    id: UUID
    party_rate_slab_id: UUID
    action: RateAuditAction
    changed_by: Optional[str] = None
    changed_at: datetime
    before_data: Optional[dict] = None
    after_data: Optional[dict] = None

    class Config:
        from_attributes = True
