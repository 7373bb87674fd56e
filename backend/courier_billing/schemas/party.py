"""
Party schemas.
"""
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from courier_billing.schemas.invoice import InvoiceSummary


class RegionCreate(BaseModel):
    code: str
    name: str


class RegionResponse(BaseModel):
    id: UUID
    code: str
    name: str

    class Config:
        from_attributes = True


class PartyCreate(BaseModel):
    name: str
    region_id: Optional[UUID] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None


class PartyResponse(BaseModel):
    id: UUID
    name: str
    region_id: Optional[UUID] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class OutstandingSummaryResponse(BaseModel):
    party_id: UUID
    total_invoices: int
    total_open: int
    total_outstanding: Decimal
    open_invoices: List[InvoiceSummary]

    class Config:
        from_attributes = True
