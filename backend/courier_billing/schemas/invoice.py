"""
Invoice schemas.
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from courier_billing.models.rate import ShipmentType


class InvoiceItemCreate(BaseModel):
    """A line is either priced manually (amount) or through the rate book (classification)."""
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    shipment_type: Optional[ShipmentType] = None
    mode_id: Optional[UUID] = None
    service_type_id: Optional[UUID] = None
    distance_slab_id: Optional[UUID] = None
    weight_grams: Optional[int] = Field(default=None, ge=0)
    slab_id: Optional[UUID] = None
    region_id: Optional[UUID] = None


class InvoiceCreate(BaseModel):
    party_id: UUID
    invoice_number: str = Field(min_length=1)
    invoice_date: date
    items: List[InvoiceItemCreate] = Field(min_length=1)


class InvoiceItemResponse(BaseModel):
    id: UUID
    line_no: int
    description: Optional[str] = None
    weight_grams: Optional[int] = None
    amount: Decimal
    rate_source: Optional[str] = None
    rate_row_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class InvoiceSummary(BaseModel):
    id: UUID
    party_id: UUID
    invoice_number: str
    invoice_date: date
    total_amount: Decimal
    received_amount: Decimal
    outstanding_amount: Decimal

    class Config:
        from_attributes = True


class InvoiceResponse(InvoiceSummary):
    created_at: datetime
    items: List[InvoiceItemResponse] = []


class InvoiceAllocationRow(BaseModel):
    id: UUID
    party_payment_id: UUID
    invoice_id: UUID
    amount: Decimal
    request_key: Optional[str] = None
    created_at: datetime
    payment_date: date
    party_payment_amount: Decimal
    payment_method: Optional[str] = None
    reference_no: Optional[str] = None


class InvoiceAllocationsResponse(BaseModel):
    invoice: InvoiceSummary
    allocations: List[InvoiceAllocationRow]


class LedgerDiscrepancy(BaseModel):
    invoice_id: UUID
    received_amount: Decimal
    allocation_sum: Decimal
