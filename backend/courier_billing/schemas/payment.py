"""
Party payment and allocation schemas.
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from courier_billing.schemas.invoice import InvoiceSummary


class AllocationItem(BaseModel):
    invoice_id: UUID
    amount: Decimal = Field(gt=0, decimal_places=2)


class PaymentAllocationCreate(BaseModel):
    party_payment_id: UUID
    allocations: List[AllocationItem] = Field(min_length=1)
    request_key: Optional[str] = Field(default=None, max_length=128)


class PartyPaymentCreate(BaseModel):
    party_id: UUID
    payment_date: date
    amount: Decimal = Field(gt=0, decimal_places=2)
    payment_method: Optional[str] = None
    reference_no: Optional[str] = None
    notes: Optional[str] = None
    allocations: List[AllocationItem] = []
    request_key: Optional[str] = Field(default=None, max_length=128)


class PartyPaymentResponse(BaseModel):
    id: UUID
    party_id: UUID
    payment_date: date
    amount: Decimal
    payment_method: Optional[str] = None
    reference_no: Optional[str] = None
    notes: Optional[str] = None
    request_key: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    allocated_amount: Optional[Decimal] = None

    class Config:
        from_attributes = True


class PaymentAllocationResponse(BaseModel):
    id: UUID
    party_payment_id: UUID
    invoice_id: UUID
    amount: Decimal
    request_key: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AllocationResultResponse(BaseModel):
    party_payment: PartyPaymentResponse
    allocations: List[PaymentAllocationResponse]
    invoices: List[InvoiceSummary]
    replayed: bool = False

    class Config:
        from_attributes = True
