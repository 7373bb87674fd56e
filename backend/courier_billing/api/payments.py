"""
Party payment and payment allocation API endpoints.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from courier_billing.api.deps import require_allocator
from courier_billing.db.database import get_db
from courier_billing.models import User
from courier_billing.schemas.invoice import InvoiceSummary
from courier_billing.schemas.payment import (
    AllocationResultResponse,
    PartyPaymentCreate,
    PartyPaymentResponse,
    PaymentAllocationCreate,
)
from courier_billing.services.allocation_ledger import (
    AllocationLine,
    allocate,
    list_payments,
    record_payment,
    reverse_allocation,
)

logger = logging.getLogger(__name__)
party_payments_router = APIRouter()
allocations_router = APIRouter()


@party_payments_router.post("/", response_model=AllocationResultResponse, status_code=status.HTTP_201_CREATED)
async def create_party_payment(
    payment_data: PartyPaymentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Record a party payment, optionally allocating it to invoices in the same transaction."""
    lines = [AllocationLine(invoice_id=a.invoice_id, amount=a.amount) for a in payment_data.allocations]
    result = record_payment(
        db,
        payment_data.party_id,
        payment_data.payment_date,
        payment_data.amount,
        payment_method=payment_data.payment_method,
        reference_no=payment_data.reference_no,
        notes=payment_data.notes,
        lines=lines,
        actor=user.username,
        request_key=payment_data.request_key,
    )
    return AllocationResultResponse.model_validate(result)


@party_payments_router.get("/", response_model=List[PartyPaymentResponse])
async def get_party_payments(
    party_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """List a party's payments, newest first, with the amount allocated from each."""
    results = []
    for payment, allocated in list_payments(db, party_id):
        response = PartyPaymentResponse.model_validate(payment)
        response.allocated_amount = allocated
        results.append(response)
    return results


@allocations_router.post("/", response_model=AllocationResultResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_allocations(
    allocation_data: PaymentAllocationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """
    Allocate an existing party payment to invoices.

    Resubmitting with the same request_key returns the original allocations
    without writing anything.
    """
    lines = [AllocationLine(invoice_id=a.invoice_id, amount=a.amount) for a in allocation_data.allocations]
    result = allocate(
        db,
        allocation_data.party_payment_id,
        lines,
        actor=user.username,
        request_key=allocation_data.request_key,
    )
    return AllocationResultResponse.model_validate(result)


@allocations_router.delete("/{allocation_id}", response_model=InvoiceSummary)
async def delete_payment_allocation(
    allocation_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Reverse one allocation. Returns the invoice with its recomputed balance."""
    return reverse_allocation(db, allocation_id, actor=user.username)
