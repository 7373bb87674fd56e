"""
Invoice API endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from courier_billing.api.deps import get_slab_catalog, require_allocator
from courier_billing.db.database import get_db
from courier_billing.models import User
from courier_billing.schemas.invoice import (
    InvoiceAllocationsResponse,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceSummary,
    LedgerDiscrepancy,
)
from courier_billing.services.allocation_ledger import ledger_discrepancies
from courier_billing.services.invoicing import (
    LineItem,
    get_invoice,
    invoice_allocations,
    issue_invoice,
    list_invoices,
)
from courier_billing.services.slab_catalog import SlabCatalog

router = APIRouter()


@router.post("/", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    catalog: SlabCatalog = Depends(get_slab_catalog),
    user: User = Depends(require_allocator),
):
    """Issue an invoice. Lines without an amount are priced from the rate book."""
    items = [LineItem(**item.model_dump()) for item in invoice_data.items]
    return issue_invoice(
        db,
        catalog,
        invoice_data.party_id,
        invoice_data.invoice_number,
        invoice_data.invoice_date,
        items,
    )


@router.get("/", response_model=List[InvoiceSummary])
async def get_invoices(
    party_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """List invoices, optionally filtered by party."""
    return list_invoices(db, party_id)


@router.get("/reconciliation", response_model=List[LedgerDiscrepancy])
async def reconcile_invoices(
    party_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Invoices whose received amount disagrees with their allocations. Empty when the books are consistent."""
    return ledger_discrepancies(db, party_id)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def read_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    return get_invoice(db, invoice_id)


@router.get("/{invoice_id}/allocations", response_model=InvoiceAllocationsResponse)
async def read_invoice_allocations(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_allocator),
):
    """Allocations applied to this invoice, with its current total and received amount."""
    return InvoiceAllocationsResponse.model_validate(invoice_allocations(db, invoice_id), from_attributes=True)
