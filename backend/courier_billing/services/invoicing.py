"""
Invoicing - aggregates priced line items into invoices and reports balances.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from courier_billing.models import Invoice, InvoiceItem, PartyPayment, PaymentAllocation
from courier_billing.services.errors import ConflictError, NotFound, ValidationError
from courier_billing.services.parties import get_party
from courier_billing.services.price_calculator import round2
from courier_billing.services.rate_resolver import RateQuery, Unresolved, resolve_rate
from courier_billing.services.slab_catalog import SlabCatalog

logger = logging.getLogger(__name__)


@dataclass
class LineItem:
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    # Booking classification, used when no amount is given
    shipment_type: Optional[str] = None
    mode_id: Optional[UUID] = None
    service_type_id: Optional[UUID] = None
    distance_slab_id: Optional[UUID] = None
    weight_grams: Optional[int] = None
    slab_id: Optional[UUID] = None
    region_id: Optional[UUID] = None


@dataclass
class OutstandingSummary:
    party_id: UUID
    total_invoices: int
    total_open: int
    total_outstanding: Decimal
    open_invoices: List[Invoice] = field(default_factory=list)


def _price_item(db: Session, catalog: SlabCatalog, party_id: UUID, line_no: int, item: LineItem) -> InvoiceItem:
    if item.amount is not None:
        amount = round2(item.amount)
        if amount < 0:
            raise ValidationError(f"Line {line_no}: amount cannot be negative")
        return InvoiceItem(line_no=line_no, description=item.description, weight_grams=item.weight_grams, amount=amount)

    required = ("shipment_type", "mode_id", "service_type_id", "distance_slab_id")
    missing = [name for name in required if getattr(item, name) is None]
    if missing:
        raise ValidationError(f"Line {line_no}: amount or booking classification required (missing {', '.join(missing)})")

    result = resolve_rate(
        db,
        catalog,
        RateQuery(
            party_id=party_id,
            shipment_type=item.shipment_type,
            mode_id=item.mode_id,
            service_type_id=item.service_type_id,
            distance_slab_id=item.distance_slab_id,
            weight_grams=item.weight_grams,
            slab_id=item.slab_id,
            region_id=item.region_id,
        ),
    )
    if isinstance(result, Unresolved):
        raise ValidationError(
            f"Line {line_no}: {result.message}",
            {"line_no": line_no, "reason": result.reason.value},
        )
    return InvoiceItem(
        line_no=line_no,
        description=item.description or result.slab_name,
        weight_grams=item.weight_grams,
        amount=result.breakdown.total,
        rate_source=result.source,
        rate_row_id=result.rate_id,
    )


def issue_invoice(
    db: Session,
    catalog: SlabCatalog,
    party_id: UUID,
    invoice_number: str,
    invoice_date: date,
    items: List[LineItem],
) -> Invoice:
    """Price every line and store the invoice. Nothing is written if any line fails."""
    invoice_number = (invoice_number or "").strip()
    if not invoice_number:
        raise ValidationError("Invoice number cannot be empty")
    if not items:
        raise ValidationError("An invoice needs at least one line item")
    get_party(db, party_id)
    if db.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first():
        raise ConflictError(f"Invoice number {invoice_number} already exists")

    try:
        priced = [_price_item(db, catalog, party_id, line_no, item) for line_no, item in enumerate(items, start=1)]
        total = round2(sum((line.amount for line in priced), Decimal("0")))
        invoice = Invoice(
            party_id=party_id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            total_amount=total,
            received_amount=Decimal("0.00"),
            items=priced,
        )
        db.add(invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)
    logger.info(f"Issued invoice {invoice.invoice_number} for party {party_id}: total {total}")
    return invoice


def get_invoice(db: Session, invoice_id: UUID) -> Invoice:
    invoice = (
        db.query(Invoice)
        .options(selectinload(Invoice.items))
        .filter(Invoice.id == invoice_id)
        .first()
    )
    if not invoice:
        raise NotFound(f"Invoice {invoice_id} not found")
    return invoice


def list_invoices(db: Session, party_id: Optional[UUID] = None) -> List[Invoice]:
    query = db.query(Invoice)
    if party_id is not None:
        query = query.filter(Invoice.party_id == party_id)
    return query.order_by(Invoice.invoice_date.desc(), Invoice.invoice_number.desc()).all()


def invoice_allocations(db: Session, invoice_id: UUID) -> Dict[str, Any]:
    """Allocations applied to an invoice, newest first, with its current balance."""
    invoice = get_invoice(db, invoice_id)
    rows = (
        db.query(PaymentAllocation, PartyPayment)
        .join(PartyPayment, PartyPayment.id == PaymentAllocation.party_payment_id)
        .filter(PaymentAllocation.invoice_id == invoice_id)
        .order_by(PaymentAllocation.created_at.desc(), PaymentAllocation.id.desc())
        .all()
    )
    allocations = [
        {
            "id": allocation.id,
            "party_payment_id": allocation.party_payment_id,
            "invoice_id": allocation.invoice_id,
            "amount": allocation.amount,
            "request_key": allocation.request_key,
            "created_at": allocation.created_at,
            "payment_date": payment.payment_date,
            "party_payment_amount": payment.amount,
            "payment_method": payment.payment_method,
            "reference_no": payment.reference_no,
        }
        for allocation, payment in rows
    ]
    return {"invoice": invoice, "allocations": allocations}


def party_outstanding(db: Session, party_id: UUID) -> OutstandingSummary:
    get_party(db, party_id)
    invoices = list_invoices(db, party_id)
    open_invoices = [inv for inv in invoices if inv.outstanding_amount > 0]
    total_outstanding = sum((inv.outstanding_amount for inv in open_invoices), Decimal("0.00"))
    return OutstandingSummary(
        party_id=party_id,
        total_invoices=len(invoices),
        total_open=len(open_invoices),
        total_outstanding=round2(total_outstanding),
        open_invoices=open_invoices,
    )
