"""
Payment allocation ledger - applies party payments to invoices.

An invoice's received amount is a materialized view of its allocation rows:
after every write it is recomputed as SUM(allocation.amount), never
incremented. Each operation runs in one transaction:

1. lock the party payment row (and the target invoice rows)
2. insert or delete allocation rows
3. recompute received amounts for every touched invoice
4. check the balance rules, then commit

Any failure rolls the whole operation back.

Balance rules:
- an invoice's allocations may not exceed its total
- a payment's allocations may not exceed the payment amount
Over-allocation is rejected rather than clamped.

Retries: a request carrying a request key that was already recorded against
the same payment is a replay and returns the original allocations without
writing. Recording a payment works the same way, with the key scoped to the
party: a keyed resubmission returns the payment recorded the first time. Requests without a key are always new allocations, so an accidental
resubmission is only accepted if the balance rules still hold.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courier_billing.models import Invoice, PartyPayment, PaymentAllocation
from courier_billing.services.errors import ConflictError, NotFound, ValidationError
from courier_billing.services.parties import get_party
from courier_billing.services.price_calculator import round2, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class AllocationLine:
    invoice_id: UUID
    amount: Decimal


@dataclass
class AllocationResult:
    party_payment: PartyPayment
    allocations: List[PaymentAllocation] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)
    replayed: bool = False


def _normalize_lines(lines: Iterable[AllocationLine]) -> List[AllocationLine]:
    normalized = []
    for index, line in enumerate(lines, start=1):
        if line.invoice_id is None:
            raise ValidationError(f"Allocation {index}: invoice_id is required")
        if line.amount is None:
            raise ValidationError(f"Allocation {index}: amount is required")
        amount = to_decimal(line.amount)
        if amount <= 0:
            raise ValidationError(f"Allocation {index}: amount must be greater than zero")
        if amount != round2(amount):
            raise ValidationError(f"Allocation {index}: amount has more than 2 decimal places")
        normalized.append(AllocationLine(invoice_id=line.invoice_id, amount=round2(amount)))
    if not normalized:
        raise ValidationError("At least one allocation is required")
    return normalized


def _lock_payment(db: Session, party_payment_id: UUID) -> PartyPayment:
    payment = (
        db.query(PartyPayment)
        .filter(PartyPayment.id == party_payment_id)
        .with_for_update()
        .first()
    )
    if not payment:
        raise NotFound(f"Party payment {party_payment_id} not found")
    return payment


def _lock_invoices(db: Session, invoice_ids: Iterable[UUID]) -> Dict[UUID, Invoice]:
    # Locks are taken in id order so two allocators touching the same invoices cannot deadlock
    invoices = (
        db.query(Invoice)
        .filter(Invoice.id.in_(set(invoice_ids)))
        .order_by(Invoice.id)
        .with_for_update()
        .all()
    )
    return {invoice.id: invoice for invoice in invoices}


def allocation_sum(db: Session, invoice_id: UUID) -> Decimal:
    total = (
        db.query(func.sum(PaymentAllocation.amount))
        .filter(PaymentAllocation.invoice_id == invoice_id)
        .scalar()
    )
    return round2(to_decimal(total or 0))


def allocated_to_payment(db: Session, party_payment_id: UUID) -> Decimal:
    total = (
        db.query(func.sum(PaymentAllocation.amount))
        .filter(PaymentAllocation.party_payment_id == party_payment_id)
        .scalar()
    )
    return round2(to_decimal(total or 0))


def recompute_received(db: Session, invoice: Invoice) -> Decimal:
    """Set the invoice's received amount to the sum of its allocations."""
    received = allocation_sum(db, invoice.id)
    if received > to_decimal(invoice.total_amount):
        raise ValidationError(
            f"Allocations to invoice {invoice.invoice_number} would exceed its total",
            {
                "invoice_id": str(invoice.id),
                "total_amount": str(invoice.total_amount),
                "allocated": str(received),
            },
        )
    invoice.received_amount = received
    return received


def _check_payment_balance(db: Session, payment: PartyPayment) -> None:
    allocated = allocated_to_payment(db, payment.id)
    if allocated > to_decimal(payment.amount):
        raise ValidationError(
            "Allocations would exceed the payment amount",
            {
                "party_payment_id": str(payment.id),
                "payment_amount": str(payment.amount),
                "allocated": str(allocated),
            },
        )


def _apply(
    db: Session,
    payment: PartyPayment,
    lines: List[AllocationLine],
    request_key: Optional[str],
) -> Tuple[List[PaymentAllocation], List[Invoice]]:
    invoices = _lock_invoices(db, (line.invoice_id for line in lines))
    unknown = sorted({str(line.invoice_id) for line in lines if line.invoice_id not in invoices})
    if unknown:
        raise ValidationError(f"Unknown invoice ids: {', '.join(unknown)}", {"invoice_ids": unknown})
    foreign = sorted(str(inv.id) for inv in invoices.values() if inv.party_id != payment.party_id)
    if foreign:
        raise ValidationError(
            f"Invoices do not belong to the paying party: {', '.join(foreign)}",
            {"invoice_ids": foreign},
        )

    allocations = []
    for line in lines:
        allocation = PaymentAllocation(
            party_payment_id=payment.id,
            invoice_id=line.invoice_id,
            amount=line.amount,
            request_key=request_key,
        )
        db.add(allocation)
        allocations.append(allocation)
    db.flush()

    # All inserts are flushed before any invoice is recomputed
    for invoice in invoices.values():
        recompute_received(db, invoice)
    _check_payment_balance(db, payment)
    db.flush()
    return allocations, list(invoices.values())


def _clean_key(request_key: Optional[str]) -> Optional[str]:
    if request_key is None or not request_key.strip():
        return None
    return request_key.strip()


def _key_conflict(request_key: str, what: str) -> ConflictError:
    return ConflictError(
        f"Request key {request_key} was already used with different {what}",
        {"request_key": request_key},
    )


def _keyed_allocations(db: Session, payment: PartyPayment, request_key: str) -> List[PaymentAllocation]:
    return (
        db.query(PaymentAllocation)
        .filter(
            PaymentAllocation.party_payment_id == payment.id,
            PaymentAllocation.request_key == request_key,
        )
        .order_by(PaymentAllocation.created_at, PaymentAllocation.id)
        .all()
    )


def _replayed_result(db: Session, payment: PartyPayment, prior: List[PaymentAllocation]) -> AllocationResult:
    invoices = []
    if prior:
        invoices = db.query(Invoice).filter(Invoice.id.in_({a.invoice_id for a in prior})).all()
    return AllocationResult(party_payment=payment, allocations=prior, invoices=invoices, replayed=True)


def _same_lines(prior: List[PaymentAllocation], lines: List[AllocationLine]) -> bool:
    recorded = Counter((a.invoice_id, round2(to_decimal(a.amount))) for a in prior)
    requested = Counter((line.invoice_id, line.amount) for line in lines)
    return recorded == requested


def _replay(
    db: Session,
    payment: PartyPayment,
    lines: List[AllocationLine],
    request_key: str,
) -> Optional[AllocationResult]:
    prior = _keyed_allocations(db, payment, request_key)
    if not prior:
        return None
    if not _same_lines(prior, lines):
        raise _key_conflict(request_key, "allocations")
    return _replayed_result(db, payment, prior)


def _replay_payment(
    db: Session,
    party_id: UUID,
    payment_date: date,
    amount: Decimal,
    lines: List[AllocationLine],
    request_key: str,
) -> Optional[AllocationResult]:
    payment = (
        db.query(PartyPayment)
        .filter(PartyPayment.party_id == party_id, PartyPayment.request_key == request_key)
        .with_for_update()
        .first()
    )
    if payment is None:
        return None
    if to_decimal(payment.amount) != amount or payment.payment_date != payment_date:
        raise _key_conflict(request_key, "payment details")
    prior = _keyed_allocations(db, payment, request_key)
    if not _same_lines(prior, lines):
        raise _key_conflict(request_key, "allocations")
    return _replayed_result(db, payment, prior)


def allocate(
    db: Session,
    party_payment_id: UUID,
    lines: Iterable[AllocationLine],
    actor: Optional[str] = None,
    request_key: Optional[str] = None,
) -> AllocationResult:
    """Allocate part of an existing party payment to one or more invoices."""
    lines = _normalize_lines(lines)
    request_key = _clean_key(request_key)
    try:
        payment = _lock_payment(db, party_payment_id)
        if request_key:
            replayed = _replay(db, payment, lines, request_key)
            if replayed is not None:
                db.rollback()
                logger.info(f"Replayed allocation request {request_key} on payment {payment.id}")
                return replayed
        allocations, invoices = _apply(db, payment, lines, request_key)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning(f"Allocation against payment {party_payment_id} rejected: {exc}")
        raise

    for row in [payment, *allocations, *invoices]:
        db.refresh(row)
    logger.info(
        f"Allocated {sum(a.amount for a in allocations)} of payment {payment.id} "
        f"across {len(invoices)} invoice(s) by {actor}"
    )
    return AllocationResult(party_payment=payment, allocations=allocations, invoices=invoices)


def record_payment(
    db: Session,
    party_id: UUID,
    payment_date: date,
    amount: Decimal,
    payment_method: Optional[str] = None,
    reference_no: Optional[str] = None,
    notes: Optional[str] = None,
    lines: Optional[Iterable[AllocationLine]] = None,
    actor: Optional[str] = None,
    request_key: Optional[str] = None,
) -> AllocationResult:
    """
    Record a party payment and, optionally, allocate it in the same transaction.

    With a request key, a resubmission for the same party returns the payment
    and allocations recorded the first time (``replayed=True``). Reusing the
    key with a different amount, date or allocation list is a conflict.
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if amount != round2(amount):
        raise ValidationError("Payment amount has more than 2 decimal places")
    lines = _normalize_lines(lines) if lines else []
    request_key = _clean_key(request_key)
    get_party(db, party_id)

    try:
        if request_key:
            replayed = _replay_payment(db, party_id, payment_date, amount, lines, request_key)
            if replayed is not None:
                db.rollback()
                logger.info(f"Replayed payment request {request_key} for party {party_id}")
                return replayed
        payment = PartyPayment(
            party_id=party_id,
            payment_date=payment_date,
            amount=amount,
            payment_method=payment_method,
            reference_no=reference_no,
            notes=notes,
            request_key=request_key,
            created_by=actor,
        )
        try:
            with db.begin_nested():
                db.add(payment)
                db.flush()
        except IntegrityError:
            # Another request with the same key committed first
            replayed = _replay_payment(db, party_id, payment_date, amount, lines, request_key) if request_key else None
            if replayed is None:
                raise
            db.rollback()
            logger.info(f"Replayed payment request {request_key} for party {party_id} after a concurrent insert")
            return replayed
        allocations: List[PaymentAllocation] = []
        invoices: List[Invoice] = []
        if lines:
            allocations, invoices = _apply(db, payment, lines, request_key)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning(f"Payment for party {party_id} rejected: {exc}")
        raise

    for row in [payment, *allocations, *invoices]:
        db.refresh(row)
    logger.info(f"Recorded payment {payment.id} of {amount} for party {party_id} by {actor}")
    return AllocationResult(party_payment=payment, allocations=allocations, invoices=invoices)


def reverse_allocation(db: Session, allocation_id: UUID, actor: Optional[str] = None) -> Invoice:
    """Delete one allocation and recompute its invoice. Returns the updated invoice."""
    try:
        found = db.query(PaymentAllocation.party_payment_id).filter(PaymentAllocation.id == allocation_id).first()
        if not found:
            raise NotFound(f"Payment allocation {allocation_id} not found")
        _lock_payment(db, found.party_payment_id)
        # A concurrent reversal may have removed the row while we waited for the lock
        allocation = db.query(PaymentAllocation).filter(PaymentAllocation.id == allocation_id).first()
        if not allocation:
            raise NotFound(f"Payment allocation {allocation_id} not found")
        invoice = _lock_invoices(db, [allocation.invoice_id])[allocation.invoice_id]
        amount = allocation.amount
        db.delete(allocation)
        db.flush()
        recompute_received(db, invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)
    logger.info(f"Reversed allocation {allocation_id} ({amount}) on invoice {invoice.invoice_number} by {actor}")
    return invoice


def list_payments(db: Session, party_id: UUID) -> List[Tuple[PartyPayment, Decimal]]:
    """Party payments, newest first, each with the amount allocated so far."""
    get_party(db, party_id)
    allocated = (
        db.query(
            PaymentAllocation.party_payment_id,
            func.sum(PaymentAllocation.amount).label("allocated"),
        )
        .group_by(PaymentAllocation.party_payment_id)
        .subquery()
    )
    rows = (
        db.query(PartyPayment, allocated.c.allocated)
        .outerjoin(allocated, allocated.c.party_payment_id == PartyPayment.id)
        .filter(PartyPayment.party_id == party_id)
        .order_by(PartyPayment.payment_date.desc(), PartyPayment.created_at.desc())
        .all()
    )
    return [(payment, round2(to_decimal(total or 0))) for payment, total in rows]


def ledger_discrepancies(db: Session, party_id: Optional[UUID] = None) -> List[Dict[str, str]]:
    """Invoices whose stored received amount differs from their allocation sum."""
    query = db.query(Invoice)
    if party_id is not None:
        query = query.filter(Invoice.party_id == party_id)
    problems = []
    for invoice in query.all():
        expected = allocation_sum(db, invoice.id)
        if round2(to_decimal(invoice.received_amount or 0)) != expected:
            problems.append({
                "invoice_id": str(invoice.id),
                "received_amount": str(invoice.received_amount),
                "allocation_sum": str(expected),
            })
    return problems
