import uuid
from datetime import date
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from courier_billing.models import Invoice, PartyPayment, PaymentAllocation
from courier_billing.services import allocation_ledger
from courier_billing.services.allocation_ledger import (
    AllocationLine,
    allocate,
    allocation_sum,
    ledger_discrepancies,
    list_payments,
    record_payment,
    reverse_allocation,
)
from courier_billing.services.errors import ConflictError, NotFound, ValidationError
from courier_billing.services.invoicing import LineItem, issue_invoice, party_outstanding
from courier_billing.services.parties import create_party


def _invoice(db, catalog, party, total, number=None):
    return issue_invoice(
        db,
        catalog,
        party.id,
        number or f"INV-{uuid.uuid4().hex[:8]}",
        date(2024, 4, 1),
        [LineItem(description="Consignments", amount=Decimal(total))],
    )


def _payment(db, party, amount):
    return record_payment(db, party.id, date(2024, 4, 15), Decimal(amount), payment_method="neft").party_payment


def _line(invoice, amount):
    return AllocationLine(invoice_id=invoice.id, amount=Decimal(amount))


@pytest.fixture
def invoice(db, catalog, seeded):
    return _invoice(db, catalog, seeded.party, "1000.00", number="INV-1001")


def test_partial_then_full_allocation(db, seeded, invoice):
    first = _payment(db, seeded.party, "300.00")
    allocate(db, first.id, [_line(invoice, "300.00")], actor="operator")
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("300.00")
    assert invoice.outstanding_amount == Decimal("700.00")

    second = _payment(db, seeded.party, "700.00")
    allocate(db, second.id, [_line(invoice, "700.00")], actor="operator")
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("1000.00")
    assert invoice.outstanding_amount == Decimal("0.00")

    # Resubmitting the first call without a key would over-pay the invoice
    with pytest.raises(ValidationError):
        allocate(db, first.id, [_line(invoice, "300.00")], actor="operator")
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("1000.00")


def test_one_payment_across_several_invoices(db, catalog, seeded, invoice):
    other = _invoice(db, catalog, seeded.party, "250.00")
    payment = _payment(db, seeded.party, "600.00")

    result = allocate(db, payment.id, [_line(invoice, "400.00"), _line(other, "200.00")])

    assert {i.id: i.received_amount for i in result.invoices} == {
        invoice.id: Decimal("400.00"),
        other.id: Decimal("200.00"),
    }
    summary = party_outstanding(db, seeded.party.id)
    assert summary.total_outstanding == Decimal("650.00")
    assert summary.total_open == 2


def test_payment_recorded_with_allocations_in_one_step(db, seeded, invoice):
    result = record_payment(
        db,
        seeded.party.id,
        date(2024, 4, 15),
        Decimal("500.00"),
        lines=[_line(invoice, "500.00")],
        actor="operator",
    )

    assert len(result.allocations) == 1
    assert result.invoices[0].received_amount == Decimal("500.00")
    assert result.party_payment.created_by == "operator"


def test_over_allocating_an_invoice_is_rejected_and_nothing_changes(db, seeded, invoice):
    payment = _payment(db, seeded.party, "2000.00")

    with pytest.raises(ValidationError) as excinfo:
        allocate(db, payment.id, [_line(invoice, "1000.01")])

    assert excinfo.value.details["allocated"] == "1000.01"
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("0.00")
    assert db.query(PaymentAllocation).count() == 0


def test_allocating_more_than_the_payment_is_rejected(db, catalog, seeded, invoice):
    other = _invoice(db, catalog, seeded.party, "500.00")
    payment = _payment(db, seeded.party, "600.00")

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [_line(invoice, "400.00"), _line(other, "300.00")])

    assert db.query(PaymentAllocation).count() == 0
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("0.00")


def test_invoice_of_another_party_is_rejected(db, catalog, seeded, invoice):
    stranger = create_party(db, "Other Co")
    payment = _payment(db, stranger, "100.00")

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [_line(invoice, "100.00")])


@pytest.mark.parametrize("amount", ["0", "-5.00", "10.001"])
def test_bad_line_amounts_are_rejected(db, seeded, invoice, amount):
    payment = _payment(db, seeded.party, "100.00")

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [_line(invoice, amount)])


def test_unknown_invoice_and_payment(db, seeded, invoice):
    payment = _payment(db, seeded.party, "100.00")

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [AllocationLine(invoice_id=uuid.uuid4(), amount=Decimal("1.00"))])
    with pytest.raises(NotFound):
        allocate(db, uuid.uuid4(), [_line(invoice, "1.00")])


def test_empty_allocation_list_is_rejected(db, seeded):
    payment = _payment(db, seeded.party, "100.00")

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [])


def test_replay_with_the_same_request_key_is_a_no_op(db, seeded, invoice):
    payment = _payment(db, seeded.party, "1000.00")
    lines = [_line(invoice, "300.00")]

    first = allocate(db, payment.id, lines, request_key="req-1")
    again = allocate(db, payment.id, lines, request_key="req-1")

    assert first.replayed is False
    assert again.replayed is True
    assert [a.id for a in again.allocations] == [a.id for a in first.allocations]
    assert db.query(PaymentAllocation).count() == 1
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("300.00")


def test_reused_request_key_with_different_lines_conflicts(db, seeded, invoice):
    payment = _payment(db, seeded.party, "1000.00")
    allocate(db, payment.id, [_line(invoice, "300.00")], request_key="req-1")

    with pytest.raises(ConflictError):
        allocate(db, payment.id, [_line(invoice, "400.00")], request_key="req-1")

    assert allocation_sum(db, invoice.id) == Decimal("300.00")


def test_unkeyed_resubmission_is_a_new_allocation_within_the_balance_rules(db, seeded, invoice):
    payment = _payment(db, seeded.party, "600.00")
    allocate(db, payment.id, [_line(invoice, "300.00")])
    allocate(db, payment.id, [_line(invoice, "300.00")])

    with pytest.raises(ValidationError):
        allocate(db, payment.id, [_line(invoice, "300.00")])

    db.refresh(invoice)
    assert invoice.received_amount == Decimal("600.00")


def test_reversal_recomputes_the_invoice(db, seeded, invoice):
    payment = _payment(db, seeded.party, "1000.00")
    first = allocate(db, payment.id, [_line(invoice, "300.00")]).allocations[0]
    allocate(db, payment.id, [_line(invoice, "200.00")])

    updated = reverse_allocation(db, first.id, actor="operator")

    assert updated.received_amount == Decimal("200.00")
    assert updated.outstanding_amount == Decimal("800.00")
    with pytest.raises(NotFound):
        reverse_allocation(db, first.id)


def test_payment_listing_reports_allocated_amounts(db, seeded, invoice):
    payment = _payment(db, seeded.party, "500.00")
    allocate(db, payment.id, [_line(invoice, "120.00")])
    _payment(db, seeded.party, "80.00")

    listed = {p.id: allocated for p, allocated in list_payments(db, seeded.party.id)}

    assert listed[payment.id] == Decimal("120.00")
    assert sorted(listed.values()) == [Decimal("0.00"), Decimal("120.00")]


def test_reconciliation_flags_a_tampered_received_amount(db, seeded, invoice):
    payment = _payment(db, seeded.party, "500.00")
    allocate(db, payment.id, [_line(invoice, "100.00")])
    assert ledger_discrepancies(db) == []

    invoice.received_amount = Decimal("150.00")
    db.commit()

    problems = ledger_discrepancies(db, seeded.party.id)
    assert problems == [{
        "invoice_id": str(invoice.id),
        "received_amount": "150.00",
        "allocation_sum": "100.00",
    }]


def test_keyed_payment_resubmission_is_a_no_op(db, seeded, invoice):
    def submit():
        return record_payment(
            db,
            seeded.party.id,
            date(2024, 4, 15),
            Decimal("300.00"),
            lines=[_line(invoice, "300.00")],
            request_key="k1",
        )

    first = submit()
    again = submit()

    assert first.replayed is False
    assert again.replayed is True
    assert again.party_payment.id == first.party_payment.id
    assert [a.id for a in again.allocations] == [a.id for a in first.allocations]
    assert db.query(PartyPayment).count() == 1
    assert db.query(PaymentAllocation).count() == 1
    db.refresh(invoice)
    assert invoice.received_amount == Decimal("300.00")


def test_keyed_payment_without_allocations_is_replayed(db, seeded):
    first = record_payment(db, seeded.party.id, date(2024, 4, 15), Decimal("80.00"), request_key="cash-1")
    again = record_payment(db, seeded.party.id, date(2024, 4, 15), Decimal("80.00"), request_key="cash-1")

    assert again.replayed is True
    assert again.party_payment.id == first.party_payment.id
    assert again.allocations == []
    assert db.query(PartyPayment).count() == 1


@pytest.mark.parametrize(
    "amount, payment_date, allocated",
    [
        ("400.00", date(2024, 4, 15), "300.00"),
        ("300.00", date(2024, 4, 16), "300.00"),
        ("300.00", date(2024, 4, 15), "200.00"),
    ],
)
def test_payment_key_reused_with_different_details_conflicts(db, seeded, invoice, amount, payment_date, allocated):
    record_payment(
        db, seeded.party.id, date(2024, 4, 15), Decimal("300.00"),
        lines=[_line(invoice, "300.00")], request_key="k1",
    )

    with pytest.raises(ConflictError):
        record_payment(
            db, seeded.party.id, payment_date, Decimal(amount),
            lines=[_line(invoice, allocated)], request_key="k1",
        )

    assert db.query(PartyPayment).count() == 1
    assert allocation_sum(db, invoice.id) == Decimal("300.00")


def test_payment_keys_are_scoped_to_the_party(db, seeded):
    other = create_party(db, "Other Co")

    record_payment(db, seeded.party.id, date(2024, 4, 15), Decimal("50.00"), request_key="k1")
    elsewhere = record_payment(db, other.id, date(2024, 4, 15), Decimal("50.00"), request_key="k1")

    assert elsewhere.replayed is False
    assert db.query(PartyPayment).count() == 2


def test_reversal_that_loses_a_race_is_not_found(db, seeded, invoice, monkeypatch):
    payment = _payment(db, seeded.party, "1000.00")
    allocation = allocate(db, payment.id, [_line(invoice, "300.00")]).allocations[0]
    lock_payment = allocation_ledger._lock_payment

    def lock_after_a_concurrent_reversal(session, party_payment_id):
        session.query(PaymentAllocation).filter(PaymentAllocation.id == allocation.id).delete(
            synchronize_session=False
        )
        return lock_payment(session, party_payment_id)

    monkeypatch.setattr(allocation_ledger, "_lock_payment", lock_after_a_concurrent_reversal)

    with pytest.raises(NotFound):
        reverse_allocation(db, allocation.id)

    db.expire_all()
    assert db.query(PaymentAllocation).count() == 1
    assert db.query(Invoice).filter(Invoice.id == invoice.id).one().received_amount == Decimal("300.00")


def _received(db, invoices):
    for invoice in invoices:
        db.refresh(invoice)
    return [invoice.received_amount for invoice in invoices]


@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    totals=st.lists(st.integers(min_value=1, max_value=50000), min_size=1, max_size=3),
    requests=st.lists(
        st.tuples(
            st.integers(min_value=0, max_value=2),
            st.integers(min_value=1, max_value=30000),
            st.sampled_from([None, "k1", "k2"]),
            st.booleans(),
        ),
        min_size=1,
        max_size=8,
    ),
)
def test_received_always_equals_the_allocation_sum(db, catalog, totals, requests):
    # Amounts are drawn in paise so every value has exactly two decimal places
    party = create_party(db, f"Party {uuid.uuid4().hex[:8]}")
    invoices = [_invoice(db, catalog, party, Decimal(total) / 100) for total in totals]
    payment = _payment(db, party, "1000000.00")
    recorded = {}
    previous = None

    for index, paise, key, resend in requests:
        request = previous if resend and previous is not None else (index % len(invoices), paise, key)
        previous = request
        target, paise, key = request
        rows_before = db.query(PaymentAllocation).filter(PaymentAllocation.party_payment_id == payment.id).count()
        received_before = _received(db, invoices)

        try:
            result = allocate(db, payment.id, [_line(invoices[target], Decimal(paise) / 100)], request_key=key)
        except (ValidationError, ConflictError) as exc:
            assert key not in recorded or isinstance(exc, ConflictError) == (recorded[key] != (target, paise))
            result = None

        rows_after = db.query(PaymentAllocation).filter(PaymentAllocation.party_payment_id == payment.id).count()
        if result is None or result.replayed:
            assert rows_after == rows_before
            assert _received(db, invoices) == received_before
        else:
            assert rows_after == rows_before + 1
        if key is not None and key in recorded:
            assert (result is not None and result.replayed) == (recorded[key] == (target, paise))
        elif key is not None and result is not None:
            recorded[key] = (target, paise)

    for invoice in invoices:
        db.refresh(invoice)
        assert invoice.received_amount == allocation_sum(db, invoice.id)
        assert Decimal("0") <= invoice.received_amount <= invoice.total_amount
    assert ledger_discrepancies(db, party.id) == []
    assert db.query(Invoice).filter(Invoice.party_id == party.id).count() == len(totals)
