import uuid
from datetime import date
from decimal import Decimal

import pytest

from courier_billing.models import Invoice
from courier_billing.services.errors import ConflictError, NotFound, ValidationError
from courier_billing.services.invoicing import (
    LineItem,
    get_invoice,
    invoice_allocations,
    issue_invoice,
    list_invoices,
    party_outstanding,
)


def _booking(seeded, weight_grams, **overrides):
    values = dict(
        shipment_type="DOCUMENT",
        mode_id=seeded.mode.id,
        service_type_id=seeded.service.id,
        distance_slab_id=seeded.distance.id,
        weight_grams=weight_grams,
    )
    values.update(overrides)
    return LineItem(**values)


def test_lines_are_priced_from_the_rate_book(db, catalog, seeded, party_rate):
    invoice = issue_invoice(
        db,
        catalog,
        seeded.party.id,
        "INV-2001",
        date(2024, 5, 1),
        [_booking(seeded, 750), LineItem(description="Pickup charge", amount=Decimal("25.00"))],
    )

    assert invoice.total_amount == Decimal("160.70")
    assert invoice.received_amount == Decimal("0.00")
    first, second = invoice.items
    assert first.line_no == 1
    assert first.amount == Decimal("135.70")
    assert first.rate_source == "party"
    assert first.rate_row_id == party_rate.id
    assert first.description == "Medium"
    assert second.rate_source is None


def test_unpriceable_line_rejects_the_whole_invoice(db, catalog, seeded, party_rate):
    with pytest.raises(ValidationError) as excinfo:
        issue_invoice(
            db,
            catalog,
            seeded.party.id,
            "INV-2002",
            date(2024, 5, 1),
            [_booking(seeded, 750), _booking(seeded, 2500)],
        )

    assert excinfo.value.details == {"line_no": 2, "reason": "no_default"}
    assert db.query(Invoice).count() == 0


def test_line_without_amount_or_classification_is_rejected(db, catalog, seeded):
    with pytest.raises(ValidationError):
        issue_invoice(db, catalog, seeded.party.id, "INV-2003", date(2024, 5, 1), [LineItem(description="?")])


def test_duplicate_invoice_number_conflicts(db, catalog, seeded):
    items = [LineItem(amount=Decimal("10.00"))]
    issue_invoice(db, catalog, seeded.party.id, "INV-2004", date(2024, 5, 1), items)

    with pytest.raises(ConflictError):
        issue_invoice(db, catalog, seeded.party.id, "INV-2004", date(2024, 5, 2), items)


def test_unknown_party_and_invoice(db, catalog):
    with pytest.raises(NotFound):
        issue_invoice(db, catalog, uuid.uuid4(), "INV-2005", date(2024, 5, 1), [LineItem(amount=Decimal("1"))])
    with pytest.raises(NotFound):
        get_invoice(db, uuid.uuid4())


def test_empty_invoice_is_rejected(db, catalog, seeded):
    with pytest.raises(ValidationError):
        issue_invoice(db, catalog, seeded.party.id, "INV-2006", date(2024, 5, 1), [])


def test_outstanding_summary_and_listing(db, catalog, seeded):
    issue_invoice(db, catalog, seeded.party.id, "INV-2007", date(2024, 5, 1), [LineItem(amount=Decimal("40.00"))])
    issue_invoice(db, catalog, seeded.party.id, "INV-2008", date(2024, 5, 3), [LineItem(amount=Decimal("60.00"))])

    summary = party_outstanding(db, seeded.party.id)

    assert summary.total_invoices == 2
    assert summary.total_outstanding == Decimal("100.00")
    assert [i.invoice_number for i in list_invoices(db, seeded.party.id)] == ["INV-2008", "INV-2007"]


def test_invoice_without_allocations_reports_an_empty_history(db, catalog, seeded):
    invoice = issue_invoice(db, catalog, seeded.party.id, "INV-2009", date(2024, 5, 1), [LineItem(amount=Decimal("5"))])

    history = invoice_allocations(db, invoice.id)

    assert history["invoice"].id == invoice.id
    assert history["allocations"] == []
