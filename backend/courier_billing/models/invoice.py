"""
Invoice models.
"""
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from decimal import Decimal
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType, Money


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("received_amount >= 0", name="ck_invoices_received_non_negative"),
        CheckConstraint("received_amount <= total_amount", name="ck_invoices_received_within_total"),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_id = Column(UUIDType(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    invoice_number = Column(String, nullable=False, unique=True)
    invoice_date = Column(Date, nullable=False)
    total_amount = Column(Money, nullable=False)
    # Written only by the allocation ledger
    received_amount = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    party = relationship("Party", back_populates="invoices")
    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceItem.line_no")
    allocations = relationship("PaymentAllocation", back_populates="invoice")

    @property
    def outstanding_amount(self) -> Decimal:
        outstanding = Decimal(self.total_amount or 0) - Decimal(self.received_amount or 0)
        return max(outstanding, Decimal("0.00"))


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(UUIDType(as_uuid=True), ForeignKey("invoices.id"), nullable=False)
    line_no = Column(Integer, nullable=False)
    description = Column(String, nullable=True)
    weight_grams = Column(Integer, nullable=True)
    amount = Column(Money, nullable=False)
    rate_source = Column(String, nullable=True)  # "party", "default", or None when entered manually
    rate_row_id = Column(UUIDType(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="items")
