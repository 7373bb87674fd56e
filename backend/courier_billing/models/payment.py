"""
Party payment and payment allocation models.
"""
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Text, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType, Money


class PartyPayment(Base):
    __tablename__ = "party_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_party_payments_amount_positive"),
        UniqueConstraint("party_id", "request_key", name="uq_party_payments_request_key"),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_id = Column(UUIDType(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False)
    amount = Column(Money, nullable=False)
    payment_method = Column(String, nullable=True)  # "cash", "neft", "cheque"
    reference_no = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    request_key = Column(String, nullable=True)  # Client idempotency key
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    party = relationship("Party", back_populates="payments")
    allocations = relationship("PaymentAllocation", back_populates="party_payment")


class PaymentAllocation(Base):
    """Inserted, never updated; removed only by the reversal flow."""
    __tablename__ = "payment_allocations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_allocations_amount_positive"),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_payment_id = Column(UUIDType(as_uuid=True), ForeignKey("party_payments.id"), nullable=False, index=True)
    invoice_id = Column(UUIDType(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    request_key = Column(String, nullable=True, index=True)  # Client idempotency key
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    party_payment = relationship("PartyPayment", back_populates="allocations")
    invoice = relationship("Invoice", back_populates="allocations")
