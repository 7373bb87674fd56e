"""
Party and region models.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType


class Region(Base):
    __tablename__ = "regions"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True)  # "MUM", "ROI", "METRO"
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Party(Base):
    __tablename__ = "parties"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    region_id = Column(UUIDType(as_uuid=True), ForeignKey("regions.id"), nullable=True)
    contact_name = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    region = relationship("Region")
    invoices = relationship("Invoice", back_populates="party")
    payments = relationship("PartyPayment", back_populates="party")
