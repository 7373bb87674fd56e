"""
Slab catalog models: weight slabs and the classification enumerations.
"""
from sqlalchemy import Column, String, DateTime, Integer, Boolean, CheckConstraint
import uuid
from datetime import datetime
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType


class WeightSlab(Base):
    __tablename__ = "weight_slabs"
    __table_args__ = (
        CheckConstraint("min_weight_grams >= 0", name="ck_weight_slabs_min_non_negative"),
        CheckConstraint("max_weight_grams > min_weight_grams", name="ck_weight_slabs_range"),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)  # "Light", "Medium"
    min_weight_grams = Column(Integer, nullable=False)  # Inclusive
    max_weight_grams = Column(Integer, nullable=False)  # Exclusive
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class _Enumeration:
    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True)  # Stable machine key
    title = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DistanceSlab(_Enumeration, Base):
    __tablename__ = "distance_slabs"  # LOCAL, STATE, ZONAL, NATIONAL


class ServiceType(_Enumeration, Base):
    __tablename__ = "service_types"


class Mode(_Enumeration, Base):
    __tablename__ = "modes"
