"""
Rate book models: region defaults, party overrides, and the rate audit trail.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Index, UniqueConstraint, Enum as SQLEnum, text
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType, JSONType, Money, Percent


class ShipmentType(str, enum.Enum):
    DOCUMENT = "DOCUMENT"
    NON_DOCUMENT = "NON_DOCUMENT"


def _shipment_type_column():
    return Column(
        SQLEnum(
            ShipmentType,
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )


class RateDefault(Base):
    __tablename__ = "rate_defaults"
    __table_args__ = (
        UniqueConstraint("region_id", "shipment_type", "weight_slab_id", name="uq_rate_defaults_key"),
        # NULL region_ids never collide under the constraint above
        Index(
            "uq_rate_defaults_global_key",
            "shipment_type",
            "weight_slab_id",
            unique=True,
            postgresql_where=text("region_id IS NULL"),
            sqlite_where=text("region_id IS NULL"),
        ),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    region_id = Column(UUIDType(as_uuid=True), ForeignKey("regions.id"), nullable=True)  # NULL = global
    shipment_type = _shipment_type_column()
    weight_slab_id = Column(UUIDType(as_uuid=True), ForeignKey("weight_slabs.id"), nullable=False)
    base_rate = Column(Money, nullable=False)
    extra_per_1000g = Column(Money, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    weight_slab = relationship("WeightSlab")


class PartyRateSlab(Base):
    __tablename__ = "party_rate_slabs"
    __table_args__ = (
        UniqueConstraint(
            "party_id",
            "shipment_type",
            "mode_id",
            "service_type_id",
            "distance_slab_id",
            "weight_slab_id",
            name="uq_party_rate_slabs_key",
        ),
    )

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_id = Column(UUIDType(as_uuid=True), ForeignKey("parties.id"), nullable=False)
    shipment_type = _shipment_type_column()
    mode_id = Column(UUIDType(as_uuid=True), ForeignKey("modes.id"), nullable=False)
    service_type_id = Column(UUIDType(as_uuid=True), ForeignKey("service_types.id"), nullable=False)
    distance_slab_id = Column(UUIDType(as_uuid=True), ForeignKey("distance_slabs.id"), nullable=False)
    weight_slab_id = Column(UUIDType(as_uuid=True), ForeignKey("weight_slabs.id"), nullable=False)
    base_rate = Column(Money, nullable=False)
    fuel_pct = Column(Percent, nullable=False, default=0)
    packing = Column(Money, nullable=False, default=0)
    handling = Column(Money, nullable=False, default=0)
    gst_pct = Column(Percent, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    weight_slab = relationship("WeightSlab")


class RateAuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DEACTIVATE = "DEACTIVATE"


class RateAudit(Base):
    """Append-only; one row per committed write to a party rate slab."""
    __tablename__ = "rate_audits"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_rate_slab_id = Column(UUIDType(as_uuid=True), ForeignKey("party_rate_slabs.id"), nullable=False, index=True)
    action = Column(
        SQLEnum(
            RateAuditAction,
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    changed_by = Column(String, nullable=True)
    changed_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    before_data = Column(JSONType, nullable=True)
    after_data = Column(JSONType, nullable=True)
