"""
Rate resolver - finds the single applicable rate row for a booking and prices it.

Resolution order:
1. Weight slab: from the booking weight, or the slab id the caller already knows
2. Active party rate slab for (party, shipment type, mode, service type, distance slab, weight slab)
3. Otherwise the region default for (region, shipment type, weight slab), then the global default
Party overrides are authoritative; they are never blended with defaults.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from courier_billing.config.billing_config import get_default_surcharges
from courier_billing.models import PartyRateSlab, RateDefault, ShipmentType
from courier_billing.services.errors import IntegrityViolation, ValidationError
from courier_billing.services.parties import get_party_region
from courier_billing.services.price_calculator import PriceBreakdown, compute_price, to_decimal
from courier_billing.services.slab_catalog import SlabCatalog, WeightSlabEntry

logger = logging.getLogger(__name__)


@dataclass
class RateQuery:
    party_id: UUID
    shipment_type: ShipmentType
    mode_id: UUID
    service_type_id: UUID
    distance_slab_id: UUID
    weight_grams: Optional[Decimal] = None
    slab_id: Optional[UUID] = None
    region_id: Optional[UUID] = None  # Booking address region, overrides the party's


class UnresolvedReason(str, enum.Enum):
    NO_WEIGHT_SLAB = "no_weight_slab"
    NO_DEFAULT = "no_default"


@dataclass(frozen=True)
class Unresolved:
    reason: UnresolvedReason
    message: str
    slab_id: Optional[UUID] = None
    slab_name: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRate:
    source: str  # "party" or "default"
    rate_id: UUID
    slab_id: UUID
    slab_name: str
    base_rate: Decimal
    fuel_pct: Decimal
    packing: Decimal
    handling: Decimal
    gst_pct: Decimal
    extra_per_1000g: Optional[Decimal]
    breakdown: PriceBreakdown


ResolutionResult = Union[ResolvedRate, Unresolved]


def _single(rows: List, description: str):
    if len(rows) > 1:
        ids = ", ".join(str(row.id) for row in rows)
        logger.error(f"Ambiguous {description}: rows {ids}")
        raise IntegrityViolation(
            f"More than one {description} matches",
            {"row_ids": [str(row.id) for row in rows]},
        )
    return rows[0] if rows else None


def _resolve_slab(db: Session, catalog: SlabCatalog, query: RateQuery) -> Union[WeightSlabEntry, Unresolved]:
    if query.slab_id is not None:
        slab = catalog.get_weight_slab(db, query.slab_id)
        if slab is None:
            return Unresolved(UnresolvedReason.NO_WEIGHT_SLAB, f"Weight slab {query.slab_id} is unknown or inactive")
        return slab
    if query.weight_grams is None:
        raise ValidationError("Either weight_grams or slab_id is required")
    if to_decimal(query.weight_grams) < 0:
        raise ValidationError("weight_grams cannot be negative")
    slab = catalog.find_weight_slab(db, to_decimal(query.weight_grams))
    if slab is None:
        return Unresolved(UnresolvedReason.NO_WEIGHT_SLAB, f"No weight slab covers {query.weight_grams} g")
    return slab


def find_party_rate(db: Session, query: RateQuery, slab_id: UUID) -> Optional[PartyRateSlab]:
    rows = (
        db.query(PartyRateSlab)
        .filter(
            PartyRateSlab.party_id == query.party_id,
            PartyRateSlab.shipment_type == query.shipment_type,
            PartyRateSlab.mode_id == query.mode_id,
            PartyRateSlab.service_type_id == query.service_type_id,
            PartyRateSlab.distance_slab_id == query.distance_slab_id,
            PartyRateSlab.weight_slab_id == slab_id,
            PartyRateSlab.is_active.is_(True),
        )
        .limit(2)
        .all()
    )
    return _single(rows, "active party rate slab")


def find_default_rate(
    db: Session,
    region_id: Optional[UUID],
    shipment_type: ShipmentType,
    slab_id: UUID,
) -> Optional[RateDefault]:
    base = db.query(RateDefault).filter(
        RateDefault.shipment_type == shipment_type,
        RateDefault.weight_slab_id == slab_id,
    )
    if region_id is not None:
        regional = _single(base.filter(RateDefault.region_id == region_id).limit(2).all(), "regional rate default")
        if regional is not None:
            return regional
    return _single(base.filter(RateDefault.region_id.is_(None)).limit(2).all(), "global rate default")


def price_party_rate(row: PartyRateSlab, slab: WeightSlabEntry) -> ResolvedRate:
    return ResolvedRate(
        source="party",
        rate_id=row.id,
        slab_id=slab.id,
        slab_name=slab.name,
        base_rate=to_decimal(row.base_rate),
        fuel_pct=to_decimal(row.fuel_pct or 0),
        packing=to_decimal(row.packing or 0),
        handling=to_decimal(row.handling or 0),
        gst_pct=to_decimal(row.gst_pct or 0),
        extra_per_1000g=None,
        breakdown=compute_price(row.base_rate, row.fuel_pct or 0, row.handling or 0, row.gst_pct or 0),
    )


def price_default_rate(row: RateDefault, slab: WeightSlabEntry) -> ResolvedRate:
    # Defaults are flat per slab; surcharges come from configuration
    surcharges = get_default_surcharges()
    return ResolvedRate(
        source="default",
        rate_id=row.id,
        slab_id=slab.id,
        slab_name=slab.name,
        base_rate=to_decimal(row.base_rate),
        fuel_pct=surcharges["fuel_pct"],
        packing=Decimal("0"),
        handling=surcharges["handling"],
        gst_pct=surcharges["gst_pct"],
        extra_per_1000g=to_decimal(row.extra_per_1000g or 0),
        breakdown=compute_price(row.base_rate, surcharges["fuel_pct"], surcharges["handling"], surcharges["gst_pct"]),
    )


def resolve_rate(db: Session, catalog: SlabCatalog, query: RateQuery) -> ResolutionResult:
    """
    Resolve and price a booking.

    Returns ``Unresolved`` when no slab or rate is configured. Raises
    ``IntegrityViolation`` when more than one row would apply.
    """
    slab = _resolve_slab(db, catalog, query)
    if isinstance(slab, Unresolved):
        logger.warning(f"Rate unresolved for party {query.party_id}: {slab.message}")
        return slab

    party_rate = find_party_rate(db, query, slab.id)
    if party_rate is not None:
        return price_party_rate(party_rate, slab)

    region_id = query.region_id or get_party_region(db, query.party_id)
    default = find_default_rate(db, region_id, query.shipment_type, slab.id)
    if default is not None:
        return price_default_rate(default, slab)

    logger.warning(
        f"No rate configured for party {query.party_id}, {query.shipment_type} in slab {slab.name}"
    )
    return Unresolved(
        UnresolvedReason.NO_DEFAULT,
        "No rate configured for this combination",
        slab_id=slab.id,
        slab_name=slab.name,
    )
