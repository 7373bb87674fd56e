"""
Slab catalog - weight slabs and classification enumerations.

Active weight slabs are read far more often than they change, so the catalog
keeps a snapshot of them in its own ``LookupCache`` and drops it on every
weight-slab write.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy.orm import Session

from courier_billing.db.repository import UpsertResult, upsert_by_natural_key
from courier_billing.models import WeightSlab, DistanceSlab, ServiceType, Mode
from courier_billing.services.errors import NotFound, ValidationError
from courier_billing.services.lookup_cache import LookupCache

logger = logging.getLogger(__name__)

ENUMERATION_MODELS: Dict[str, Type] = {
    "distance": DistanceSlab,
    "service-types": ServiceType,
    "modes": Mode,
}

_WEIGHT_SLABS_KEY = ("weight_slabs", "active")


@dataclass(frozen=True)
class WeightSlabEntry:
    id: UUID
    name: str
    min_weight_grams: int
    max_weight_grams: int

    def contains(self, weight_grams) -> bool:
        # Half-open: [min, max)
        return self.min_weight_grams <= weight_grams < self.max_weight_grams


def _entry(slab: WeightSlab) -> WeightSlabEntry:
    return WeightSlabEntry(
        id=slab.id,
        name=slab.name,
        min_weight_grams=slab.min_weight_grams,
        max_weight_grams=slab.max_weight_grams,
    )


class SlabCatalog:
    def __init__(self, cache: Optional[LookupCache] = None):
        self.cache = cache or LookupCache()

    def _load_active_weight_slabs(self, db: Session) -> List[WeightSlabEntry]:
        slabs = (
            db.query(WeightSlab)
            .filter(WeightSlab.is_active.is_(True))
            .order_by(WeightSlab.min_weight_grams.asc())
            .all()
        )
        return [_entry(slab) for slab in slabs]

    def active_weight_slabs(self, db: Session, force_reload: bool = False) -> List[WeightSlabEntry]:
        return self.cache.get_or_load(
            _WEIGHT_SLABS_KEY,
            lambda: self._load_active_weight_slabs(db),
            force_reload=force_reload,
        )

    def find_weight_slab(self, db: Session, weight_grams) -> Optional[WeightSlabEntry]:
        """
        Find the active slab whose range contains ``weight_grams``.

        Slabs are scanned by ascending minimum weight and the first match wins.
        Returns None when no slab covers the weight.
        """
        for slab in self.active_weight_slabs(db):
            if slab.contains(weight_grams):
                return slab
        return None

    def get_weight_slab(self, db: Session, slab_id: UUID) -> Optional[WeightSlabEntry]:
        """Active slab by id, or None."""
        return next((s for s in self.active_weight_slabs(db) if s.id == slab_id), None)

    def invalidate(self) -> None:
        self.cache.invalidate()

    # Weight slab writes

    def _check_overlap(self, db: Session, min_grams: int, max_grams: int, exclude_id: Optional[UUID] = None) -> None:
        if min_grams < 0:
            raise ValidationError("min_weight_grams cannot be negative")
        if max_grams <= min_grams:
            raise ValidationError("max_weight_grams must be greater than min_weight_grams")
        query = db.query(WeightSlab).filter(
            WeightSlab.is_active.is_(True),
            WeightSlab.min_weight_grams < max_grams,
            WeightSlab.max_weight_grams > min_grams,
        )
        if exclude_id is not None:
            query = query.filter(WeightSlab.id != exclude_id)
        clash = query.first()
        if clash:
            raise ValidationError(
                f"Weight range [{min_grams}, {max_grams}) overlaps slab '{clash.name}'",
                {"conflicting_slab_id": str(clash.id)},
            )

    def create_weight_slab(self, db: Session, name: str, min_grams: int, max_grams: int) -> WeightSlab:
        try:
            self._check_overlap(db, min_grams, max_grams)
            slab = WeightSlab(name=name, min_weight_grams=min_grams, max_weight_grams=max_grams)
            db.add(slab)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            self.invalidate()
        db.refresh(slab)
        logger.info(f"Created weight slab {slab.name} [{min_grams}, {max_grams})")
        return slab

    def update_weight_slab(
        self,
        db: Session,
        slab_id: UUID,
        name: str,
        min_grams: int,
        max_grams: int,
        is_active: bool = True,
    ) -> WeightSlab:
        try:
            slab = db.query(WeightSlab).filter(WeightSlab.id == slab_id).with_for_update().first()
            if not slab:
                raise NotFound(f"Weight slab {slab_id} not found")
            if is_active:
                self._check_overlap(db, min_grams, max_grams, exclude_id=slab_id)
            slab.name = name
            slab.min_weight_grams = min_grams
            slab.max_weight_grams = max_grams
            slab.is_active = is_active
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            self.invalidate()
        db.refresh(slab)
        return slab

    def deactivate_weight_slab(self, db: Session, slab_id: UUID) -> WeightSlab:
        # Rate rows and invoices keep referencing the slab, so it is never deleted
        try:
            slab = db.query(WeightSlab).filter(WeightSlab.id == slab_id).with_for_update().first()
            if not slab:
                raise NotFound(f"Weight slab {slab_id} not found")
            slab.is_active = False
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            self.invalidate()
        db.refresh(slab)
        logger.info(f"Deactivated weight slab {slab.name}")
        return slab


def list_weight_slabs(db: Session, include_inactive: bool = False) -> List[WeightSlab]:
    query = db.query(WeightSlab)
    if not include_inactive:
        query = query.filter(WeightSlab.is_active.is_(True))
    return query.order_by(WeightSlab.min_weight_grams.asc()).all()


def enumeration_model(kind: str) -> Type:
    model = ENUMERATION_MODELS.get(kind)
    if model is None:
        raise NotFound(f"Unknown catalog enumeration: {kind}")
    return model


def list_enumeration(db: Session, kind: str, include_inactive: bool = False) -> list:
    model = enumeration_model(kind)
    query = db.query(model)
    if not include_inactive:
        query = query.filter(model.is_active.is_(True))
    return query.order_by(model.code.asc()).all()


def upsert_enumeration(db: Session, kind: str, code: str, title: str, is_active: bool = True) -> UpsertResult:
    """Insert or replace an enumeration row by its code."""
    model = enumeration_model(kind)
    code = code.strip().upper()
    if not code:
        raise ValidationError("code cannot be empty")
    try:
        result = upsert_by_natural_key(db, model, {"code": code}, {"title": title, "is_active": is_active})
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(result.row)
    return result
