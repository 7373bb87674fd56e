"""
Party lookups used by resolution and billing.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from courier_billing.models import Party, Region
from courier_billing.services.errors import ConflictError, NotFound, ValidationError


def get_party(db: Session, party_id: UUID) -> Party:
    party = db.query(Party).filter(Party.id == party_id).first()
    if not party:
        raise NotFound(f"Party {party_id} not found")
    return party


def get_party_region(db: Session, party_id: UUID) -> Optional[UUID]:
    """Region the party is billed under, or None for unknown parties and parties without one."""
    row = db.query(Party.region_id).filter(Party.id == party_id).first()
    return row[0] if row else None


def create_party(
    db: Session,
    name: str,
    region_id: Optional[UUID] = None,
    contact_name: Optional[str] = None,
    contact_email: Optional[str] = None,
) -> Party:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Party name cannot be empty")
    if db.query(Party.id).filter(Party.name == name).first():
        raise ConflictError(f"Party with name '{name}' already exists")
    if region_id is not None and db.query(Region.id).filter(Region.id == region_id).first() is None:
        raise ValidationError(f"Unknown region_id: {region_id}")
    party = Party(name=name, region_id=region_id, contact_name=contact_name, contact_email=contact_email)
    try:
        db.add(party)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(party)
    return party


def create_region(db: Session, code: str, name: str) -> Region:
    code = (code or "").strip().upper()
    if not code or not (name or "").strip():
        raise ValidationError("Region code and name are required")
    if db.query(Region.id).filter((Region.code == code) | (Region.name == name.strip())).first():
        raise ConflictError(f"Region '{code}' already exists")
    region = Region(code=code, name=name.strip())
    try:
        db.add(region)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(region)
    return region
