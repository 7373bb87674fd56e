"""
Script to seed a minimal rate book and an admin user for local testing.
"""
from decimal import Decimal

from courier_billing.core.security import create_access_token
from courier_billing.db.database import Base, SessionLocal, engine
from courier_billing.models import User, UserRole, WeightSlab
from courier_billing.services import rate_table
from courier_billing.services.parties import create_party, create_region
from courier_billing.services.slab_catalog import SlabCatalog, upsert_enumeration

WEIGHT_SLABS = [
    ("Up to 250 g", 0, 250),
    ("250-500 g", 250, 500),
    ("500 g-1 kg", 500, 1000),
    ("1-2 kg", 1000, 2000),
    ("2-5 kg", 2000, 5000),
]

DISTANCE_SLABS = [("LOCAL", "Local"), ("STATE", "Within state"), ("ZONAL", "Zonal"), ("NATIONAL", "National")]
SERVICE_TYPES = [("STANDARD", "Standard"), ("EXPRESS", "Express")]
MODES = [("SURFACE", "Surface"), ("AIR", "Air")]


def seed_rate_book():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    catalog = SlabCatalog()
    try:
        admin = db.query(User).filter(User.username == "admin").first()
        if not admin:
            admin = User(username="admin", email="admin@example.com", role=UserRole.ADMIN.value)
            db.add(admin)
            db.commit()
            db.refresh(admin)

        if db.query(WeightSlab).count() == 0:
            for name, low, high in WEIGHT_SLABS:
                catalog.create_weight_slab(db, name, low, high)

        enums = {}
        for kind, rows in (("distance", DISTANCE_SLABS), ("service-types", SERVICE_TYPES), ("modes", MODES)):
            for code, title in rows:
                enums[(kind, code)] = upsert_enumeration(db, kind, code, title).row

        region = create_region(db, "MUM", "Mumbai")
        party = create_party(db, "Sample Traders", region_id=region.id)
        light = catalog.find_weight_slab(db, 100)

        rate_table.upsert_rate_default(db, {
            "region_id": region.id,
            "shipment_type": "DOCUMENT",
            "weight_slab_id": light.id,
            "base_rate": Decimal("40.00"),
        })
        rate_table.upsert_party_rate_slab(db, {
            "party_id": party.id,
            "shipment_type": "DOCUMENT",
            "mode_id": enums[("modes", "SURFACE")].id,
            "service_type_id": enums[("service-types", "STANDARD")].id,
            "distance_slab_id": enums[("distance", "LOCAL")].id,
            "weight_slab_id": light.id,
            "base_rate": Decimal("35.00"),
            "fuel_pct": Decimal("10"),
            "handling": Decimal("5.00"),
            "gst_pct": Decimal("18"),
        }, actor="seed")

        print(f"Seeded party {party.name} (ID: {party.id})")
        print(f"Admin token: {create_access_token(admin.id, UserRole.ADMIN.value)}")
    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    seed_rate_book()
