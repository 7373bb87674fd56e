"""Column types that work on both PostgreSQL and SQLite.

JSONB is PostgreSQL-only, so snapshots use the generic JSON type.
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

JSONType = JSON

UUIDType = PG_UUID

# Fixed-point money and percentage columns
Money = Numeric(12, 2)
Percent = Numeric(6, 2)
