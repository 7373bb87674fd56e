"""Initial billing schema: slab catalog, rate book, invoices, payments

Revision ID: 20261017_initial_billing
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261017_initial_billing"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _fk(name, target, nullable=False):
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey(target), nullable=nullable)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _enumeration(table):
    op.create_table(
        table,
        _id(),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )


def upgrade():
    op.create_table(
        "regions",
        _id(),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "parties",
        _id(),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        _fk("region_id", "regions.id", nullable=True),
        sa.Column("contact_name", sa.String(), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(), nullable=False, unique=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "weight_slabs",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("min_weight_grams", sa.Integer(), nullable=False),
        sa.Column("max_weight_grams", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("min_weight_grams >= 0", name="ck_weight_slabs_min_non_negative"),
        sa.CheckConstraint("max_weight_grams > min_weight_grams", name="ck_weight_slabs_range"),
    )
    _enumeration("distance_slabs")
    _enumeration("service_types")
    _enumeration("modes")

    op.create_table(
        "rate_defaults",
        _id(),
        _fk("region_id", "regions.id", nullable=True),
        sa.Column("shipment_type", sa.String(length=12), nullable=False),
        _fk("weight_slab_id", "weight_slabs.id"),
        sa.Column("base_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("extra_per_1000g", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("region_id", "shipment_type", "weight_slab_id", name="uq_rate_defaults_key"),
    )
    op.create_index(
        "uq_rate_defaults_global_key",
        "rate_defaults",
        ["shipment_type", "weight_slab_id"],
        unique=True,
        postgresql_where=sa.text("region_id IS NULL"),
        sqlite_where=sa.text("region_id IS NULL"),
    )
    op.create_table(
        "party_rate_slabs",
        _id(),
        _fk("party_id", "parties.id"),
        sa.Column("shipment_type", sa.String(length=12), nullable=False),
        _fk("mode_id", "modes.id"),
        _fk("service_type_id", "service_types.id"),
        _fk("distance_slab_id", "distance_slabs.id"),
        _fk("weight_slab_id", "weight_slabs.id"),
        sa.Column("base_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("fuel_pct", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("packing", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("handling", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("gst_pct", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint(
            "party_id",
            "shipment_type",
            "mode_id",
            "service_type_id",
            "distance_slab_id",
            "weight_slab_id",
            name="uq_party_rate_slabs_key",
        ),
    )
    op.create_table(
        "rate_audits",
        _id(),
        _fk("party_rate_slab_id", "party_rate_slabs.id"),
        sa.Column("action", sa.String(length=10), nullable=False),
        sa.Column("changed_by", sa.String(), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
        sa.Column("before_data", sa.JSON(), nullable=True),
        sa.Column("after_data", sa.JSON(), nullable=True),
    )
    op.create_index("ix_rate_audits_party_rate_slab_id", "rate_audits", ["party_rate_slab_id"])
    op.create_index("ix_rate_audits_changed_at", "rate_audits", ["changed_at"])

    op.create_table(
        "invoices",
        _id(),
        _fk("party_id", "parties.id"),
        sa.Column("invoice_number", sa.String(), nullable=False, unique=True),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("received_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("received_amount >= 0", name="ck_invoices_received_non_negative"),
        sa.CheckConstraint("received_amount <= total_amount", name="ck_invoices_received_within_total"),
    )
    op.create_index("ix_invoices_party_id", "invoices", ["party_id"])
    op.create_table(
        "invoice_items",
        _id(),
        _fk("invoice_id", "invoices.id"),
        sa.Column("line_no", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("weight_grams", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("rate_source", sa.String(), nullable=True),
        sa.Column("rate_row_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "party_payments",
        _id(),
        _fk("party_id", "parties.id"),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("reference_no", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("request_key", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_party_payments_amount_positive"),
        sa.UniqueConstraint("party_id", "request_key", name="uq_party_payments_request_key"),
    )
    op.create_index("ix_party_payments_party_id", "party_payments", ["party_id"])
    op.create_table(
        "payment_allocations",
        _id(),
        _fk("party_payment_id", "party_payments.id"),
        _fk("invoice_id", "invoices.id"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("request_key", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payment_allocations_amount_positive"),
    )
    op.create_index("ix_payment_allocations_party_payment_id", "payment_allocations", ["party_payment_id"])
    op.create_index("ix_payment_allocations_invoice_id", "payment_allocations", ["invoice_id"])
    op.create_index("ix_payment_allocations_request_key", "payment_allocations", ["request_key"])


def downgrade():
    for index, table in (
        ("ix_payment_allocations_request_key", "payment_allocations"),
        ("ix_payment_allocations_invoice_id", "payment_allocations"),
        ("ix_payment_allocations_party_payment_id", "payment_allocations"),
        ("ix_party_payments_party_id", "party_payments"),
        ("ix_invoices_party_id", "invoices"),
        ("ix_rate_audits_changed_at", "rate_audits"),
        ("ix_rate_audits_party_rate_slab_id", "rate_audits"),
        ("uq_rate_defaults_global_key", "rate_defaults"),
    ):
        op.drop_index(index, table_name=table)
    for table in (
        "payment_allocations",
        "party_payments",
        "invoice_items",
        "invoices",
        "rate_audits",
        "party_rate_slabs",
        "rate_defaults",
        "modes",
        "service_types",
        "distance_slabs",
        "weight_slabs",
        "users",
        "parties",
        "regions",
    ):
        op.drop_table(table)
