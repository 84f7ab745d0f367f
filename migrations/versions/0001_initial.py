"""initial reporting schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def _money(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.Numeric(12, 2), nullable=True)
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "locations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column("franchise_id", sa.String(length=64), nullable=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "employees",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="EMPLOYEE"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "appointments",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("employee_id", GUID(), sa.ForeignKey("employees.id"), nullable=True),
        sa.Column("client_id", sa.String(length=64), nullable=True),
        sa.Column("service_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="SCHEDULED"),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_appointments_location_start", "appointments", ["location_id", "start_time"], unique=False)
    op.create_table(
        "transactions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("employee_id", GUID(), sa.ForeignKey("employees.id"), nullable=True),
        sa.Column("client_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="COMPLETED"),
        sa.Column("payment_method", sa.String(length=32), nullable=False, server_default="CARD"),
        _money("subtotal"),
        _money("tax"),
        _money("tip"),
        _money("discount"),
        _money("total"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_transactions_location_created", "transactions", ["location_id", "created_at"], unique=False
    )
    op.create_table(
        "transaction_line_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("transaction_id", GUID(), sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        _money("total"),
    )
    op.create_table(
        "cash_drawer_sessions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("opened_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        _money("starting_cash"),
        _money("ending_cash", nullable=True),
    )
    op.create_index(
        "ix_cash_drawer_sessions_location_opened",
        "cash_drawer_sessions",
        ["location_id", "opened_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_cash_drawer_sessions_location_opened", table_name="cash_drawer_sessions")
    op.drop_table("cash_drawer_sessions")
    op.drop_table("transaction_line_items")
    op.drop_index("ix_transactions_location_created", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_appointments_location_start", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("employees")
    op.drop_table("locations")
    op.drop_table("tenants")
