import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


Money = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    locations = relationship("Location", back_populates="tenant")


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("tenants.id"), index=True, nullable=False)
    franchise_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="locations")
    employees = relationship("Employee", back_populates="location")


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="EMPLOYEE", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    location = relationship("Location", back_populates="employees")


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), nullable=False)
    employee_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("employees.id"), nullable=True)
    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    service_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="SCHEDULED", nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), nullable=False)
    employee_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("employees.id"), nullable=True)
    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="COMPLETED", nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), default="CARD", nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    tip: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    line_items = relationship("TransactionLineItem", back_populates="transaction", lazy="selectin")


class TransactionLineItem(Base):
    __tablename__ = "transaction_line_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("transactions.id"), index=True, nullable=False
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)

    transaction = relationship("Transaction", back_populates="line_items")


class CashDrawerSession(Base):
    __tablename__ = "cash_drawer_sessions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), nullable=False)
    opened_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    starting_cash: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    ending_cash: Mapped[Decimal | None] = mapped_column(Money, nullable=True)


Index("ix_appointments_location_start", Appointment.location_id, Appointment.start_time)
Index("ix_transactions_location_created", Transaction.location_id, Transaction.created_at)
Index("ix_cash_drawer_sessions_location_opened", CashDrawerSession.location_id, CashDrawerSession.opened_at)
