import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .core.db import Base, UTCDateTime, utc_now


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class AppointmentStatus(str, Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaidStatus(str, Enum):
    PAID = "paid"
    UNPAID = "un-paid"
    PROCESSING = "processing"


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "un-paid"
    PROCESSING = "processing"
    PENDING = "pending"
    FAILED = "failed"


class NotificationType(str, Enum):
    APPOINTMENT = "appointment"
    SERVICE = "service"
    EMPLOYEE = "employee"
    REVIEWS = "reviews"


class CounterKind(str, Enum):
    APPOINTMENT = "appointment"
    TRANSACTION = "transaction"
    CLIENT = "client"


class FollowUpKind(str, Enum):
    PAYMENT = "payment"
    NOTIFICATION = "notification"


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    # IANA zone; falls back to settings.business_timezone when unset
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    client_code: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_trashed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )

    __table_args__ = (UniqueConstraint("company_id", "client_code", name="uq_client_company_code"),)


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )


class Service(Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text entered by the owner, e.g. "30 mins" or "1.5 hours"
    duration: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    appointment_code: Mapped[str] = mapped_column(String(32), nullable=False)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    client_code: Mapped[str] = mapped_column(String(32), nullable=False)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"), nullable=False, index=True)
    start_at_utc: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    expires_at_utc: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    # Local HH:MM as the client picked it
    display_time: Mapped[str] = mapped_column(String(5), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_status: Mapped[PaidStatus] = mapped_column(
        SqlEnum(PaidStatus, name="paid_status", values_callable=_enum_values),
        default=PaidStatus.UNPAID,
        nullable=False,
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        SqlEnum(AppointmentStatus, name="appointment_status", values_callable=_enum_values),
        default=AppointmentStatus.UPCOMING,
        nullable=False,
    )
    is_trashed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("company_id", "appointment_code", name="uq_appointment_company_code"),
        Index("ix_appointments_sweep", "company_id", "is_trashed", "status"),
    )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id"), nullable=False, unique=True
    )
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    transaction_code: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )

    __table_args__ = (UniqueConstraint("company_id", "transaction_code", name="uq_payment_company_txn"),)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    type: Mapped[NotificationType] = mapped_column(
        SqlEnum(NotificationType, name="notification_type", values_callable=_enum_values),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    # Idempotency key for notifications emitted by follow-up replay
    source_key: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class IdTracker(Base):
    __tablename__ = "id_trackers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "kind", name="uq_id_tracker_company_kind"),)


class AppointmentFollowUp(Base):
    __tablename__ = "appointment_followups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id"), nullable=False, index=True
    )
    kind: Mapped[FollowUpKind] = mapped_column(
        SqlEnum(FollowUpKind, name="followup_kind", values_callable=_enum_values),
        nullable=False,
    )
    dedupe_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[FollowUpStatus] = mapped_column(
        SqlEnum(FollowUpStatus, name="followup_status", values_callable=_enum_values),
        default=FollowUpStatus.PENDING,
        nullable=False,
        index=True,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
