"""
Scheduling an appointment end to end against the database.

Run with: pytest Backend/tests/test_scheduler.py -v
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from salonhub.models import (
    Appointment,
    AppointmentFollowUp,
    AppointmentStatus,
    FollowUpStatus,
    Notification,
    PaidStatus,
    Payment,
    PaymentStatus,
    Service,
)
from salonhub.notifications import APPOINTMENT_SCHEDULED_MESSAGE
from salonhub.scheduling.errors import (
    ClientNotFound,
    InvalidAppointmentDateTime,
    InvalidExpireTimeCalculation,
    ServiceNotFound,
    StylistNotFound,
    UnsupportedDurationUnit,
)
from salonhub.scheduling.followups import replay_pending_followups
from salonhub.scheduling.scheduler import schedule_appointment
from salonhub.scheduling.schemas import ScheduleAppointmentRequest

from conftest import FIXED_NOW


def booking(salon, service=None, **overrides) -> ScheduleAppointmentRequest:
    data = {
        "client_id": salon.client.client_code,
        "service_id": (service or salon.haircut).id,
        "employee_id": salon.employee.id,
        "date": "2025-03-14",
        "time": "13:30",
    }
    data.update(overrides)
    return ScheduleAppointmentRequest(**data)


async def count(session, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


# ────────────────────────────────────────────────────────────────
# Happy path
# ────────────────────────────────────────────────────────────────

async def test_schedules_priced_appointment_with_payment_and_notification(async_session, salon):
    scheduled = await schedule_appointment(async_session, salon.ctx, booking(salon), now=FIXED_NOW)
    appointment = scheduled.appointment

    # 13:30 Asia/Kolkata
    assert appointment.start_at_utc == datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)
    assert appointment.expires_at_utc == appointment.start_at_utc + timedelta(minutes=30)
    assert appointment.status == AppointmentStatus.UPCOMING
    assert appointment.appointment_code == "#APT001"
    assert appointment.client_code == "CL001"
    assert appointment.display_time == "13:30"
    assert scheduled.selected_time == "2025-03-14 13:30"
    assert scheduled.appointment_date == "2025-03-14"

    payments = (
        await async_session.execute(select(Payment).where(Payment.appointment_id == appointment.id))
    ).scalars().all()
    assert len(payments) == 1
    assert payments[0].amount == Decimal("500")
    assert payments[0].status == PaymentStatus.UNPAID
    assert payments[0].transaction_code == "#TXN0001"
    assert payments[0].client_id == salon.client.id

    notifications = (
        await async_session.execute(select(Notification).where(Notification.company_id == salon.company.id))
    ).scalars().all()
    assert len(notifications) == 1
    assert notifications[0].message == APPOINTMENT_SCHEDULED_MESSAGE
    assert notifications[0].details["appointment_id"] == str(appointment.id)
    assert notifications[0].details["client_name"] == salon.client.name
    assert notifications[0].details["status"] == "Upcoming"

    assert await count(
        async_session,
        AppointmentFollowUp,
        AppointmentFollowUp.status != FollowUpStatus.DONE,
    ) == 0


async def test_free_service_creates_no_payment(async_session, salon):
    scheduled = await schedule_appointment(
        async_session, salon.ctx, booking(salon, salon.free_service), now=FIXED_NOW
    )

    assert await count(async_session, Payment, Payment.appointment_id == scheduled.appointment.id) == 0
    assert await count(async_session, Notification, Notification.company_id == salon.company.id) == 1


async def test_payment_status_mirrors_paid_status(async_session, salon):
    scheduled = await schedule_appointment(
        async_session, salon.ctx, booking(salon, paid_status=PaidStatus.PAID), now=FIXED_NOW
    )
    payment = (
        await async_session.execute(select(Payment).where(Payment.appointment_id == scheduled.appointment.id))
    ).scalar_one()
    assert payment.status == PaymentStatus.PAID


async def test_combined_time_input_is_accepted(async_session, salon):
    payload = booking(salon, date=None, time=None, appointment_date_time="2025-03-14T13:30")
    scheduled = await schedule_appointment(async_session, salon.ctx, payload, now=FIXED_NOW)

    assert scheduled.appointment.start_at_utc == datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)
    assert scheduled.selected_time == "2025-03-14T13:30"


async def test_client_code_is_case_insensitive(async_session, salon):
    scheduled = await schedule_appointment(
        async_session, salon.ctx, booking(salon, client_id=" cl001 "), now=FIXED_NOW
    )
    assert scheduled.appointment.client_id == salon.client.id


async def test_codes_are_sequential(async_session, salon):
    first = await schedule_appointment(async_session, salon.ctx, booking(salon), now=FIXED_NOW)
    second = await schedule_appointment(async_session, salon.ctx, booking(salon, time="15:00"), now=FIXED_NOW)

    assert first.appointment.appointment_code == "#APT001"
    assert second.appointment.appointment_code == "#APT002"


async def test_long_service_uses_hour_duration(async_session, salon):
    scheduled = await schedule_appointment(
        async_session, salon.ctx, booking(salon, salon.colour), now=FIXED_NOW
    )
    appointment = scheduled.appointment
    assert appointment.expires_at_utc - appointment.start_at_utc == timedelta(minutes=90)


class TestInitialStatus:
    async def test_past_window_is_completed(self, async_session, salon):
        scheduled = await schedule_appointment(
            async_session, salon.ctx, booking(salon, time="09:00"), now=FIXED_NOW
        )
        assert scheduled.appointment.status == AppointmentStatus.COMPLETED

    async def test_window_containing_now_is_ongoing(self, async_session, salon):
        scheduled = await schedule_appointment(
            async_session, salon.ctx, booking(salon, time="11:15"), now=FIXED_NOW
        )
        assert scheduled.appointment.status == AppointmentStatus.ONGOING

    async def test_window_ending_now_is_completed(self, async_session, salon):
        # 11:00-11:30 IST ends exactly at FIXED_NOW
        scheduled = await schedule_appointment(
            async_session, salon.ctx, booking(salon, time="11:00"), now=FIXED_NOW
        )
        assert scheduled.appointment.status == AppointmentStatus.COMPLETED


# ────────────────────────────────────────────────────────────────
# Validation
# ────────────────────────────────────────────────────────────────

class TestRejections:
    async def test_unknown_stylist(self, async_session, salon):
        with pytest.raises(StylistNotFound):
            await schedule_appointment(async_session, salon.ctx, booking(salon, employee_id=9999), now=FIXED_NOW)

    async def test_unknown_client_code(self, async_session, salon):
        with pytest.raises(ClientNotFound) as exc_info:
            await schedule_appointment(async_session, salon.ctx, booking(salon, client_id="cl999"), now=FIXED_NOW)
        assert "CL999" in exc_info.value.message

    async def test_unknown_service(self, async_session, salon):
        with pytest.raises(ServiceNotFound):
            await schedule_appointment(async_session, salon.ctx, booking(salon, service_id=9999), now=FIXED_NOW)

    async def test_time_is_checked_before_references(self, async_session, salon):
        with pytest.raises(InvalidAppointmentDateTime):
            await schedule_appointment(
                async_session,
                salon.ctx,
                booking(salon, employee_id=9999, time="25:99"),
                now=FIXED_NOW,
            )

    async def test_missing_time_input(self, async_session, salon):
        with pytest.raises(InvalidAppointmentDateTime):
            await schedule_appointment(async_session, salon.ctx, booking(salon, date=None, time=None), now=FIXED_NOW)

    async def test_zero_duration_service(self, async_session, salon):
        service = Service(company_id=salon.company.id, service_name="Walk-in", duration="0 mins", price=Decimal("0"))
        async_session.add(service)
        await async_session.commit()

        with pytest.raises(InvalidExpireTimeCalculation):
            await schedule_appointment(async_session, salon.ctx, booking(salon, service), now=FIXED_NOW)

    async def test_unsupported_duration_unit(self, async_session, salon):
        service = Service(company_id=salon.company.id, service_name="Spa Day", duration="1 day", price=Decimal("0"))
        async_session.add(service)
        await async_session.commit()

        with pytest.raises(UnsupportedDurationUnit):
            await schedule_appointment(async_session, salon.ctx, booking(salon, service), now=FIXED_NOW)

    async def test_rejection_writes_nothing_and_burns_no_code(self, async_session, salon):
        with pytest.raises(ServiceNotFound):
            await schedule_appointment(async_session, salon.ctx, booking(salon, service_id=9999), now=FIXED_NOW)

        assert await count(async_session, Appointment) == 0
        assert await count(async_session, Notification) == 0
        assert await count(async_session, Payment) == 0

        scheduled = await schedule_appointment(async_session, salon.ctx, booking(salon), now=FIXED_NOW)
        assert scheduled.appointment.appointment_code == "#APT001"


async def test_references_from_another_company_are_not_found(async_session, salon, other_salon):
    with pytest.raises(StylistNotFound):
        await schedule_appointment(
            async_session,
            salon.ctx,
            booking(salon, employee_id=other_salon.employee.id),
            now=FIXED_NOW,
        )
    with pytest.raises(ServiceNotFound):
        await schedule_appointment(
            async_session,
            salon.ctx,
            booking(salon, service_id=other_salon.haircut.id),
            now=FIXED_NOW,
        )


# ────────────────────────────────────────────────────────────────
# Follow-up failure
# ────────────────────────────────────────────────────────────────

async def test_failed_payment_followup_keeps_appointment_and_is_replayed(async_session, salon, monkeypatch):
    async def broken_payment(session, followup):
        raise RuntimeError("payments table unavailable")

    monkeypatch.setattr("salonhub.scheduling.followups._apply_payment", broken_payment)

    scheduled = await schedule_appointment(async_session, salon.ctx, booking(salon), now=FIXED_NOW)
    appointment_id = scheduled.appointment.id

    assert scheduled.appointment.appointment_code == "#APT001"
    assert await count(async_session, Appointment, Appointment.id == appointment_id) == 1
    assert await count(async_session, Payment) == 0
    # The notification follow-up is independent of the payment one
    assert await count(async_session, Notification) == 1

    pending = (
        await async_session.execute(
            select(AppointmentFollowUp).where(AppointmentFollowUp.status == FollowUpStatus.PENDING)
        )
    ).scalar_one()
    assert pending.attempts == 1
    assert "payments table unavailable" in pending.last_error

    monkeypatch.undo()
    replayed = await replay_pending_followups(async_session, now=FIXED_NOW)

    assert replayed == 1
    payment = (
        await async_session.execute(select(Payment).where(Payment.appointment_id == appointment_id))
    ).scalar_one()
    assert payment.amount == Decimal("500")
    assert payment.transaction_code == "#TXN0001"
