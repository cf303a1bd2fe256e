"""
Appointment follow-ups (payment record, inbox notification).

Follow-ups are written to appointment_followups in the same transaction as
the appointment change that caused them, then applied right after commit.
Applying one is idempotent: a payment is unique per appointment and a
notification is keyed by the follow-up's dedupe_key. Anything that fails is
left pending and replayed by the status sweep until it succeeds or runs out
of attempts.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models import (
    Appointment,
    AppointmentFollowUp,
    CounterKind,
    FollowUpKind,
    FollowUpStatus,
    NotificationType,
    Payment,
    PaymentStatus,
)
from ..notifications import save_notification
from .ids import next_sequential_id


logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────
# Enqueue (inside the caller's transaction)
# ────────────────────────────────────────────────────────────────

def enqueue_payment(session: AsyncSession, appointment: Appointment, amount: Decimal) -> AppointmentFollowUp:
    followup = AppointmentFollowUp(
        company_id=appointment.company_id,
        appointment_id=appointment.id,
        kind=FollowUpKind.PAYMENT,
        dedupe_key=f"payment:{appointment.id}",
        payload={
            "client_id": appointment.client_id,
            "amount": str(amount),
            "status": appointment.paid_status.value,
        },
        status=FollowUpStatus.PENDING,
        attempts=0,
    )
    session.add(followup)
    return followup


def enqueue_notification(
    session: AsyncSession,
    appointment: Appointment,
    message: str,
    details: dict,
) -> AppointmentFollowUp:
    # One row per event; repeated updates each get their own notification
    followup = AppointmentFollowUp(
        company_id=appointment.company_id,
        appointment_id=appointment.id,
        kind=FollowUpKind.NOTIFICATION,
        dedupe_key=f"notification:{appointment.id}:{uuid.uuid4().hex}",
        payload={"message": message, "details": details},
        status=FollowUpStatus.PENDING,
        attempts=0,
    )
    session.add(followup)
    return followup


# ────────────────────────────────────────────────────────────────
# Apply
# ────────────────────────────────────────────────────────────────

async def _apply_payment(session: AsyncSession, followup: AppointmentFollowUp) -> None:
    result = await session.execute(
        select(Payment.id).where(Payment.appointment_id == followup.appointment_id)
    )
    if result.scalar_one_or_none() is not None:
        logger.debug("Payment for appointment %s already exists", followup.appointment_id)
        return

    payload = followup.payload
    transaction_code = await next_sequential_id(session, followup.company_id, CounterKind.TRANSACTION)
    session.add(
        Payment(
            company_id=followup.company_id,
            appointment_id=followup.appointment_id,
            client_id=payload["client_id"],
            transaction_code=transaction_code,
            amount=Decimal(payload["amount"]),
            status=PaymentStatus(payload["status"]),
        )
    )
    await session.flush()
    logger.info(
        "Created payment %s for appointment %s (company_id=%s)",
        transaction_code,
        followup.appointment_id,
        followup.company_id,
    )


async def _apply_notification(session: AsyncSession, followup: AppointmentFollowUp, now: datetime) -> None:
    payload = followup.payload
    await save_notification(
        session,
        company_id=followup.company_id,
        type=NotificationType.APPOINTMENT,
        message=payload["message"],
        details=payload["details"],
        timestamp=now,
        source_key=followup.dedupe_key,
    )


async def apply_followup(
    session: AsyncSession,
    followup: AppointmentFollowUp,
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
) -> bool:
    """
    Apply one pending follow-up and commit.

    Failures are logged and recorded on the row (attempts, last_error); the
    row is parked as failed once it reaches `max_attempts`. Returns True when
    the follow-up is done.
    """
    now = now or datetime.now(timezone.utc)
    if max_attempts is None:
        max_attempts = get_settings().followup_max_attempts

    followup_id = followup.id
    kind = followup.kind
    attempts = followup.attempts

    try:
        if kind == FollowUpKind.PAYMENT:
            await _apply_payment(session, followup)
        else:
            await _apply_notification(session, followup, now)
        followup.status = FollowUpStatus.DONE
        followup.attempts = attempts + 1
        followup.processed_at = now
        followup.last_error = None
        await session.commit()
        return True
    except Exception as exc:
        await session.rollback()
        logger.exception("Follow-up %s (%s) failed: %s", followup_id, kind.value, exc)
        error_text = f"{type(exc).__name__}: {exc}"[:500]

    exhausted = attempts + 1 >= max_attempts
    await session.execute(
        update(AppointmentFollowUp)
        .where(AppointmentFollowUp.id == followup_id)
        .values(
            attempts=attempts + 1,
            last_error=error_text,
            status=FollowUpStatus.FAILED if exhausted else FollowUpStatus.PENDING,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if exhausted:
        logger.error("Follow-up %s gave up after %s attempts", followup_id, attempts + 1)
    return False


async def process_followups(
    session: AsyncSession,
    followup_ids: Sequence[int],
    now: Optional[datetime] = None,
) -> int:
    """Apply the given follow-ups in order; returns how many completed."""
    done = 0
    for followup_id in followup_ids:
        result = await session.execute(
            select(AppointmentFollowUp).where(
                AppointmentFollowUp.id == followup_id,
                AppointmentFollowUp.status == FollowUpStatus.PENDING,
            )
        )
        followup = result.scalar_one_or_none()
        if followup is None:
            continue
        if await apply_followup(session, followup, now=now):
            done += 1
    return done


async def replay_pending_followups(
    session: AsyncSession,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> int:
    """Retry follow-ups left pending by an earlier failure or crash."""
    limit = limit or get_settings().followup_batch_size
    result = await session.execute(
        select(AppointmentFollowUp.id)
        .where(AppointmentFollowUp.status == FollowUpStatus.PENDING)
        .order_by(AppointmentFollowUp.id)
        .limit(limit)
    )
    pending_ids = result.scalars().all()
    if not pending_ids:
        return 0
    done = await process_followups(session, pending_ids, now=now)
    logger.info("Replayed %s/%s pending follow-up(s)", done, len(pending_ids))
    return done
