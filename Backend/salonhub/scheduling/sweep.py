"""
Time-driven appointment status reconciliation.

Every tick walks each company that still has live (non-trashed)
appointments and moves their status along with the clock using three bulk
UPDATEs. Cancelled appointments are never touched. A tick also replays
appointment follow-ups that were left pending.

Should be run on a timer (StatusSweeper does this inside the API process).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import get_settings
from ..models import Appointment, AppointmentStatus
from ..tenancy import list_company_ids_with_active_appointments, tenant_filter
from .followups import replay_pending_followups


logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    companies: int = 0
    completed: int = 0
    ongoing: int = 0
    upcoming: int = 0
    failed_company_ids: list[int] = field(default_factory=list)
    followups_replayed: int = 0

    @property
    def total_updated(self) -> int:
        return self.completed + self.ongoing + self.upcoming


def _bulk_status_update(company_id: int, status: AppointmentStatus, *criteria):
    return (
        update(Appointment)
        .where(
            tenant_filter(Appointment, company_id),
            Appointment.is_trashed.is_(False),
            Appointment.status.notin_([status, AppointmentStatus.CANCELLED]),
            *criteria,
        )
        .values(status=status)
        .execution_options(synchronize_session=False)
    )


async def reconcile_statuses(session: AsyncSession, company_id: int, now: datetime) -> dict:
    """
    Bring one company's appointment statuses in line with `now` and commit.

    Completed runs first so an appointment that expires exactly at `now` is
    Completed, never Ongoing. Rows already holding the target status are
    excluded, so re-running with the same `now` updates nothing.
    """
    completed = await session.execute(
        _bulk_status_update(
            company_id,
            AppointmentStatus.COMPLETED,
            Appointment.expires_at_utc <= now,
        )
    )
    ongoing = await session.execute(
        _bulk_status_update(
            company_id,
            AppointmentStatus.ONGOING,
            Appointment.start_at_utc <= now,
            Appointment.expires_at_utc > now,
        )
    )
    upcoming = await session.execute(
        _bulk_status_update(
            company_id,
            AppointmentStatus.UPCOMING,
            Appointment.start_at_utc > now,
        )
    )
    await session.commit()
    return {
        "completed": completed.rowcount,
        "ongoing": ongoing.rowcount,
        "upcoming": upcoming.rowcount,
    }


async def run_status_sweep(
    session_factory: async_sessionmaker,
    now: Optional[datetime] = None,
) -> SweepResult:
    """
    One full tick over every company. Never raises: a company that fails is
    logged and skipped, and the remaining companies still run.
    """
    now = now or datetime.now(timezone.utc)
    result = SweepResult()

    try:
        async with session_factory() as session:
            company_ids = await list_company_ids_with_active_appointments(session)
    except Exception as exc:
        logger.exception("Status sweep could not list companies: %s", exc)
        return result

    for company_id in company_ids:
        try:
            async with session_factory() as session:
                counts = await reconcile_statuses(session, company_id, now)
        except Exception as exc:
            logger.exception("Status sweep failed for company_id=%s: %s", company_id, exc)
            result.failed_company_ids.append(company_id)
            continue
        result.companies += 1
        result.completed += counts["completed"]
        result.ongoing += counts["ongoing"]
        result.upcoming += counts["upcoming"]

    try:
        async with session_factory() as session:
            result.followups_replayed = await replay_pending_followups(session, now=now)
    except Exception as exc:
        logger.exception("Follow-up replay failed: %s", exc)

    if result.total_updated or result.failed_company_ids:
        logger.info(
            "Status sweep: %s companies, %s completed, %s ongoing, %s upcoming, %s failed",
            result.companies,
            result.completed,
            result.ongoing,
            result.upcoming,
            len(result.failed_company_ids),
        )
    else:
        logger.debug("Status sweep: no appointment status changes across %s companies", result.companies)
    return result


class StatusSweeper:
    """
    Runs run_status_sweep every `interval_seconds` on an asyncio task.

    A tick that starts while the previous one is still running is skipped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        interval_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else get_settings().status_sweep_interval_seconds
        )
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        if self._lock.locked():
            logger.warning("Previous status sweep still running; skipping this tick")
            return None
        async with self._lock:
            return await run_status_sweep(self.session_factory, now=now)

    async def _run(self) -> None:
        logger.info("Starting appointment status sweeper (every %ss)", self.interval_seconds)
        while True:
            await asyncio.sleep(self.interval_seconds)
            # Ticks run detached so a slow sweep cannot delay the timer
            tick = asyncio.create_task(self.tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
        logger.info("Stopped appointment status sweeper")
