"""
Multi-tenancy context module.

This module provides the CompanyContext abstraction for tenant isolation.

Every appointment, client, employee, service, payment and notification row
belongs to exactly one company. Route handlers resolve the company once per
request and pass `ctx.company_id` (and `ctx.timezone`) down explicitly.

Token verification happens upstream; by the time a request reaches these
routes the gateway has already stamped the caller's company on the
X-Company-Id header.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.db import get_session
from ..core.responses import ApiError, ErrorCodes
from ..models import Company


logger = logging.getLogger(__name__)

COMPANY_HEADER = "X-Company-Id"


@dataclass(frozen=True)
class CompanyContext:
    """
    Immutable context representing the current tenant for a request.

    Attributes:
        company_id: The database ID of the company (companies.id)
        company_name: Human-readable company name
        timezone: IANA timezone used to read wall-clock appointment input
    """

    company_id: int
    company_name: Optional[str] = None
    timezone: str = "Asia/Kolkata"

    def __post_init__(self):
        if self.company_id <= 0:
            raise ValueError(f"company_id must be positive, got {self.company_id}")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def resolve_timezone_name(company_timezone: Optional[str]) -> str:
    """Pick the company's zone when it is a valid IANA name, else the configured default."""
    fallback = get_settings().business_timezone
    if not company_timezone:
        return fallback
    try:
        ZoneInfo(company_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r on company, using %s", company_timezone, fallback)
        return fallback
    return company_timezone


async def resolve_company_context(
    session: AsyncSession,
    company_id: int,
) -> Optional[CompanyContext]:
    """
    Resolve company context from a company id.

    Returns:
        CompanyContext if found, None if the company does not exist
    """
    result = await session.execute(select(Company).where(Company.id == company_id))
    company = result.scalar_one_or_none()

    if not company:
        return None

    return CompanyContext(
        company_id=company.id,
        company_name=company.name,
        timezone=resolve_timezone_name(company.timezone),
    )


# ────────────────────────────────────────────────────────────────
# FastAPI Dependencies
# ────────────────────────────────────────────────────────────────

async def get_company_context(
    x_company_id: Optional[str] = Header(default=None, alias=COMPANY_HEADER),
    session: AsyncSession = Depends(get_session),
) -> CompanyContext:
    """
    FastAPI dependency to resolve the tenant from the X-Company-Id header.

    Usage:
        @router.get("/appointments")
        async def list_appointments(
            ctx: CompanyContext = Depends(get_company_context),
            session: AsyncSession = Depends(get_session),
        ):
            ...
    """
    if not x_company_id or not x_company_id.strip().isdigit():
        raise ApiError(
            f"{COMPANY_HEADER} header is required",
            code=ErrorCodes.MISSING_FIELD,
            status_code=400,
        )

    company_id = int(x_company_id.strip())
    ctx = await resolve_company_context(session, company_id) if company_id > 0 else None
    if not ctx:
        raise ApiError(
            f"Company not found: {company_id}",
            code=ErrorCodes.NOT_FOUND,
            status_code=404,
        )
    logger.debug(f"Resolved company from header: company_id={ctx.company_id}")
    return ctx
