from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .core.db import get_session
from .core.responses import success_response
from .notifications import (
    MarkReadRequest,
    NotificationOut,
    list_notifications,
    mark_notifications_read,
)
from .tenancy import CompanyContext, get_company_context


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def get_notifications(
    read_status: Optional[bool] = Query(default=None),
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    notifications = await list_notifications(session, ctx.company_id, ctx.timezone, read_status=read_status)
    return success_response(
        [NotificationOut.model_validate(n).model_dump(mode="json") for n in notifications]
    )


@router.patch("/read")
async def mark_read(
    payload: MarkReadRequest,
    ctx: CompanyContext = Depends(get_company_context),
    session: AsyncSession = Depends(get_session),
):
    updated = await mark_notifications_read(session, ctx.company_id, payload.notification_ids)
    return success_response({"updated": updated})
