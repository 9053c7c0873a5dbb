"""Bulk router: batch fee collection and fee reminders."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.dependencies import get_current_user
from school_ledger.auth.rbac import check_permission
from school_ledger.auth.schemas import CurrentUser
from school_ledger.core.dates import school_today
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import BulkCollectRequest, BulkCollectResult, ReminderRequest, ReminderResult
from .service import ReminderDispatcher, get_reminder_dispatcher
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


@router.post(
    "/bulk-collect",
    response_model=BulkCollectResult,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def bulk_collect(
    payload: BulkCollectRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkCollectResult:
    """Post each entry as its own payment. Rejected entries come back in `failed` with their index."""
    return await service.bulk_collect(db, payload, collected_by=current_user.id)


@router.post(
    "/send-reminders",
    response_model=ReminderResult,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def send_reminders(
    payload: ReminderRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: ReminderDispatcher = Depends(get_reminder_dispatcher),
) -> ReminderResult:
    try:
        return await service.send_reminders(db, payload, dispatcher, as_of=payload.as_of or school_today())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
