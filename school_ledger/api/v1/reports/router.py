"""Reports router: dashboard, due report, class-wise and payment history."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.rbac import check_permission
from school_ledger.core.config import settings
from school_ledger.core.dates import school_today
from school_ledger.core.enums import DueReportStatus, PaymentMethod
from school_ledger.db.session import get_db

from .schemas import ClassCollection, DashboardSummary, DueReport, PaymentHistoryReport
from . import service

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(check_permission("reports", "read"))],
)


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> DashboardSummary:
    return await service.dashboard_summary(
        db,
        as_of=as_of or school_today(),
        recent_limit=settings.dashboard_recent_payments,
    )


@router.get("/due", response_model=DueReport)
async def due_report(
    as_of: Optional[date] = Query(None),
    class_name: Optional[str] = Query(None, alias="class"),
    fee_type_id: Optional[UUID] = Query(None),
    report_status: Optional[DueReportStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> DueReport:
    return await service.due_report(
        db,
        as_of=as_of or school_today(),
        class_name=class_name,
        fee_type_id=fee_type_id,
        status_filter=report_status,
    )


@router.get("/class-wise", response_model=List[ClassCollection])
async def class_wise(db: AsyncSession = Depends(get_db)) -> List[ClassCollection]:
    return await service.class_wise_report(db)


@router.get("/payment-history", response_model=PaymentHistoryReport)
async def payment_history(
    student_id: Optional[UUID] = Query(None),
    class_name: Optional[str] = Query(None, alias="class"),
    fee_type_id: Optional[UUID] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> PaymentHistoryReport:
    return await service.payment_history(
        db,
        student_id=student_id,
        class_name=class_name,
        fee_type_id=fee_type_id,
        payment_method=payment_method.value if payment_method else None,
        date_from=date_from,
        date_to=date_to,
    )
