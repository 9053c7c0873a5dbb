"""Ledger router: fee payments and account transactions."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.dependencies import get_current_user
from school_ledger.auth.rbac import check_permission
from school_ledger.auth.schemas import CurrentUser
from school_ledger.core.enums import PaymentMethod, TransactionType
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import (
    PaymentCreate,
    PaymentPosted,
    PaymentResponse,
    TransactionCreate,
    TransactionResponse,
)
from . import service

router = APIRouter(prefix="/api/v1", tags=["ledger"])


# --- Payments ---
@router.post(
    "/fees/payments",
    response_model=PaymentPosted,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def post_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentPosted:
    try:
        return await service.post_payment(db, payload, collected_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/fees/payments",
    response_model=List[PaymentResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_payments(
    student_id: Optional[UUID] = Query(None),
    fee_allocation_id: Optional[UUID] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    return await service.list_payments(
        db,
        student_id=student_id,
        fee_allocation_id=fee_allocation_id,
        payment_method=payment_method.value if payment_method else None,
        date_from=date_from,
        date_to=date_to,
    )


# --- Transactions ---
@router.post(
    "/accounting/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("accounting", "create"))],
)
async def post_transaction(
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TransactionResponse:
    try:
        return await service.post_transaction(db, payload, posted_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/accounting/transactions",
    response_model=List[TransactionResponse],
    dependencies=[Depends(check_permission("accounting", "read"))],
)
async def list_transactions(
    account_id: Optional[UUID] = Query(None),
    voucher_head_id: Optional[UUID] = Query(None),
    txn_type: Optional[TransactionType] = Query(None, alias="type"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[TransactionResponse]:
    return await service.list_transactions(
        db,
        account_id=account_id,
        voucher_head_id=voucher_head_id,
        txn_type=txn_type.value if txn_type else None,
        date_from=date_from,
        date_to=date_to,
    )
