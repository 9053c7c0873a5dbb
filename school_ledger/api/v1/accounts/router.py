"""Accounting router: accounts (live balances) and voucher heads."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.dependencies import get_current_user
from school_ledger.auth.rbac import check_permission
from school_ledger.auth.schemas import CurrentUser
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import (
    AccountCreate,
    AccountResponse,
    VoucherHeadCreate,
    VoucherHeadResponse,
    VoucherHeadUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/accounting", tags=["accounting"])


# --- Accounts ---
@router.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("accounting", "create"))],
)
async def create_account(
    payload: AccountCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AccountResponse:
    try:
        return await service.create_account(db, payload, created_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/accounts",
    response_model=List[AccountResponse],
    dependencies=[Depends(check_permission("accounting", "read"))],
)
async def list_accounts(db: AsyncSession = Depends(get_db)) -> List[AccountResponse]:
    return await service.list_accounts(db)


@router.get(
    "/accounts/{account_id}",
    response_model=AccountResponse,
    dependencies=[Depends(check_permission("accounting", "read"))],
)
async def get_account(
    account_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    try:
        return await service.get_account(db, account_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


# --- Voucher Heads ---
@router.post(
    "/voucher-heads",
    response_model=VoucherHeadResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("accounting", "create"))],
)
async def create_voucher_head(
    payload: VoucherHeadCreate,
    db: AsyncSession = Depends(get_db),
) -> VoucherHeadResponse:
    try:
        return await service.create_voucher_head(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/voucher-heads",
    response_model=List[VoucherHeadResponse],
    dependencies=[Depends(check_permission("accounting", "read"))],
)
async def list_voucher_heads(db: AsyncSession = Depends(get_db)) -> List[VoucherHeadResponse]:
    return await service.list_voucher_heads(db)


@router.patch(
    "/voucher-heads/{voucher_head_id}",
    response_model=VoucherHeadResponse,
    dependencies=[Depends(check_permission("accounting", "update"))],
)
async def update_voucher_head(
    voucher_head_id: UUID,
    payload: VoucherHeadUpdate,
    db: AsyncSession = Depends(get_db),
) -> VoucherHeadResponse:
    try:
        return await service.update_voucher_head(db, voucher_head_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
