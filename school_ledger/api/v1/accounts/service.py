"""Account store: accounts with ledger-derived balances, and voucher heads."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.core.dates import school_today
from school_ledger.core.enums import TransactionType
from school_ledger.core.exceptions import Conflict, LedgerInternalError, NotFound, ServiceError
from school_ledger.core.models import Account, LedgerTransaction, VoucherHead
from school_ledger.core.money import to_money

from .schemas import (
    AccountCreate,
    AccountResponse,
    VoucherHeadCreate,
    VoucherHeadResponse,
    VoucherHeadUpdate,
)

logger = logging.getLogger(__name__)


# --- Account ---
async def create_account(
    db: AsyncSession,
    payload: AccountCreate,
    created_by: Optional[str] = None,
) -> AccountResponse:
    """Create an account at balance 0; a positive opening balance is posted as a credit transaction."""
    name = payload.name.strip()
    existing = (
        await db.execute(select(Account.id).where(Account.name == name))
    ).scalar_one_or_none()
    if existing:
        raise Conflict(f"An account named {name!r} already exists")

    account = Account(
        name=name,
        category=payload.category.value,
        account_type=payload.account_type.value if payload.account_type else None,
        description=(payload.description or "").strip() or None,
        provider=(payload.provider or "").strip() or None,
        account_number=(payload.account_number or "").strip() or None,
        balance=to_money(0),
    )
    db.add(account)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"An account named {name!r} already exists")

    opening = to_money(payload.opening_balance)
    try:
        if opening > 0:
            head = await ledger_service.get_system_voucher_head(db, ledger_service.OPENING_BALANCE_HEAD)
            # Not yet committed, so no other writer can see this account.
            await ledger_service.apply_transaction(
                db,
                account,
                head,
                opening,
                TransactionType.credit,
                school_today(),
                description="Opening balance",
                posted_by=created_by,
            )
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Opening balance for account %r failed; rolled back", name)
        raise LedgerInternalError()
    logger.info("Account %s (%s) created with balance %s", account.id, account.name, account.balance)
    return AccountResponse.model_validate(account)


async def get_account(db: AsyncSession, account_id: UUID) -> AccountResponse:
    account = await db.get(Account, account_id, populate_existing=True)
    if not account:
        raise NotFound("account", account_id)
    return AccountResponse.model_validate(account)


async def list_accounts(db: AsyncSession) -> List[AccountResponse]:
    stmt = select(Account).order_by(Account.created_at, Account.id).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return [AccountResponse.model_validate(a) for a in result.scalars().all()]


# --- Voucher Head ---
async def create_voucher_head(db: AsyncSession, payload: VoucherHeadCreate) -> VoucherHeadResponse:
    name = payload.name.strip()
    if ledger_service.is_reserved_head_name(name):
        raise Conflict(f"Voucher head name {name!r} is reserved for system postings")
    head = VoucherHead(
        name=name,
        description=(payload.description or "").strip() or None,
        is_system=False,
    )
    db.add(head)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"A voucher head named {name!r} already exists")
    await db.refresh(head)
    return VoucherHeadResponse.model_validate(head)


async def list_voucher_heads(db: AsyncSession) -> List[VoucherHeadResponse]:
    result = await db.execute(select(VoucherHead).order_by(VoucherHead.name))
    return [VoucherHeadResponse.model_validate(h) for h in result.scalars().all()]


async def update_voucher_head(
    db: AsyncSession,
    voucher_head_id: UUID,
    payload: VoucherHeadUpdate,
) -> VoucherHeadResponse:
    """Rename or re-describe a voucher head that no transaction has been posted under yet."""
    head = await db.get(VoucherHead, voucher_head_id)
    if not head:
        raise NotFound("voucher_head", voucher_head_id)
    referenced = (
        await db.execute(
            select(LedgerTransaction.id).where(LedgerTransaction.voucher_head_id == voucher_head_id).limit(1)
        )
    ).scalar_one_or_none()
    if referenced or head.is_system:
        raise Conflict("Voucher head is referenced by posted transactions and cannot be changed")
    if payload.name is not None:
        name = payload.name.strip()
        if ledger_service.is_reserved_head_name(name):
            raise Conflict(f"Voucher head name {name!r} is reserved for system postings")
        head.name = name
    if payload.description is not None:
        head.description = payload.description.strip() or None
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"A voucher head named {head.name!r} already exists")
    await db.refresh(head)
    return VoucherHeadResponse.model_validate(head)
