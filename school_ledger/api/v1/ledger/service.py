"""Ledger engine: the only write path for allocation status/paid amount and account balances.

Every posting appends its log record (payment or transaction), recomputes the derived
value it affects and writes the audit rows in one database transaction, while holding
the per-entity write lock of the allocation or account involved.
"""

import logging
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, List, Optional
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.config import settings
from school_ledger.core.dates import school_today
from school_ledger.core.enums import AccountCategory, FeeAllocationStatus, TransactionType
from school_ledger.core.exceptions import (
    Conflict,
    InsufficientBalance,
    InvalidAmount,
    LedgerBusy,
    LedgerInternalError,
    NotFound,
    OverpaymentRejected,
    ServiceError,
    ValidationFailed,
)
from school_ledger.core.locks import ledger_locks
from school_ledger.core.models import Account, FeeAllocation, LedgerAuditLog, LedgerTransaction, Payment, VoucherHead
from school_ledger.core.money import to_money
from school_ledger.db.session import is_postgres

from .schemas import (
    PaymentCreate,
    PaymentPosted,
    PaymentResponse,
    TransactionCreate,
    TransactionResponse,
)

logger = logging.getLogger(__name__)

ALLOCATION_ENTITY = "fee_allocation"
ACCOUNT_ENTITY = "account"

OPENING_BALANCE_HEAD = "Opening Balance"
FEE_COLLECTION_HEAD = "Fee Collection"
SYSTEM_VOUCHER_HEADS = (OPENING_BALANCE_HEAD, FEE_COLLECTION_HEAD)

# PostgreSQL lock_not_available
_LOCK_NOT_AVAILABLE = "55P03"


def derive_status(paid_amount: Decimal, amount: Decimal) -> FeeAllocationStatus:
    if paid_amount == amount:
        return FeeAllocationStatus.paid
    if paid_amount > 0:
        return FeeAllocationStatus.partial
    return FeeAllocationStatus.unpaid


# --- Audit helper ---
async def _log_ledger_audit(
    db: AsyncSession,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    changed_by: Optional[str],
) -> None:
    log = LedgerAuditLog(
        reference_table=reference_table,
        reference_id=reference_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
    )
    db.add(log)


@asynccontextmanager
async def _atomic(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Commit everything done in the block, or roll all of it back."""
    try:
        yield
        await db.commit()
    except ServiceError as e:
        await db.rollback()
        logger.warning("%s rejected: %s", operation, e.message)
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("%s failed; rolled back", operation)
        raise LedgerInternalError()


async def _lock_row(db: AsyncSession, model, entity: str, entity_id: UUID):
    """Re-read a row under a database row lock, bypassing any stale identity-map copy."""
    if is_postgres(db):
        timeout_ms = int(settings.ledger_lock_timeout_seconds * 1000)
        await db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
    stmt = (
        select(model)
        .where(model.id == entity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    try:
        row = (await db.execute(stmt)).scalar_one_or_none()
    except DBAPIError as e:
        code = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
        if code == _LOCK_NOT_AVAILABLE:
            raise LedgerBusy(entity, entity_id)
        raise
    if row is None:
        raise NotFound(entity, entity_id)
    return row


def is_reserved_head_name(name: str) -> bool:
    """True for names the engine keeps for its own voucher heads."""
    wanted = name.strip().casefold()
    return any(wanted == reserved.casefold() for reserved in SYSTEM_VOUCHER_HEADS)


async def _insert_system_head(db: AsyncSession, name: str) -> None:
    insert = pg_insert if is_postgres(db) else sqlite_insert
    stmt = (
        insert(VoucherHead)
        .values(id=uuid.uuid4(), name=name, description=f"{name} (system)", is_system=True)
        .on_conflict_do_nothing(index_elements=["name"])
    )
    await db.execute(stmt)


async def get_system_voucher_head(db: AsyncSession, name: str) -> VoucherHead:
    """Voucher head the engine posts under on its own, created on first use.

    The insert skips an existing row and the head is selected again, so two
    writers reaching first use together share one row instead of failing on
    the unique name.
    """
    stmt = (
        select(VoucherHead)
        .where(VoucherHead.name == name, VoucherHead.is_system.is_(True))
        .execution_options(populate_existing=True)
    )
    head = (await db.execute(stmt)).scalar_one_or_none()
    if head:
        return head
    await _insert_system_head(db, name)
    head = (await db.execute(stmt)).scalar_one_or_none()
    if head is None:
        raise Conflict(f"Voucher head name {name!r} is reserved but held by a user-created head")
    logger.info("System voucher head %r created", name)
    return head


async def apply_transaction(
    db: AsyncSession,
    account: Account,
    voucher_head: VoucherHead,
    amount: Decimal,
    txn_type: TransactionType,
    transaction_date: date,
    description: Optional[str] = None,
    reference: Optional[str] = None,
    posted_by: Optional[str] = None,
) -> LedgerTransaction:
    """
    Append a transaction and move the account balance by it, inside the caller's unit of work.
    The caller must hold the account's write lock, or own an account nobody else can see yet.
    """
    current = to_money(account.balance)
    if txn_type == TransactionType.debit:
        new_balance = current - amount
        # Only asset accounts (cash, bank, mobile money) carry a balance floor.
        if account.category == AccountCategory.asset.value and new_balance < 0:
            raise InsufficientBalance(amount, current)
    else:
        new_balance = current + amount

    txn = LedgerTransaction(
        voucher_head_id=voucher_head.id,
        account_id=account.id,
        type=txn_type.value,
        amount=amount,
        transaction_date=transaction_date,
        description=(description or "").strip() or None,
        reference=(reference or "").strip() or None,
        balance_after=new_balance,
        posted_by=posted_by,
    )
    db.add(txn)
    account.balance = new_balance
    await db.flush()
    await _log_ledger_audit(
        db, "ledger_transactions", txn.id,
        "CREATE",
        None,
        {"account_id": str(account.id), "type": txn.type, "amount": str(amount), "voucher_head_id": str(voucher_head.id)},
        posted_by,
    )
    await _log_ledger_audit(
        db, "accounts", account.id,
        "UPDATE",
        {"balance": str(current)},
        {"balance": str(new_balance)},
        posted_by,
    )
    return txn


# --- Payment ---
def _payment_to_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        student_id=payment.student_id,
        fee_allocation_id=payment.fee_allocation_id,
        amount=to_money(payment.amount),
        payment_method=payment.payment_method,
        payment_date=payment.payment_date,
        remarks=payment.remarks,
        reference=payment.reference,
        deposit_transaction_id=payment.deposit_transaction_id,
        collected_by=payment.collected_by,
        created_at=payment.created_at,
    )


async def post_payment(
    db: AsyncSession,
    payload: PaymentCreate,
    collected_by: Optional[str] = None,
) -> PaymentPosted:
    """
    Record a payment against a fee allocation.

    Rejects amounts above the allocation's remaining balance rather than clamping them.
    With deposit_account_id the money is credited to that account in the same commit;
    locks are always taken allocation first, then account.
    """
    amount = to_money(payload.amount)
    if amount <= 0:
        raise InvalidAmount(amount, "Payment amount must be greater than zero")
    payment_date = payload.payment_date or school_today()

    async with AsyncExitStack() as stack:
        await stack.enter_async_context(ledger_locks.hold(ALLOCATION_ENTITY, payload.fee_allocation_id))
        if payload.deposit_account_id is not None:
            await stack.enter_async_context(ledger_locks.hold(ACCOUNT_ENTITY, payload.deposit_account_id))

        async with _atomic(db, "Payment"):
            allocation = await _lock_row(db, FeeAllocation, ALLOCATION_ENTITY, payload.fee_allocation_id)
            if allocation.student_id != payload.student_id:
                raise ValidationFailed("Fee allocation does not belong to this student", field="student_id")

            owed = to_money(allocation.amount)
            paid_before = to_money(allocation.paid_amount)
            remaining = owed - paid_before
            if amount > remaining:
                raise OverpaymentRejected(amount, remaining)

            deposit_txn = None
            if payload.deposit_account_id is not None:
                account = await _lock_row(db, Account, ACCOUNT_ENTITY, payload.deposit_account_id)
                if account.category != AccountCategory.asset.value:
                    raise ValidationFailed("Payments can only be deposited into asset accounts", field="deposit_account_id")
                head = await get_system_voucher_head(db, FEE_COLLECTION_HEAD)
                deposit_txn = await apply_transaction(
                    db,
                    account,
                    head,
                    amount,
                    TransactionType.credit,
                    payment_date,
                    description=f"Fee payment for allocation {allocation.id}",
                    reference=payload.reference,
                    posted_by=collected_by,
                )

            payment = Payment(
                student_id=payload.student_id,
                fee_allocation_id=allocation.id,
                amount=amount,
                payment_method=payload.payment_method.value,
                payment_date=payment_date,
                remarks=(payload.remarks or "").strip() or None,
                reference=(payload.reference or "").strip() or None,
                deposit_transaction_id=deposit_txn.id if deposit_txn else None,
                collected_by=collected_by,
            )
            db.add(payment)

            old_status = allocation.status
            paid_after = paid_before + amount
            allocation.paid_amount = paid_after
            allocation.status = derive_status(paid_after, owed).value
            await db.flush()

            await _log_ledger_audit(
                db, "payments", payment.id,
                "CREATE",
                None,
                {"amount": str(amount), "payment_method": payment.payment_method, "fee_allocation_id": str(allocation.id)},
                collected_by,
            )
            await _log_ledger_audit(
                db, "fee_allocations", allocation.id,
                "UPDATE",
                {"paid_amount": str(paid_before), "status": old_status},
                {"paid_amount": str(paid_after), "status": allocation.status},
                collected_by,
            )

    logger.info(
        "Payment %s of %s posted to allocation %s (%s -> %s)",
        payment.id, amount, allocation.id, old_status, allocation.status,
    )
    return PaymentPosted(
        **_payment_to_response(payment).model_dump(),
        allocation_status=allocation.status,
        allocation_paid_amount=paid_after,
        remaining_balance=owed - paid_after,
    )


async def list_payments(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    fee_allocation_id: Optional[UUID] = None,
    payment_method: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[PaymentResponse]:
    stmt = select(Payment)
    if student_id is not None:
        stmt = stmt.where(Payment.student_id == student_id)
    if fee_allocation_id is not None:
        stmt = stmt.where(Payment.fee_allocation_id == fee_allocation_id)
    if payment_method:
        stmt = stmt.where(Payment.payment_method == payment_method)
    if date_from is not None:
        stmt = stmt.where(Payment.payment_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Payment.payment_date <= date_to)
    stmt = stmt.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
    result = await db.execute(stmt)
    return [_payment_to_response(p) for p in result.scalars().all()]


# --- Transaction ---
def _txn_to_response(
    txn: LedgerTransaction,
    voucher_head_name: Optional[str],
    account_name: Optional[str],
) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        voucher_head_id=txn.voucher_head_id,
        voucher_head_name=voucher_head_name,
        account_id=txn.account_id,
        account_name=account_name,
        type=txn.type,
        amount=to_money(txn.amount),
        transaction_date=txn.transaction_date,
        description=txn.description,
        reference=txn.reference,
        balance_after=to_money(txn.balance_after),
        posted_by=txn.posted_by,
        created_at=txn.created_at,
    )


async def post_transaction(
    db: AsyncSession,
    payload: TransactionCreate,
    posted_by: Optional[str] = None,
) -> TransactionResponse:
    """Post a debit or credit against an account under its write lock."""
    amount = to_money(payload.amount)
    if amount <= 0:
        raise InvalidAmount(amount, "Transaction amount must be greater than zero")

    async with ledger_locks.hold(ACCOUNT_ENTITY, payload.account_id):
        async with _atomic(db, "Transaction"):
            head = await db.get(VoucherHead, payload.voucher_head_id)
            if not head:
                raise NotFound("voucher_head", payload.voucher_head_id)
            account = await _lock_row(db, Account, ACCOUNT_ENTITY, payload.account_id)
            txn = await apply_transaction(
                db,
                account,
                head,
                amount,
                payload.type,
                payload.transaction_date or school_today(),
                description=payload.description,
                reference=payload.reference,
                posted_by=posted_by,
            )

    logger.info(
        "Transaction %s: %s %s on account %s, balance now %s",
        txn.id, txn.type, amount, account.id, txn.balance_after,
    )
    return _txn_to_response(txn, head.name, account.name)


async def list_transactions(
    db: AsyncSession,
    account_id: Optional[UUID] = None,
    voucher_head_id: Optional[UUID] = None,
    txn_type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[TransactionResponse]:
    stmt = (
        select(
            LedgerTransaction,
            VoucherHead.name.label("voucher_head_name"),
            Account.name.label("account_name"),
        )
        .join(VoucherHead, LedgerTransaction.voucher_head_id == VoucherHead.id)
        .join(Account, LedgerTransaction.account_id == Account.id)
    )
    if account_id is not None:
        stmt = stmt.where(LedgerTransaction.account_id == account_id)
    if voucher_head_id is not None:
        stmt = stmt.where(LedgerTransaction.voucher_head_id == voucher_head_id)
    if txn_type:
        stmt = stmt.where(LedgerTransaction.type == txn_type)
    if date_from is not None:
        stmt = stmt.where(LedgerTransaction.transaction_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(LedgerTransaction.transaction_date <= date_to)
    stmt = stmt.order_by(LedgerTransaction.transaction_date.desc(), LedgerTransaction.created_at.desc())
    result = await db.execute(stmt)
    return [_txn_to_response(txn, vh_name, acc_name) for txn, vh_name, acc_name in result.all()]
