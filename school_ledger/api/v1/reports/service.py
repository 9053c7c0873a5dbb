"""Aggregation service: dashboard and report figures, recomputed from the ledger on every call.

Nothing here is cached or stored. Each report reads inside one snapshot so it never
sums a half-applied posting.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.accounts.schemas import AccountResponse
from school_ledger.core.enums import (
    AccountCategory,
    AccountType,
    DueReportStatus,
    FeeAllocationStatus,
    StudentStatus,
    TransactionType,
)
from school_ledger.core.models import Account, FeeAllocation, FeeGroup, FeeType, LedgerTransaction, Payment, Student
from school_ledger.core.money import to_money
from school_ledger.db.session import read_snapshot

from .schemas import (
    ClassCollection,
    DashboardSummary,
    DueReport,
    DueReportItem,
    PaymentHistoryItem,
    PaymentHistoryReport,
    RecentPayment,
)

HUNDRED = Decimal("100")


def collection_rate(paid: Decimal, due: Decimal) -> Decimal:
    """Percentage of due that has been paid, to 2 dp; 0 when nothing is due."""
    if due <= 0:
        return to_money(0)
    return to_money(paid / due * HUNDRED)


def days_overdue(due_date: date, as_of: date) -> int:
    return max(0, (as_of - due_date).days)


async def _sum(db: AsyncSession, expr, *criteria) -> Decimal:
    stmt = select(func.coalesce(func.sum(expr), 0))
    if criteria:
        stmt = stmt.where(*criteria)
    return to_money((await db.execute(stmt)).scalar())


# --- Dashboard ---
async def dashboard_summary(db: AsyncSession, as_of: date, recent_limit: int = 5) -> DashboardSummary:
    async with read_snapshot(db):
        total_students = (
            await db.execute(select(func.count(Student.id)).where(Student.status == StudentStatus.ACTIVE.value))
        ).scalar() or 0

        not_paid = FeeAllocation.status != FeeAllocationStatus.paid.value
        outstanding = FeeAllocation.amount - FeeAllocation.paid_amount
        total_collected = await _sum(db, Payment.amount)
        total_due = await _sum(db, outstanding, not_paid)
        overdue_amount = await _sum(db, outstanding, not_paid, FeeAllocation.due_date < as_of)
        overdue_count = (
            await db.execute(
                select(func.count(FeeAllocation.id)).where(not_paid, FeeAllocation.due_date < as_of)
            )
        ).scalar() or 0

        recent_rows = (
            await db.execute(
                select(
                    Payment,
                    Student.full_name,
                    Student.class_name,
                    FeeType.name,
                )
                .join(Student, Payment.student_id == Student.id)
                .join(FeeAllocation, Payment.fee_allocation_id == FeeAllocation.id)
                .join(FeeType, FeeAllocation.fee_type_id == FeeType.id)
                .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
                .limit(recent_limit)
            )
        ).all()
        recent_payments = [
            RecentPayment(
                id=p.id,
                student_id=p.student_id,
                student_name=student_name,
                class_name=class_name,
                fee_type_name=fee_type_name,
                amount=to_money(p.amount),
                payment_method=p.payment_method,
                payment_date=p.payment_date,
            )
            for p, student_name, class_name, fee_type_name in recent_rows
        ]

        month = extract("month", Payment.payment_date)
        monthly_rows = (
            await db.execute(
                select(month, func.coalesce(func.sum(Payment.amount), 0))
                .where(
                    Payment.payment_date >= date(as_of.year, 1, 1),
                    Payment.payment_date <= date(as_of.year, 12, 31),
                )
                .group_by(month)
            )
        ).all()
        monthly_collection = [to_money(0)] * 12
        for month_number, total in monthly_rows:
            monthly_collection[int(month_number) - 1] = to_money(total)

        total_expenses = await _sum(
            db, LedgerTransaction.amount, LedgerTransaction.type == TransactionType.debit.value
        )

        cash_rows = (
            await db.execute(
                select(Account.account_type, func.coalesce(func.sum(Account.balance), 0))
                .where(Account.category == AccountCategory.asset.value, Account.account_type.is_not(None))
                .group_by(Account.account_type)
            )
        ).all()
        cash_by_type: Dict[str, Decimal] = {account_type: to_money(total) for account_type, total in cash_rows}

        accounts = (
            await db.execute(
                select(Account).order_by(Account.created_at, Account.id).execution_options(populate_existing=True)
            )
        ).scalars().all()
        account_items = [AccountResponse.model_validate(a) for a in accounts]

    return DashboardSummary(
        as_of=as_of,
        total_students=total_students,
        total_collected=total_collected,
        total_due=total_due,
        overdue_count=overdue_count,
        overdue_amount=overdue_amount,
        collection_rate=collection_rate(total_collected, total_collected + total_due),
        recent_payments=recent_payments,
        monthly_collection=monthly_collection,
        total_expenses=total_expenses,
        cash_at_hand=cash_by_type.get(AccountType.cash.value, to_money(0)),
        cash_in_bank=cash_by_type.get(AccountType.bank.value, to_money(0)),
        cash_on_mobile_money=cash_by_type.get(AccountType.mobile_money.value, to_money(0)),
        accounts=account_items,
    )


# --- Class-wise ---
async def class_wise_report(db: AsyncSession) -> List[ClassCollection]:
    """Billed vs collected per student class. Paid figures come from the payment log."""
    async with read_snapshot(db):
        student_rows = (
            await db.execute(
                select(Student.class_name, func.count(Student.id))
                .where(Student.status == StudentStatus.ACTIVE.value)
                .group_by(Student.class_name)
            )
        ).all()
        due_rows = (
            await db.execute(
                select(Student.class_name, func.coalesce(func.sum(FeeAllocation.amount), 0))
                .join(Student, FeeAllocation.student_id == Student.id)
                .group_by(Student.class_name)
            )
        ).all()
        paid_rows = (
            await db.execute(
                select(Student.class_name, func.coalesce(func.sum(Payment.amount), 0))
                .join(Student, Payment.student_id == Student.id)
                .group_by(Student.class_name)
            )
        ).all()

    students = {class_name: count for class_name, count in student_rows}
    due = {class_name: to_money(total) for class_name, total in due_rows}
    paid = {class_name: to_money(total) for class_name, total in paid_rows}

    report = []
    for class_name in sorted(set(students) | set(due) | set(paid)):
        class_due = due.get(class_name, to_money(0))
        class_paid = paid.get(class_name, to_money(0))
        report.append(
            ClassCollection(
                class_name=class_name,
                student_count=students.get(class_name, 0),
                total_due=class_due,
                total_paid=class_paid,
                outstanding=class_due - class_paid,
                collection_rate=collection_rate(class_paid, class_due),
            )
        )
    return report


# --- Due report ---
async def due_report(
    db: AsyncSession,
    as_of: date,
    class_name: Optional[str] = None,
    fee_type_id: Optional[UUID] = None,
    status_filter: Optional[DueReportStatus] = None,
) -> DueReport:
    """
    Allocations with their overdue age as of a calendar date.
    Without a status filter every allocation that is not fully paid is listed.
    """
    stmt = (
        select(
            FeeAllocation,
            Student.full_name,
            Student.admission_number,
            Student.class_name,
            FeeType.name,
            FeeGroup.name,
        )
        .join(Student, FeeAllocation.student_id == Student.id)
        .join(FeeType, FeeAllocation.fee_type_id == FeeType.id)
        .join(FeeGroup, FeeAllocation.fee_group_id == FeeGroup.id)
        .execution_options(populate_existing=True)
    )
    if status_filter == DueReportStatus.paid:
        stmt = stmt.where(FeeAllocation.status == FeeAllocationStatus.paid.value)
    else:
        stmt = stmt.where(FeeAllocation.status != FeeAllocationStatus.paid.value)
        if status_filter == DueReportStatus.overdue:
            stmt = stmt.where(FeeAllocation.due_date < as_of)
        elif status_filter == DueReportStatus.due:
            stmt = stmt.where(FeeAllocation.due_date >= as_of)
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    if fee_type_id is not None:
        stmt = stmt.where(FeeAllocation.fee_type_id == fee_type_id)
    stmt = stmt.order_by(FeeAllocation.due_date, Student.class_name, Student.full_name)

    async with read_snapshot(db):
        rows = (await db.execute(stmt)).all()
        items = []
        for allocation, student_name, admission_number, student_class, fee_type_name, fee_group_name in rows:
            amount = to_money(allocation.amount)
            paid = to_money(allocation.paid_amount)
            if allocation.status == FeeAllocationStatus.paid.value:
                age, row_status = 0, DueReportStatus.paid
            else:
                age = days_overdue(allocation.due_date, as_of)
                row_status = DueReportStatus.overdue if allocation.due_date < as_of else DueReportStatus.due
            items.append(
                DueReportItem(
                    allocation_id=allocation.id,
                    student_id=allocation.student_id,
                    student_name=student_name,
                    admission_number=admission_number,
                    class_name=student_class,
                    fee_type_id=allocation.fee_type_id,
                    fee_type_name=fee_type_name,
                    fee_group_name=fee_group_name,
                    amount=amount,
                    paid=paid,
                    balance=amount - paid,
                    due_date=allocation.due_date,
                    days_overdue=age,
                    allocation_status=allocation.status,
                    status=row_status,
                )
            )
    return DueReport(
        as_of=as_of,
        items=items,
        total_amount=sum((i.amount for i in items), to_money(0)),
        total_paid=sum((i.paid for i in items), to_money(0)),
        total_balance=sum((i.balance for i in items), to_money(0)),
    )


# --- Payment history ---
async def payment_history(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    class_name: Optional[str] = None,
    fee_type_id: Optional[UUID] = None,
    payment_method: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> PaymentHistoryReport:
    stmt = (
        select(
            Payment,
            Student.full_name,
            Student.admission_number,
            Student.class_name,
            FeeType.name,
        )
        .join(Student, Payment.student_id == Student.id)
        .join(FeeAllocation, Payment.fee_allocation_id == FeeAllocation.id)
        .join(FeeType, FeeAllocation.fee_type_id == FeeType.id)
    )
    if student_id is not None:
        stmt = stmt.where(Payment.student_id == student_id)
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    if fee_type_id is not None:
        stmt = stmt.where(FeeAllocation.fee_type_id == fee_type_id)
    if payment_method:
        stmt = stmt.where(Payment.payment_method == payment_method)
    if date_from is not None:
        stmt = stmt.where(Payment.payment_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Payment.payment_date <= date_to)
    stmt = stmt.order_by(Payment.payment_date.desc(), Payment.created_at.desc())

    async with read_snapshot(db):
        rows = (await db.execute(stmt)).all()
        items = [
            PaymentHistoryItem(
                id=p.id,
                student_id=p.student_id,
                student_name=student_name,
                admission_number=admission_number,
                class_name=student_class,
                fee_allocation_id=p.fee_allocation_id,
                fee_type_name=fee_type_name,
                amount=to_money(p.amount),
                payment_method=p.payment_method,
                payment_date=p.payment_date,
                remarks=p.remarks,
                reference=p.reference,
            )
            for p, student_name, admission_number, student_class, fee_type_name in rows
        ]
    return PaymentHistoryReport(
        items=items,
        count=len(items),
        total_amount=sum((i.amount for i in items), to_money(0)),
    )
