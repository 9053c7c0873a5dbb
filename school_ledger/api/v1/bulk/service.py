"""Bulk service: batch fee collection and fee reminders.

Bulk collection is a loop over the single-payment posting; every entry commits or fails
on its own, so one bad row never voids the rest of the batch.
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.api.v1.ledger.schemas import PaymentCreate
from school_ledger.core.enums import FeeAllocationStatus, ReminderMessageType, StudentStatus
from school_ledger.core.exceptions import ServiceError
from school_ledger.core.models import FeeAllocation, FeeType, Student
from school_ledger.core.money import to_money
from school_ledger.db.session import read_snapshot

from .schemas import (
    BulkCollectFailure,
    BulkCollectRequest,
    BulkCollectResult,
    BulkCollectSuccess,
    Reminder,
    ReminderFailed,
    ReminderItem,
    ReminderRequest,
    ReminderResult,
    ReminderSent,
)

logger = logging.getLogger(__name__)


# --- Bulk collect ---
async def bulk_collect(
    db: AsyncSession,
    payload: BulkCollectRequest,
    collected_by: Optional[str] = None,
) -> BulkCollectResult:
    succeeded: List[BulkCollectSuccess] = []
    failed: List[BulkCollectFailure] = []

    for index, entry in enumerate(payload.entries):
        try:
            posted = await ledger_service.post_payment(
                db,
                PaymentCreate(
                    student_id=entry.student_id,
                    fee_allocation_id=entry.fee_allocation_id,
                    amount=entry.amount,
                    payment_method=payload.payment_method,
                    payment_date=payload.payment_date,
                    remarks=payload.remarks,
                    deposit_account_id=payload.deposit_account_id,
                ),
                collected_by=collected_by,
            )
        except ServiceError as e:
            detail = e.to_detail()
            failed.append(
                BulkCollectFailure(
                    index=index,
                    student_id=entry.student_id,
                    fee_allocation_id=entry.fee_allocation_id,
                    amount=entry.amount,
                    kind=detail.pop("kind"),
                    message=detail.pop("message"),
                    details=detail,
                )
            )
            continue
        except asyncio.CancelledError:
            logger.warning(
                "Bulk collection cancelled after %d of %d entries (%d posted)",
                index, len(payload.entries), len(succeeded),
            )
            raise
        succeeded.append(BulkCollectSuccess(index=index, payment=posted))

    logger.info("Bulk collection finished: %d posted, %d rejected", len(succeeded), len(failed))
    return BulkCollectResult(succeeded=succeeded, failed=failed)


# --- Reminders ---
class ReminderDispatcher:
    """Delivers a reminder to the student's guardians; raise to report a failed delivery."""

    async def send(self, reminder: Reminder) -> None:
        raise NotImplementedError


class LoggingReminderDispatcher(ReminderDispatcher):
    """Default dispatcher: no delivery channel is configured, so reminders are only logged."""

    async def send(self, reminder: Reminder) -> None:
        logger.info(
            "Reminder (%s) for student %s (%s): %s",
            reminder.message_type.value, reminder.admission_number, reminder.student_name, reminder.message,
        )


def get_reminder_dispatcher() -> ReminderDispatcher:
    return LoggingReminderDispatcher()


def _default_message(student_name: str, message_type: ReminderMessageType, total, as_of: date) -> str:
    if message_type == ReminderMessageType.overdue_notice:
        return (
            f"Dear parent/guardian of {student_name}, school fees of {total} are overdue as of "
            f"{as_of.isoformat()}. Please clear the balance as soon as possible."
        )
    return (
        f"Dear parent/guardian of {student_name}, this is a reminder that school fees of {total} "
        f"are outstanding as of {as_of.isoformat()}."
    )


async def build_reminders(db: AsyncSession, payload: ReminderRequest, as_of: date) -> List[Reminder]:
    """One reminder per active student with non-paid allocations (overdue ones only for overdue notices)."""
    stmt = (
        select(FeeAllocation, Student, FeeType.name)
        .join(Student, FeeAllocation.student_id == Student.id)
        .join(FeeType, FeeAllocation.fee_type_id == FeeType.id)
        .where(
            FeeAllocation.status != FeeAllocationStatus.paid.value,
            Student.status == StudentStatus.ACTIVE.value,
        )
        .execution_options(populate_existing=True)
    )
    if payload.message_type == ReminderMessageType.overdue_notice:
        stmt = stmt.where(FeeAllocation.due_date < as_of)
    if payload.class_name:
        stmt = stmt.where(Student.class_name == payload.class_name)
    if payload.stream:
        stmt = stmt.where(Student.stream == payload.stream)
    stmt = stmt.order_by(Student.class_name, Student.full_name, Student.id, FeeAllocation.due_date)

    async with read_snapshot(db):
        rows = (await db.execute(stmt)).all()
        by_student = OrderedDict()
        for allocation, student, fee_type_name in rows:
            entry = by_student.setdefault(student.id, (student, []))
            entry[1].append(
                ReminderItem(
                    fee_allocation_id=allocation.id,
                    fee_type_name=fee_type_name,
                    balance=to_money(allocation.amount) - to_money(allocation.paid_amount),
                    due_date=allocation.due_date,
                    days_overdue=max(0, (as_of - allocation.due_date).days),
                )
            )
        students = [
            (s.id, s.full_name, s.admission_number, s.class_name, s.stream, items)
            for s, items in by_student.values()
        ]

    reminders = []
    for student_id, full_name, admission_number, class_name, stream, items in students:
        total = sum((i.balance for i in items), to_money(0))
        reminders.append(
            Reminder(
                student_id=student_id,
                student_name=full_name,
                admission_number=admission_number,
                class_name=class_name,
                stream=stream,
                message_type=payload.message_type,
                message=(payload.custom_message or "").strip()
                or _default_message(full_name, payload.message_type, total, as_of),
                total_outstanding=total,
                items=items,
            )
        )
    return reminders


async def send_reminders(
    db: AsyncSession,
    payload: ReminderRequest,
    dispatcher: ReminderDispatcher,
    as_of: date,
) -> ReminderResult:
    """Build reminders from one snapshot, then hand each to the dispatcher outside any transaction."""
    reminders = await build_reminders(db, payload, as_of)
    sent: List[ReminderSent] = []
    failed: List[ReminderFailed] = []
    for reminder in reminders:
        try:
            await dispatcher.send(reminder)
        except Exception as e:
            logger.error("Failed to send reminder to student %s: %s", reminder.student_id, e, exc_info=True)
            failed.append(
                ReminderFailed(student_id=reminder.student_id, student_name=reminder.student_name, reason=str(e))
            )
            continue
        sent.append(
            ReminderSent(
                student_id=reminder.student_id,
                student_name=reminder.student_name,
                total_outstanding=reminder.total_outstanding,
            )
        )
    logger.info("Reminders (%s): %d sent, %d failed", payload.message_type.value, len(sent), len(failed))
    return ReminderResult(sent=sent, failed=failed)
