"""Fees service: fee types, fee groups and fee allocations (the obligation store).

paid_amount and status of an allocation are read here but only ever written by the ledger.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.enums import FeeAllocationStatus
from school_ledger.core.exceptions import Conflict, InvalidAmount, NotFound
from school_ledger.core.models import FeeAllocation, FeeGroup, FeeType, Student
from school_ledger.core.money import to_money

from .schemas import (
    FeeAllocationCreate,
    FeeAllocationResponse,
    FeeGroupCreate,
    FeeGroupResponse,
    FeeTypeCreate,
    FeeTypeResponse,
)

logger = logging.getLogger(__name__)


# --- Fee Type ---
async def create_fee_type(db: AsyncSession, payload: FeeTypeCreate) -> FeeTypeResponse:
    fee_type = FeeType(
        name=payload.name.strip(),
        description=(payload.description or "").strip() or None,
        starts_on=payload.starts_on,
        ends_on=payload.ends_on,
    )
    db.add(fee_type)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"A fee type named {payload.name.strip()!r} already exists")
    await db.refresh(fee_type)
    return FeeTypeResponse.model_validate(fee_type)


async def list_fee_types(db: AsyncSession) -> List[FeeTypeResponse]:
    result = await db.execute(select(FeeType).order_by(FeeType.name))
    return [FeeTypeResponse.model_validate(t) for t in result.scalars().all()]


# --- Fee Group ---
def _group_to_response(group: FeeGroup, fee_type_name: Optional[str]) -> FeeGroupResponse:
    return FeeGroupResponse(
        id=group.id,
        name=group.name,
        class_name=group.class_name,
        fee_type_id=group.fee_type_id,
        fee_type_name=fee_type_name,
        amount=to_money(group.amount),
        due_date=group.due_date,
        created_at=group.created_at,
    )


async def create_fee_group(db: AsyncSession, payload: FeeGroupCreate) -> FeeGroupResponse:
    amount = to_money(payload.amount)
    if amount <= 0:
        raise InvalidAmount(amount, "Fee group amount must be greater than zero")
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type:
        raise NotFound("fee_type", payload.fee_type_id)
    group = FeeGroup(
        name=payload.name.strip(),
        class_name=payload.class_name.strip(),
        fee_type_id=fee_type.id,
        amount=amount,
        due_date=payload.due_date,
    )
    db.add(group)
    await db.commit()
    await db.refresh(group)
    return _group_to_response(group, fee_type.name)


async def list_fee_groups(
    db: AsyncSession,
    class_name: Optional[str] = None,
) -> List[FeeGroupResponse]:
    stmt = select(FeeGroup, FeeType.name.label("fee_type_name")).join(FeeType, FeeGroup.fee_type_id == FeeType.id)
    if class_name:
        stmt = stmt.where(FeeGroup.class_name == class_name)
    stmt = stmt.order_by(FeeGroup.class_name, FeeGroup.due_date, FeeGroup.name)
    result = await db.execute(stmt)
    return [_group_to_response(g, ft_name) for g, ft_name in result.all()]


# --- Fee Allocation ---
def _allocation_stmt():
    return (
        select(
            FeeAllocation,
            Student.full_name.label("student_name"),
            Student.class_name.label("class_name"),
            FeeGroup.name.label("fee_group_name"),
            FeeType.name.label("fee_type_name"),
        )
        .join(Student, FeeAllocation.student_id == Student.id)
        .join(FeeGroup, FeeAllocation.fee_group_id == FeeGroup.id)
        .join(FeeType, FeeAllocation.fee_type_id == FeeType.id)
        .execution_options(populate_existing=True)
    )


def _allocation_to_response(
    allocation: FeeAllocation,
    student_name: Optional[str],
    class_name: Optional[str],
    fee_group_name: Optional[str],
    fee_type_name: Optional[str],
) -> FeeAllocationResponse:
    amount = to_money(allocation.amount)
    paid = to_money(allocation.paid_amount)
    return FeeAllocationResponse(
        id=allocation.id,
        student_id=allocation.student_id,
        student_name=student_name,
        class_name=class_name,
        fee_group_id=allocation.fee_group_id,
        fee_group_name=fee_group_name,
        fee_type_id=allocation.fee_type_id,
        fee_type_name=fee_type_name,
        amount=amount,
        paid_amount=paid,
        balance=amount - paid,
        due_date=allocation.due_date,
        status=allocation.status,
        created_at=allocation.created_at,
        updated_at=allocation.updated_at,
    )


async def create_allocation(db: AsyncSession, payload: FeeAllocationCreate) -> FeeAllocationResponse:
    """Allocate a fee group to a student: status unpaid, nothing paid, amount/due date frozen."""
    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFound("student", payload.student_id)
    group = await db.get(FeeGroup, payload.fee_group_id)
    if not group:
        raise NotFound("fee_group", payload.fee_group_id)

    amount = to_money(payload.amount if payload.amount is not None else group.amount)
    if amount <= 0:
        raise InvalidAmount(amount, "Allocation amount must be greater than zero")

    existing = (
        await db.execute(
            select(FeeAllocation.id).where(
                FeeAllocation.student_id == student.id,
                FeeAllocation.fee_type_id == group.fee_type_id,
            )
        )
    ).scalar_one_or_none()
    if existing:
        raise Conflict("This student is already allocated to this fee type")

    allocation = FeeAllocation(
        student_id=student.id,
        fee_group_id=group.id,
        fee_type_id=group.fee_type_id,
        amount=amount,
        due_date=payload.due_date or group.due_date,
        paid_amount=to_money(0),
        status=FeeAllocationStatus.unpaid.value,
    )
    db.add(allocation)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("This student is already allocated to this fee type")
    logger.info("Allocated fee group %s to student %s for %s", group.id, student.id, amount)
    return await get_allocation(db, allocation.id)


async def get_allocation(db: AsyncSession, allocation_id: UUID) -> FeeAllocationResponse:
    row = (await db.execute(_allocation_stmt().where(FeeAllocation.id == allocation_id))).one_or_none()
    if row is None:
        raise NotFound("fee_allocation", allocation_id)
    return _allocation_to_response(*row)


async def list_allocations(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    class_name: Optional[str] = None,
    status_filter: Optional[str] = None,
    fee_type_id: Optional[UUID] = None,
) -> List[FeeAllocationResponse]:
    stmt = _allocation_stmt()
    if student_id is not None:
        stmt = stmt.where(FeeAllocation.student_id == student_id)
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    if status_filter:
        stmt = stmt.where(FeeAllocation.status == status_filter)
    if fee_type_id is not None:
        stmt = stmt.where(FeeAllocation.fee_type_id == fee_type_id)
    stmt = stmt.order_by(Student.class_name, Student.full_name, FeeAllocation.due_date)
    result = await db.execute(stmt)
    return [_allocation_to_response(*row) for row in result.all()]
