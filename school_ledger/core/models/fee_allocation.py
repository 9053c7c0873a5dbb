"""Fee allocation: one student's obligation to pay a fee group by a due date."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from school_ledger.core.enums import FeeAllocationStatus
from school_ledger.db.session import Base


class FeeAllocation(Base):
    """
    Snapshot of a fee group assigned to a student. amount and due_date are frozen at allocation.
    paid_amount and status are derived from the payments and only written by the ledger engine.
    """

    __tablename__ = "fee_allocations"
    __table_args__ = (
        UniqueConstraint("student_id", "fee_type_id", name="uq_fee_allocation_student_fee_type"),
        CheckConstraint("amount > 0", name="chk_fee_allocation_amount"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= amount",
            name="chk_fee_allocation_paid_amount",
        ),
        CheckConstraint(
            "status IN ('unpaid','partial','paid')",
            name="chk_fee_allocation_status",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    fee_group_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_groups.id", ondelete="RESTRICT"),
        nullable=False,
    )
    # Denormalised from the group so the one-per-fee-type rule is a table constraint
    fee_type_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(14, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=FeeAllocationStatus.unpaid.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_group = relationship("FeeGroup")
