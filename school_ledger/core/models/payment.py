"""Fee payment: records a (possibly partial) payment against a fee allocation."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class Payment(Base):
    """Payment against a fee allocation. Append-only."""

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="chk_payment_amount"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    fee_allocation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_allocations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)  # cash, bank_transfer, cheque, online, mobile_money
    payment_date = Column(Date, nullable=False, index=True)
    remarks = Column(Text, nullable=True)
    reference = Column(String(100), nullable=True)
    # Credit posted to the receiving account, when the payment was deposited
    deposit_transaction_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_transactions.id", ondelete="RESTRICT"),
        nullable=True,
    )
    collected_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    fee_allocation = relationship("FeeAllocation", backref="payments")
    deposit_transaction = relationship("LedgerTransaction")
