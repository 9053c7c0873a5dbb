"""Ledger transaction: append-only debit/credit posted against an account."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class LedgerTransaction(Base):
    """Debit or credit against an account. Never edited; corrections are offsetting entries."""

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('debit','credit')", name="chk_ledger_transaction_type"),
        CheckConstraint("amount > 0", name="chk_ledger_transaction_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    voucher_head_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("voucher_heads.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    account_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    type = Column(String(10), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    reference = Column(String(100), nullable=True)
    # Account balance right after this entry was applied
    balance_after = Column(Numeric(14, 2), nullable=False)
    posted_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    account = relationship("Account")
    voucher_head = relationship("VoucherHead")
