"""Financial account (cash box, bank account, mobile money wallet). Balance is ledger-derived."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String, Text, Uuid

from school_ledger.db.session import Base


class Account(Base):
    """
    Named financial account.
    balance is only ever changed by the ledger engine when a transaction is posted.
    Accounts are never deleted.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "category IN ('asset','liability','equity','income','expense')",
            name="chk_account_category",
        ),
        CheckConstraint(
            "account_type IS NULL OR account_type IN ('cash','bank','mobile_money')",
            name="chk_account_type",
        ),
        CheckConstraint("category <> 'asset' OR balance >= 0", name="chk_account_asset_balance"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(150), nullable=False, unique=True)
    category = Column(String(20), nullable=False)
    account_type = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    provider = Column(String(100), nullable=True)
    account_number = Column(String(100), nullable=True)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
