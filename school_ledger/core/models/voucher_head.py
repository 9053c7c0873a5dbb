"""Voucher head: categorical label for accounting transactions (Transport, Utilities)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid

from school_ledger.db.session import Base


class VoucherHead(Base):
    """Transaction category. Frozen once any transaction references it."""

    __tablename__ = "voucher_heads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    # Heads the engine posts under on its own (opening balances, fee deposits)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
