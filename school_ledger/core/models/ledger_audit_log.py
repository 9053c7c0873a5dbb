"""Ledger audit log: immutable before/after record of every derived-value change."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from school_ledger.db.session import Base


class LedgerAuditLog(Base):
    """Immutable audit trail for ledger mutations (payments, transactions, allocation status, balances)."""

    __tablename__ = "ledger_audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference_table = Column(String(50), nullable=False)
    reference_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    action_type = Column(String(30), nullable=False)  # CREATE, UPDATE
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    changed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
