"""Fee type master (Tuition, Transport, Uniform)."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, String, Text, Uuid

from school_ledger.db.session import Base


class FeeType(Base):
    """Kind of fee. A student holds at most one allocation per fee type."""

    __tablename__ = "fee_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    starts_on = Column(Date, nullable=True)
    ends_on = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
