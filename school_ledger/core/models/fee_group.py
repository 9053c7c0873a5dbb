"""Fee group: fee definition per class (e.g. "S1 Tuition") that allocations are made from."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class FeeGroup(Base):
    """Amount and due date of a fee type for one class."""

    __tablename__ = "fee_groups"
    __table_args__ = (CheckConstraint("amount > 0", name="chk_fee_group_amount"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(150), nullable=False)
    class_name = Column(String(100), nullable=False, index=True)
    fee_type_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(14, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    fee_type = relationship("FeeType")
