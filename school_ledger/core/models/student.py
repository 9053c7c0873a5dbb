"""Student register: the minimal student record the ledger resolves references and classes against."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, String, Uuid

from school_ledger.core.enums import StudentStatus
from school_ledger.db.session import Base


class Student(Base):
    """Student known to the ledger. The school records system remains the source of truth."""

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE','INACTIVE')", name="chk_student_status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255), nullable=False)
    admission_number = Column(String(50), nullable=False, unique=True)
    class_name = Column(String(100), nullable=False, index=True)
    stream = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=StudentStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
