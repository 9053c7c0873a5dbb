"""Student register schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import StudentStatus


class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    admission_number: str = Field(..., min_length=1, max_length=50)
    class_name: str = Field(..., min_length=1, max_length=100)
    stream: Optional[str] = Field(None, max_length=100)
    status: StudentStatus = StudentStatus.ACTIVE


class StudentResponse(BaseModel):
    id: UUID
    full_name: str
    admission_number: str
    class_name: str
    stream: Optional[str] = None
    status: StudentStatus
    created_at: datetime

    class Config:
        from_attributes = True
