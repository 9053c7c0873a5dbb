"""Student register service."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.exceptions import Conflict, NotFound
from school_ledger.core.models import Student

from .schemas import StudentCreate, StudentResponse


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    student = Student(
        full_name=payload.full_name.strip(),
        admission_number=payload.admission_number.strip().upper(),
        class_name=payload.class_name.strip(),
        stream=(payload.stream or "").strip() or None,
        status=payload.status.value,
    )
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"Admission number {student.admission_number} is already registered")
    await db.refresh(student)
    return StudentResponse.model_validate(student)


async def get_student(db: AsyncSession, student_id: UUID) -> StudentResponse:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFound("student", student_id)
    return StudentResponse.model_validate(student)


async def list_students(
    db: AsyncSession,
    class_name: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> List[StudentResponse]:
    stmt = select(Student)
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    if status_filter:
        stmt = stmt.where(Student.status == status_filter)
    stmt = stmt.order_by(Student.class_name, Student.full_name)
    result = await db.execute(stmt)
    return [StudentResponse.model_validate(s) for s in result.scalars().all()]
