"""Students router: the minimal register fee allocations point at."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.rbac import check_permission
from school_ledger.core.enums import StudentStatus
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import StudentCreate, StudentResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("students", "create"))],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "",
    response_model=List[StudentResponse],
    dependencies=[Depends(check_permission("students", "read"))],
)
async def list_students(
    class_name: Optional[str] = Query(None),
    student_status: Optional[StudentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> List[StudentResponse]:
    return await service.list_students(
        db,
        class_name=class_name,
        status_filter=student_status.value if student_status else None,
    )


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(check_permission("students", "read"))],
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.get_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
