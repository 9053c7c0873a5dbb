"""Fees router: fee types, fee groups, fee allocations."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.rbac import check_permission
from school_ledger.core.enums import FeeAllocationStatus
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import (
    FeeAllocationCreate,
    FeeAllocationResponse,
    FeeGroupCreate,
    FeeGroupResponse,
    FeeTypeCreate,
    FeeTypeResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Fee Types ---
@router.post(
    "/types",
    response_model=FeeTypeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee_type(
    payload: FeeTypeCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeTypeResponse:
    try:
        return await service.create_fee_type(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/types",
    response_model=List[FeeTypeResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_types(db: AsyncSession = Depends(get_db)) -> List[FeeTypeResponse]:
    return await service.list_fee_types(db)


# --- Fee Groups ---
@router.post(
    "/groups",
    response_model=FeeGroupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee_group(
    payload: FeeGroupCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeGroupResponse:
    try:
        return await service.create_fee_group(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/groups",
    response_model=List[FeeGroupResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_groups(
    class_name: Optional[str] = Query(None, alias="class"),
    db: AsyncSession = Depends(get_db),
) -> List[FeeGroupResponse]:
    return await service.list_fee_groups(db, class_name=class_name)


# --- Fee Allocations ---
@router.post(
    "/allocations",
    response_model=FeeAllocationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_allocation(
    payload: FeeAllocationCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeAllocationResponse:
    try:
        return await service.create_allocation(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/allocations",
    response_model=List[FeeAllocationResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_allocations(
    student_id: Optional[UUID] = Query(None),
    class_name: Optional[str] = Query(None, alias="class"),
    allocation_status: Optional[FeeAllocationStatus] = Query(None, alias="status"),
    fee_type_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[FeeAllocationResponse]:
    return await service.list_allocations(
        db,
        student_id=student_id,
        class_name=class_name,
        status_filter=allocation_status.value if allocation_status else None,
        fee_type_id=fee_type_id,
    )


@router.get(
    "/allocations/{allocation_id}",
    response_model=FeeAllocationResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> FeeAllocationResponse:
    try:
        return await service.get_allocation(db, allocation_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
