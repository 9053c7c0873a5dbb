"""Fees schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from school_ledger.core.enums import FeeAllocationStatus


# --- Fee Type ---
class FeeTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    starts_on: Optional[date] = Field(None, alias="from")
    ends_on: Optional[date] = Field(None, alias="to")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def validate_period(self) -> "FeeTypeCreate":
        if self.starts_on and self.ends_on and self.starts_on > self.ends_on:
            raise ValueError("Fee type period must start on or before it ends")
        return self


class FeeTypeResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Fee Group ---
class FeeGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    class_name: str = Field(..., min_length=1, max_length=100, alias="class")
    fee_type_id: UUID
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)
    due_date: date

    model_config = {"populate_by_name": True}


class FeeGroupResponse(BaseModel):
    id: UUID
    name: str
    class_name: str
    fee_type_id: UUID
    fee_type_name: Optional[str] = None
    amount: Decimal
    due_date: date
    created_at: datetime


# --- Fee Allocation ---
class FeeAllocationCreate(BaseModel):
    student_id: UUID
    fee_group_id: UUID
    # Default to the fee group's amount / due date
    amount: Optional[Decimal] = Field(None, max_digits=14, decimal_places=2)
    due_date: Optional[date] = None


class FeeAllocationResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    fee_group_id: UUID
    fee_group_name: Optional[str] = None
    fee_type_id: UUID
    fee_type_name: Optional[str] = None
    amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    due_date: date
    status: FeeAllocationStatus
    created_at: datetime
    updated_at: datetime
