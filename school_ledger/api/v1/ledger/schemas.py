"""Ledger schemas: fee payments and account transactions."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import FeeAllocationStatus, PaymentMethod, TransactionType


# --- Payment ---
class PaymentCreate(BaseModel):
    student_id: UUID
    fee_allocation_id: UUID
    # Positivity is enforced by the ledger so bulk runs can report it per entry
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.cash
    payment_date: Optional[date] = None
    remarks: Optional[str] = None
    reference: Optional[str] = Field(None, max_length=100)
    deposit_account_id: Optional[UUID] = Field(
        None, description="Asset account the money was deposited into; credited in the same posting"
    )


class PaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    fee_allocation_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    remarks: Optional[str] = None
    reference: Optional[str] = None
    deposit_transaction_id: Optional[UUID] = None
    collected_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentPosted(PaymentResponse):
    """Posted payment plus the allocation state it produced."""

    allocation_status: FeeAllocationStatus
    allocation_paid_amount: Decimal
    remaining_balance: Decimal


# --- Transaction ---
class TransactionCreate(BaseModel):
    voucher_head_id: UUID
    account_id: UUID
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)
    type: TransactionType
    transaction_date: Optional[date] = None
    description: Optional[str] = None
    reference: Optional[str] = Field(None, max_length=100)


class TransactionResponse(BaseModel):
    id: UUID
    voucher_head_id: UUID
    voucher_head_name: Optional[str] = None
    account_id: UUID
    account_name: Optional[str] = None
    type: TransactionType
    amount: Decimal
    transaction_date: date
    description: Optional[str] = None
    reference: Optional[str] = None
    balance_after: Decimal
    posted_by: Optional[str] = None
    created_at: datetime
