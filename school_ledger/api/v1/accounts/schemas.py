"""Accounting schemas: accounts and voucher heads."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from school_ledger.core.enums import AccountCategory, AccountType


# --- Account ---
class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    category: AccountCategory
    account_type: Optional[AccountType] = None
    description: Optional[str] = None
    provider: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=100)
    opening_balance: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)

    @model_validator(mode="after")
    def validate_cash_like_accounts(self) -> "AccountCreate":
        if self.account_type is not None and self.category != AccountCategory.asset:
            raise ValueError("account_type (cash, bank, mobile_money) only applies to asset accounts")
        return self


class AccountResponse(BaseModel):
    id: UUID
    name: str
    category: AccountCategory
    account_type: Optional[AccountType] = None
    description: Optional[str] = None
    provider: Optional[str] = None
    account_number: Optional[str] = None
    balance: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


# --- Voucher Head ---
class VoucherHeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class VoucherHeadUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class VoucherHeadResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    is_system: bool
    created_at: datetime

    class Config:
        from_attributes = True
