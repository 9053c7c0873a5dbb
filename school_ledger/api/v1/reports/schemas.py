"""Report schemas: dashboard, due report, class-wise report, payment history."""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from school_ledger.api.v1.accounts.schemas import AccountResponse
from school_ledger.core.enums import DueReportStatus, FeeAllocationStatus, PaymentMethod


class RecentPayment(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    class_name: str
    fee_type_name: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: date


class DashboardSummary(BaseModel):
    as_of: date
    total_students: int
    total_collected: Decimal
    total_due: Decimal
    overdue_count: int
    overdue_amount: Decimal
    collection_rate: Decimal
    recent_payments: List[RecentPayment]
    # Index 0 is January of as_of's year
    monthly_collection: List[Decimal]
    total_expenses: Decimal
    cash_at_hand: Decimal
    cash_in_bank: Decimal
    cash_on_mobile_money: Decimal
    accounts: List[AccountResponse]


class ClassCollection(BaseModel):
    class_name: str
    student_count: int
    total_due: Decimal
    total_paid: Decimal
    outstanding: Decimal
    collection_rate: Decimal


class DueReportItem(BaseModel):
    allocation_id: UUID
    student_id: UUID
    student_name: str
    admission_number: str
    class_name: str
    fee_type_id: UUID
    fee_type_name: str
    fee_group_name: str
    amount: Decimal
    paid: Decimal
    balance: Decimal
    due_date: date
    days_overdue: int
    allocation_status: FeeAllocationStatus
    status: DueReportStatus


class DueReport(BaseModel):
    as_of: date
    items: List[DueReportItem]
    total_amount: Decimal
    total_paid: Decimal
    total_balance: Decimal


class PaymentHistoryItem(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    admission_number: str
    class_name: str
    fee_allocation_id: UUID
    fee_type_name: str
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    remarks: Optional[str] = None
    reference: Optional[str] = None


class PaymentHistoryReport(BaseModel):
    items: List[PaymentHistoryItem]
    count: int
    total_amount: Decimal
