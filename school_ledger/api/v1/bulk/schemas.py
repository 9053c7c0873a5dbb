"""Bulk schemas: batch fee collection and fee reminders."""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.api.v1.ledger.schemas import PaymentPosted
from school_ledger.core.enums import PaymentMethod, ReminderMessageType


# --- Bulk collect ---
class BulkCollectEntry(BaseModel):
    student_id: UUID
    fee_allocation_id: UUID
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)


class BulkCollectRequest(BaseModel):
    entries: List[BulkCollectEntry] = Field(..., min_length=1, max_length=500)
    payment_method: PaymentMethod = PaymentMethod.cash
    payment_date: Optional[date] = None
    remarks: Optional[str] = None
    deposit_account_id: Optional[UUID] = None


class BulkCollectSuccess(BaseModel):
    index: int
    payment: PaymentPosted


class BulkCollectFailure(BaseModel):
    """One rejected entry; kind and details mirror the single-payment error body."""

    index: int
    student_id: UUID
    fee_allocation_id: UUID
    amount: Decimal
    kind: str
    message: str
    details: Dict[str, Any] = {}


class BulkCollectResult(BaseModel):
    succeeded: List[BulkCollectSuccess]
    failed: List[BulkCollectFailure]


# --- Reminders ---
class ReminderRequest(BaseModel):
    class_name: Optional[str] = Field(None, alias="class")
    stream: Optional[str] = None
    message_type: ReminderMessageType = ReminderMessageType.due_reminder
    custom_message: Optional[str] = Field(None, max_length=1000)
    as_of: Optional[date] = None

    class Config:
        populate_by_name = True


class ReminderItem(BaseModel):
    fee_allocation_id: UUID
    fee_type_name: str
    balance: Decimal
    due_date: date
    days_overdue: int


class Reminder(BaseModel):
    """Message for one student, built from a read snapshot before dispatch."""

    student_id: UUID
    student_name: str
    admission_number: str
    class_name: str
    stream: Optional[str] = None
    message_type: ReminderMessageType
    message: str
    total_outstanding: Decimal
    items: List[ReminderItem]


class ReminderSent(BaseModel):
    student_id: UUID
    student_name: str
    total_outstanding: Decimal


class ReminderFailed(BaseModel):
    student_id: UUID
    student_name: str
    reason: str


class ReminderResult(BaseModel):
    sent: List[ReminderSent]
    failed: List[ReminderFailed]
