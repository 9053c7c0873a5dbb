from enum import Enum


class AccountCategory(str, Enum):
    asset = "asset"
    liability = "liability"
    equity = "equity"
    income = "income"
    expense = "expense"


class AccountType(str, Enum):
    cash = "cash"
    bank = "bank"
    mobile_money = "mobile_money"


class TransactionType(str, Enum):
    debit = "debit"
    credit = "credit"


class FeeAllocationStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"


class PaymentMethod(str, Enum):
    cash = "cash"
    bank_transfer = "bank_transfer"
    cheque = "cheque"
    online = "online"
    mobile_money = "mobile_money"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class DueReportStatus(str, Enum):
    due = "due"
    overdue = "overdue"
    paid = "paid"


class ReminderMessageType(str, Enum):
    due_reminder = "due_reminder"
    overdue_notice = "overdue_notice"
