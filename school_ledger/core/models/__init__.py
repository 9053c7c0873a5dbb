from school_ledger.core.models.student import Student
from school_ledger.core.models.account import Account
from school_ledger.core.models.voucher_head import VoucherHead
from school_ledger.core.models.ledger_transaction import LedgerTransaction
from school_ledger.core.models.fee_type import FeeType
from school_ledger.core.models.fee_group import FeeGroup
from school_ledger.core.models.fee_allocation import FeeAllocation
from school_ledger.core.models.payment import Payment
from school_ledger.core.models.ledger_audit_log import LedgerAuditLog

__all__ = [
    "Account",
    "FeeAllocation",
    "FeeGroup",
    "FeeType",
    "LedgerAuditLog",
    "LedgerTransaction",
    "Payment",
    "Student",
    "VoucherHead",
]
