import asyncio
from decimal import Decimal
from uuid import UUID

import pytest
from sqlalchemy import func, select

from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.api.v1.ledger.schemas import PaymentCreate
from school_ledger.core.exceptions import OverpaymentRejected
from school_ledger.core.models import FeeAllocation, LedgerAuditLog, Payment


async def test_partial_then_full_payment(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="500000")

    resp = await ledger.pay(student["id"], allocation["id"], "300000")
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["amount"] == "300000.00"
    assert body["allocation_status"] == "partial"
    assert body["allocation_paid_amount"] == "300000.00"
    assert body["remaining_balance"] == "200000.00"
    assert body["collected_by"] == "bursar-1"

    resp = await ledger.pay(student["id"], allocation["id"], "200000")
    assert resp.status_code == 201
    assert resp.json()["allocation_status"] == "paid"
    assert resp.json()["remaining_balance"] == "0.00"

    fetched = (await ledger.get(f"/api/v1/fees/allocations/{allocation['id']}")).json()
    assert fetched["status"] == "paid"
    assert fetched["paid_amount"] == "500000.00"
    assert fetched["balance"] == "0.00"


async def test_overpayment_rejected_with_remaining_balance(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="500000")
    assert (await ledger.pay(student["id"], allocation["id"], "300000")).status_code == 201

    resp = await ledger.pay(student["id"], allocation["id"], "300000")
    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["kind"] == "overpayment_rejected"
    assert detail["remaining_balance"] == "200000.00"

    fetched = (await ledger.get(f"/api/v1/fees/allocations/{allocation['id']}")).json()
    assert fetched["paid_amount"] == "300000.00"
    assert fetched["status"] == "partial"


async def test_payment_on_settled_allocation_rejected(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="1000")
    assert (await ledger.pay(student["id"], allocation["id"], "1000")).status_code == 201

    resp = await ledger.pay(student["id"], allocation["id"], "0.01")
    assert resp.status_code == 409
    assert resp.json()["detail"]["remaining_balance"] == "0.00"


@pytest.mark.parametrize("amount", ["0", "-50"])
async def test_non_positive_payment_rejected(ledger, amount) -> None:
    student, allocation = await ledger.billed_student()
    resp = await ledger.pay(student["id"], allocation["id"], amount)
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "invalid_amount"


async def test_payment_for_wrong_student_rejected(ledger) -> None:
    _, allocation = await ledger.billed_student()
    other = await ledger.student(full_name="Brian Okello")

    resp = await ledger.pay(other["id"], allocation["id"], "1000")
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "validation_error"
    assert resp.json()["detail"]["field"] == "student_id"


async def test_payment_unknown_allocation(ledger) -> None:
    student = await ledger.student()
    resp = await ledger.pay(student["id"], "00000000-0000-0000-0000-000000000000", "1000")
    assert resp.status_code == 404
    assert resp.json()["detail"]["entity"] == "fee_allocation"


async def test_payment_with_deposit_credits_account(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="500000")
    account = await ledger.account(name="MTN MoMo", account_type="mobile_money")

    resp = await ledger.pay(
        student["id"], allocation["id"], "120000",
        payment_method="mobile_money", deposit_account_id=account["id"],
    )
    assert resp.status_code == 201
    assert resp.json()["deposit_transaction_id"] is not None

    fetched = (await ledger.get(f"/api/v1/accounting/accounts/{account['id']}")).json()
    assert fetched["balance"] == "120000.00"

    txns = (await ledger.get("/api/v1/accounting/transactions", account_id=account["id"])).json()
    assert [t["voucher_head_name"] for t in txns] == ["Fee Collection"]


async def test_deposit_into_non_asset_account_rolls_back(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="500000")
    income = await ledger.account(name="Fee Income", category="income", account_type=None)

    resp = await ledger.pay(student["id"], allocation["id"], "1000", deposit_account_id=income["id"])
    assert resp.status_code == 400

    fetched = (await ledger.get(f"/api/v1/fees/allocations/{allocation['id']}")).json()
    assert fetched["paid_amount"] == "0.00"
    assert fetched["status"] == "unpaid"
    history = (await ledger.get("/api/v1/fees/payments", student_id=student["id"])).json()
    assert history == []


async def test_payment_writes_audit_rows(ledger, db_session) -> None:
    student, allocation = await ledger.billed_student(amount="500000")
    payment = (await ledger.pay(student["id"], allocation["id"], "1000")).json()

    rows = (
        await db_session.execute(select(LedgerAuditLog).order_by(LedgerAuditLog.reference_table))
    ).scalars().all()
    tables = {(r.reference_table, r.action_type) for r in rows}
    assert ("payments", "CREATE") in tables
    assert ("fee_allocations", "UPDATE") in tables
    payment_log = next(r for r in rows if r.reference_table == "payments")
    assert str(payment_log.reference_id) == payment["id"]
    assert payment_log.changed_by == "bursar-1"


async def test_concurrent_payments_on_one_allocation_never_overpay(ledger, db_session) -> None:
    student, allocation = await ledger.billed_student(amount="500000")

    first, second = await asyncio.gather(
        ledger.pay(student["id"], allocation["id"], "300000"),
        ledger.pay(student["id"], allocation["id"], "300000"),
    )
    codes = sorted([first.status_code, second.status_code])
    assert codes == [201, 409]

    total = (
        await db_session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.fee_allocation_id == UUID(allocation["id"]))
        )
    ).scalar()
    assert Decimal(total) == Decimal("300000")


async def test_concurrent_payments_in_separate_sessions(ledger, session_factory) -> None:
    student, allocation = await ledger.billed_student(amount="500000")

    async def pay():
        async with session_factory() as session:
            return await ledger_service.post_payment(
                session,
                PaymentCreate(student_id=student["id"], fee_allocation_id=allocation["id"], amount=Decimal("300000")),
            )

    results = await asyncio.gather(pay(), pay(), return_exceptions=True)
    posted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, OverpaymentRejected)]
    assert len(posted) == 1
    assert len(rejected) == 1
    assert rejected[0].remaining_balance == Decimal("200000.00")

    async with session_factory() as session:
        stored = await session.get(FeeAllocation, posted[0].fee_allocation_id)
        assert stored.paid_amount == Decimal("300000.00")
        assert stored.status == "partial"


async def test_payment_history_newest_first(ledger) -> None:
    student, allocation = await ledger.billed_student(amount="500000")
    await ledger.pay(student["id"], allocation["id"], "1000", payment_date="2026-01-10")
    await ledger.pay(student["id"], allocation["id"], "2000", payment_date="2026-03-10")

    resp = await ledger.get("/api/v1/fees/payments", student_id=student["id"])
    assert [p["amount"] for p in resp.json()] == ["2000.00", "1000.00"]

    resp = await ledger.get("/api/v1/fees/payments", date_from="2026-02-01")
    assert [p["amount"] for p in resp.json()] == ["2000.00"]
