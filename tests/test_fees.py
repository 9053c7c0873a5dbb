async def test_allocation_starts_unpaid_with_group_terms(ledger) -> None:
    fee_type = await ledger.fee_type()
    group = await ledger.fee_group(fee_type["id"], amount="500000", due_date="2026-02-15")
    student = await ledger.student()

    allocation = await ledger.allocate(student["id"], group["id"])
    assert allocation["status"] == "unpaid"
    assert allocation["amount"] == "500000.00"
    assert allocation["paid_amount"] == "0.00"
    assert allocation["balance"] == "500000.00"
    assert allocation["due_date"] == "2026-02-15"
    assert allocation["fee_type_id"] == fee_type["id"]
    assert allocation["student_name"] == student["full_name"]


async def test_allocation_amount_and_due_date_override(ledger) -> None:
    fee_type = await ledger.fee_type()
    group = await ledger.fee_group(fee_type["id"], amount="500000")
    student = await ledger.student()

    allocation = await ledger.allocate(student["id"], group["id"], amount="450000.50", due_date="2026-03-31")
    assert allocation["amount"] == "450000.50"
    assert allocation["due_date"] == "2026-03-31"


async def test_allocation_rejects_non_positive_amount(ledger) -> None:
    fee_type = await ledger.fee_type()
    group = await ledger.fee_group(fee_type["id"])
    student = await ledger.student()

    resp = await ledger.post(
        "/api/v1/fees/allocations",
        {"student_id": student["id"], "fee_group_id": group["id"], "amount": "0"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "invalid_amount"


async def test_fee_group_rejects_non_positive_amount(ledger) -> None:
    fee_type = await ledger.fee_type()
    resp = await ledger.post(
        "/api/v1/fees/groups",
        {"name": "P5 fees", "class": "P5", "fee_type_id": fee_type["id"], "amount": "-1", "due_date": "2026-02-15"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "invalid_amount"


async def test_student_allocated_once_per_fee_type(ledger) -> None:
    fee_type = await ledger.fee_type()
    group = await ledger.fee_group(fee_type["id"])
    other_group = await ledger.fee_group(fee_type["id"], amount="300000")
    student = await ledger.student()
    await ledger.allocate(student["id"], group["id"])

    resp = await ledger.post(
        "/api/v1/fees/allocations",
        {"student_id": student["id"], "fee_group_id": other_group["id"]},
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["kind"] == "conflict"


async def test_allocation_unknown_student(ledger) -> None:
    fee_type = await ledger.fee_type()
    group = await ledger.fee_group(fee_type["id"])

    resp = await ledger.post(
        "/api/v1/fees/allocations",
        {"student_id": "00000000-0000-0000-0000-000000000000", "fee_group_id": group["id"]},
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["entity"] == "student"


async def test_fee_type_period_must_be_ordered(ledger) -> None:
    resp = await ledger.post("/api/v1/fees/types", {"name": "Term 2", "from": "2026-06-01", "to": "2026-05-01"})
    assert resp.status_code == 400


async def test_list_allocations_filters(ledger) -> None:
    fee_type = await ledger.fee_type()
    _, p5_allocation = await ledger.billed_student(fee_type=fee_type, class_name="P5", full_name="Amina Nakato")
    await ledger.billed_student(fee_type=fee_type, class_name="P6", full_name="Brian Okello")

    resp = await ledger.get("/api/v1/fees/allocations", **{"class": "P5"})
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [p5_allocation["id"]]

    resp = await ledger.get("/api/v1/fees/allocations", status="unpaid")
    assert len(resp.json()) == 2

    resp = await ledger.get("/api/v1/fees/allocations", status="paid")
    assert resp.json() == []
