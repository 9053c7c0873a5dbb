from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import make_token
from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.core.models import Account, VoucherHead


async def test_create_account_with_opening_balance(ledger) -> None:
    account = await ledger.account(name="Stanbic Bank", account_type="bank", opening_balance="250000")
    assert account["balance"] == "250000.00"
    assert account["category"] == "asset"
    assert account["account_type"] == "bank"

    resp = await ledger.get("/api/v1/accounting/transactions", account_id=account["id"])
    assert resp.status_code == 200
    txns = resp.json()
    # Opening balance is a credit posted under the system voucher head
    assert len(txns) == 1
    assert txns[0]["type"] == "credit"
    assert txns[0]["amount"] == "250000.00"
    assert txns[0]["voucher_head_name"] == "Opening Balance"
    assert txns[0]["balance_after"] == "250000.00"


async def test_create_account_without_opening_balance_posts_nothing(ledger) -> None:
    account = await ledger.account(name="Petty Cash")
    assert account["balance"] == "0.00"

    resp = await ledger.get("/api/v1/accounting/transactions", account_id=account["id"])
    assert resp.json() == []


async def test_duplicate_account_name_conflicts(ledger) -> None:
    await ledger.account(name="Main Cash")
    resp = await ledger.post(
        "/api/v1/accounting/accounts",
        {"name": "Main Cash", "category": "asset", "account_type": "cash"},
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["kind"] == "conflict"


async def test_account_type_only_for_asset_accounts(ledger) -> None:
    resp = await ledger.post(
        "/api/v1/accounting/accounts",
        {"name": "Tuition Income", "category": "income", "account_type": "cash"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "validation_error"


async def test_negative_opening_balance_rejected(ledger) -> None:
    resp = await ledger.post(
        "/api/v1/accounting/accounts",
        {"name": "Main Cash", "category": "asset", "account_type": "cash", "opening_balance": "-5"},
    )
    assert resp.status_code == 400


async def test_get_account_not_found(ledger) -> None:
    resp = await ledger.get("/api/v1/accounting/accounts/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    body = resp.json()["detail"]
    assert body["kind"] == "not_found"
    assert body["entity"] == "account"


async def test_voucher_head_editable_until_referenced(ledger) -> None:
    account = await ledger.account(opening_balance="1000")
    head = await ledger.voucher_head(name="Stationary")

    resp = await ledger.client.patch(
        f"/api/v1/accounting/voucher-heads/{head['id']}",
        json={"name": "Stationery"},
        headers=ledger.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Stationery"

    resp = await ledger.transact(account["id"], head["id"], "debit", "100")
    assert resp.status_code == 201

    resp = await ledger.client.patch(
        f"/api/v1/accounting/voucher-heads/{head['id']}",
        json={"name": "Office supplies"},
        headers=ledger.headers,
    )
    assert resp.status_code == 409


async def test_system_voucher_head_is_immutable(ledger) -> None:
    await ledger.account(opening_balance="1000")
    heads = (await ledger.get("/api/v1/accounting/voucher-heads")).json()
    opening = next(h for h in heads if h["name"] == "Opening Balance")
    assert opening["is_system"] is True

    resp = await ledger.client.patch(
        f"/api/v1/accounting/voucher-heads/{opening['id']}",
        json={"description": "edited"},
        headers=ledger.headers,
    )
    assert resp.status_code == 409


async def test_system_head_names_are_reserved(ledger) -> None:
    for name in ("Fee Collection", "opening balance "):
        resp = await ledger.post("/api/v1/accounting/voucher-heads", {"name": name})
        assert resp.status_code == 409
        assert "reserved" in resp.json()["detail"]["message"]

    head = await ledger.voucher_head(name="Stationary")
    resp = await ledger.client.patch(
        f"/api/v1/accounting/voucher-heads/{head['id']}",
        json={"name": "Fee Collection"},
        headers=ledger.headers,
    )
    assert resp.status_code == 409

    # Deposits still post under the engine's own head
    account = await ledger.account()
    student, allocation = await ledger.billed_student(amount="1000")
    resp = await ledger.pay(student["id"], allocation["id"], "1000", deposit_account_id=account["id"])
    assert resp.status_code == 201, resp.text
    txns = (await ledger.get("/api/v1/accounting/transactions", account_id=account["id"])).json()
    assert [t["voucher_head_name"] for t in txns] == ["Fee Collection"]
    heads = (await ledger.get("/api/v1/accounting/voucher-heads")).json()
    assert [h["is_system"] for h in heads if h["name"] == "Fee Collection"] == [True]


async def test_system_head_insert_skips_existing_row(session_factory) -> None:
    # A second writer reaching first use inserts nothing and reads the same row
    async with session_factory() as first, session_factory() as second:
        head = await ledger_service.get_system_voucher_head(first, ledger_service.FEE_COLLECTION_HEAD)
        await first.commit()

        await ledger_service._insert_system_head(second, ledger_service.FEE_COLLECTION_HEAD)
        same = await ledger_service.get_system_voucher_head(second, ledger_service.FEE_COLLECTION_HEAD)
        await second.commit()
        assert same.id == head.id

    async with session_factory() as session:
        count = (
            await session.execute(
                select(func.count()).select_from(VoucherHead).where(VoucherHead.name == "Fee Collection")
            )
        ).scalar_one()
    assert count == 1


async def test_opening_balance_failure_is_not_a_name_clash(ledger, db_session) -> None:
    # Legacy row holding a system name without the system flag
    db_session.add(VoucherHead(name="Opening Balance", is_system=False))
    await db_session.commit()

    resp = await ledger.post(
        "/api/v1/accounting/accounts",
        {"name": "Stanbic Bank", "category": "asset", "account_type": "bank", "opening_balance": "5000"},
    )
    assert resp.status_code == 409
    assert "already exists" not in resp.json()["detail"]["message"]
    assert "reserved" in resp.json()["detail"]["message"]

    # Nothing from the failed attempt was kept
    names = (await db_session.execute(select(Account.name))).scalars().all()
    assert names == []



async def test_requests_without_token_are_rejected(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/accounting/accounts")
    assert resp.status_code == 401


async def test_role_without_permission_is_forbidden(client: AsyncClient) -> None:
    token = make_token(role="TEACHER", permissions={"accounting": {"read": True}})
    headers = {"Authorization": f"Bearer {token}"}

    resp = await client.get("/api/v1/accounting/accounts", headers=headers)
    assert resp.status_code == 200

    resp = await client.post(
        "/api/v1/accounting/accounts",
        json={"name": "Main Cash", "category": "asset", "account_type": "cash"},
        headers=headers,
    )
    assert resp.status_code == 403
