import os
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./school_ledger_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from school_ledger.core import models  # noqa: F401
from school_ledger.core.config import settings
from school_ledger.db.session import Base, get_db
from school_ledger.main import app


@pytest.fixture()
async def engine(tmp_path):
    """Fresh SQLite file per test so concurrent sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(user_id: str = "bursar-1", role: str = "ADMIN", permissions: Dict = None) -> str:
    claims = {"user_id": user_id, "role": role, "permissions": permissions or {}}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture()
def ledger(client: AsyncClient, auth_headers: Dict[str, str]) -> "LedgerApi":
    return LedgerApi(client, auth_headers)


class LedgerApi:
    """Small helpers for setting up students, fees and accounts through the HTTP API."""

    def __init__(self, client: AsyncClient, headers: Dict[str, str]) -> None:
        self.client = client
        self.headers = headers
        self._admission = 0
        self._fee_types = 0

    async def post(self, path: str, body: dict):
        return await self.client.post(path, json=body, headers=self.headers)

    async def get(self, path: str, **params):
        return await self.client.get(path, params=params, headers=self.headers)

    async def student(self, full_name: str = "Amina Nakato", class_name: str = "P5", stream: str = None) -> dict:
        self._admission += 1
        resp = await self.post(
            "/api/v1/students",
            {
                "full_name": full_name,
                "admission_number": f"ADM-{self._admission:04d}",
                "class_name": class_name,
                "stream": stream,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def fee_type(self, name: str = None) -> dict:
        self._fee_types += 1
        resp = await self.post("/api/v1/fees/types", {"name": name or f"Tuition {self._fee_types}"})
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def fee_group(self, fee_type_id: str, amount: str = "500000.00", due_date: str = "2026-02-15",
                        class_name: str = "P5") -> dict:
        resp = await self.post(
            "/api/v1/fees/groups",
            {
                "name": f"{class_name} fees",
                "class": class_name,
                "fee_type_id": fee_type_id,
                "amount": amount,
                "due_date": due_date,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def allocate(self, student_id: str, fee_group_id: str, **overrides) -> dict:
        resp = await self.post(
            "/api/v1/fees/allocations",
            {"student_id": student_id, "fee_group_id": fee_group_id, **overrides},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def billed_student(self, amount: str = "500000.00", due_date: str = "2026-02-15",
                             class_name: str = "P5", fee_type: dict = None, full_name: str = "Amina Nakato"):
        """Student with one allocation of `amount`; returns (student, allocation)."""
        fee_type = fee_type or await self.fee_type()
        group = await self.fee_group(fee_type["id"], amount=amount, due_date=due_date, class_name=class_name)
        student = await self.student(full_name=full_name, class_name=class_name)
        allocation = await self.allocate(student["id"], group["id"])
        return student, allocation

    async def pay(self, student_id: str, allocation_id: str, amount: str, **extra):
        return await self.post(
            "/api/v1/fees/payments",
            {
                "student_id": student_id,
                "fee_allocation_id": allocation_id,
                "amount": amount,
                "payment_date": "2026-03-01",
                **extra,
            },
        )

    async def account(self, name: str = "Main Cash", category: str = "asset", account_type: str = "cash",
                      opening_balance: str = "0") -> dict:
        body = {"name": name, "category": category, "opening_balance": opening_balance}
        if account_type:
            body["account_type"] = account_type
        resp = await self.post("/api/v1/accounting/accounts", body)
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def voucher_head(self, name: str = "Stationery") -> dict:
        resp = await self.post("/api/v1/accounting/voucher-heads", {"name": name})
        assert resp.status_code == 201, resp.text
        return resp.json()

    async def transact(self, account_id: str, voucher_head_id: str, txn_type: str, amount: str):
        return await self.post(
            "/api/v1/accounting/transactions",
            {
                "account_id": account_id,
                "voucher_head_id": voucher_head_id,
                "type": txn_type,
                "amount": amount,
                "transaction_date": "2026-03-01",
            },
        )
