from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from school_ledger.core.config import settings

# pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
# when DB or network closed idle connections).
# pool_recycle: discard connections after this many seconds to avoid stale connections.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def is_postgres(db: AsyncSession) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def snapshot_isolation_level(db: AsyncSession) -> str:
    """Isolation level for report reads; PostgreSQL REPEATABLE READ keeps one snapshot across statements."""
    return "REPEATABLE READ" if is_postgres(db) else "SERIALIZABLE"


@asynccontextmanager
async def read_snapshot(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run several SELECTs in one read transaction, then end it.

    Only PostgreSQL gives a multi-statement snapshot here: the block runs
    under REPEATABLE READ, so every SELECT sees the same committed state.
    SQLite (the test database) has no such guarantee because pysqlite opens
    no transaction for plain SELECTs, so each statement reads the latest
    commit. The final rollback expires loaded ORM instances; read their
    attributes inside the block.
    """
    await db.connection(execution_options={"isolation_level": snapshot_isolation_level(db)})
    try:
        yield db
    finally:
        await db.rollback()
