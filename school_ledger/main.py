import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from school_ledger.api.v1.accounts.router import router as accounting_router
from school_ledger.api.v1.bulk.router import router as bulk_router
from school_ledger.api.v1.fees.router import router as fees_router
from school_ledger.api.v1.ledger.router import router as ledger_router
from school_ledger.api.v1.reports.router import router as reports_router
from school_ledger.api.v1.students.router import router as students_router
from school_ledger.core import models  # noqa: F401  registers tables on Base.metadata
from school_ledger.core.config import settings
from school_ledger.db.session import Base, engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting school ledger API")
    if settings.auto_create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")
    yield
    await engine.dispose()
    logger.info("Shutting down school ledger API")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings use the same error shape as service errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "kind": "validation_error",
                "message": "Request validation failed",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="School Ledger", lifespan=lifespan)

    # CORS: allow the fee office frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Routers
    app.include_router(students_router)
    app.include_router(accounting_router)
    app.include_router(fees_router)
    app.include_router(bulk_router)
    app.include_router(ledger_router)
    app.include_router(reports_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
