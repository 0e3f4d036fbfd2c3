"""
Boapay API Application Factory
"""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..errors import BankingError
from ..logging_config import correlation_context, get_logger, log_action, setup_logging
from ..seed import seed_demo_data
from .auth import BankingSystem
from .session import router as session_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .transfers import router as transfers_router, requests_router as transfer_requests_router
from .bills import router as bills_router, payments_router as bill_payments_router
from .international import router as international_router, external_router
from .currencies import router as currencies_router
from .crypto import router as crypto_router, catalog_router as cryptocurrencies_router
from .loans import router as loans_router
from .admin import router as admin_router
from .notifications import router as notifications_router, ws_router


logger = get_logger("boapay.api")


def create_app(system: Optional[BankingSystem] = None, run_settlement: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: Banking system to serve; built from configuration when omitted
        run_settlement: Start the international settlement job with the app
    """
    config = system.config if system else get_config()
    setup_logging(config.log_level, log_format=config.log_format)

    if system is None:
        system = BankingSystem.from_config(config)
        if config.seed_demo_data:
            seed_demo_data(system)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if run_settlement:
            task = asyncio.create_task(
                system.settlement_job.run_forever(config.settlement_poll_interval_seconds)
            )
        yield
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="Boapay Online Banking API",
        description="Online banking: accounts, transfers, bills, international transfers and crypto",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.banking_system = system

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())}
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every API call and turn unexpected errors into a generic 500"""
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        start = time.time()
        with correlation_context(correlation_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error on {request.method} {request.url.path}")
                return JSONResponse(status_code=500, content={"message": "An unexpected error occurred"})

            if request.url.path.startswith("/api"):
                log_action(
                    logger, "info",
                    f"{request.method} {request.url.path} {response.status_code}",
                    extra={"duration_ms": round((time.time() - start) * 1000, 1)}
                )
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    # Include routers
    app.include_router(session_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(accounts_router, prefix="/api/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/api/transactions", tags=["Transactions"])
    app.include_router(transfers_router, prefix="/api/transfers", tags=["Transfers"])
    app.include_router(transfer_requests_router, prefix="/api/transfer-requests", tags=["Transfers"])
    app.include_router(bills_router, prefix="/api/bills", tags=["Bills"])
    app.include_router(bill_payments_router, prefix="/api/bill-payments", tags=["Bills"])
    app.include_router(external_router, prefix="/api/external-bank-accounts", tags=["International"])
    app.include_router(international_router, prefix="/api/international-transfers", tags=["International"])
    app.include_router(currencies_router, prefix="/api/currencies", tags=["Currencies"])
    app.include_router(cryptocurrencies_router, prefix="/api/cryptocurrencies", tags=["Crypto"])
    app.include_router(crypto_router, prefix="/api/crypto", tags=["Crypto"])
    app.include_router(loans_router, prefix="/api/loans", tags=["Loans"])
    app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])
    app.include_router(ws_router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "boapay_api",
            "version": __version__
        }

    return app
