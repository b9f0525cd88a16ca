from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

# Import database components
from app.database.database import create_tables, async_engine

# Import middleware
from app.common.middleware import TenantMiddleware, SecurityHeadersMiddleware
from app.common.exceptions import LedgerError, LedgerValidationError, NotFoundError, ConstraintViolation

# Import routers
from app.modules.contacts.router import router as contacts_router
from app.modules.items.router import router as items_router
from app.modules.invoices.router import router as invoices_router, payments_in_router
from app.modules.bills.router import bills_router, payments_out_router
from app.modules.sequences.router import router as sequences_router
from app.modules.history.router import router as history_router
from app.modules.reports.routers import balances_router

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    await create_tables()
    yield
    logger.info("Ledger API shutting down...")
    await async_engine.dispose()


# FastAPI app
app = FastAPI(
    title="Ledger API",
    description="Offline-first invoicing ledger: invoices, payments, balances and stock kept consistent",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TenantMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== EXCEPTION HANDLERS =====

def _error_response(status_code: int, exc: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "context": {k: str(v) for k, v in exc.context.items()}}
    )


@app.exception_handler(LedgerValidationError)
async def validation_error_handler(request: Request, exc: LedgerValidationError):
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(ConstraintViolation)
async def constraint_violation_handler(request: Request, exc: ConstraintViolation):
    return _error_response(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "El registro viola una restricción de integridad (p. ej. número duplicado)"}
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Error de almacenamiento; no se aplicó ningún cambio"}
    )


# Include routers
app.include_router(contacts_router)
app.include_router(items_router)
app.include_router(invoices_router)
app.include_router(payments_in_router)
app.include_router(bills_router)
app.include_router(payments_out_router)
app.include_router(sequences_router)
app.include_router(history_router)
app.include_router(balances_router)


@app.get("/")
async def read_root():
    return {
        "message": "Ledger API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}
