"""CaseVault API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text

from casevault_api.db.session import SessionLocal
from casevault_api.ledger.exceptions import (
    CustodyValidationError,
    HashComputationError,
    LedgerPersistenceError,
)
from casevault_api.middleware.correlation import CorrelationIDMiddleware
from casevault_api.routes import admin, audit, cases, custody, evidence
from casevault_api.settings import get_settings
from casevault_api.storage.service import get_storage_service

LOG_FORMATS = {
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "module": "%(name)s"}',
    "text": "%(asctime)s %(levelname)s %(name)s: %(message)s",
}

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format=LOG_FORMATS.get(settings.log_format.lower(), LOG_FORMATS["json"]),
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

ALEMBIC_INI_PATH = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting CaseVault API...")
    try:
        settings.validate_production_settings()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    yield
    logger.info("Shutting down CaseVault API...")


app = FastAPI(
    title="CaseVault API",
    description="Forensic case management with a tamper-evident audit ledger",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Register routers
app.include_router(admin.router)
app.include_router(cases.router)
app.include_router(evidence.router)
app.include_router(custody.router)
app.include_router(audit.router)


@app.exception_handler(CustodyValidationError)
async def custody_validation_handler(request: Request, exc: CustodyValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": {"message": str(exc), "field": exc.field}},
    )


@app.exception_handler(HashComputationError)
async def hash_computation_handler(request: Request, exc: HashComputationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(LedgerPersistenceError)
async def ledger_persistence_handler(request: Request, exc: LedgerPersistenceError):
    logger.error(
        f"Unhandled ledger persistence error: {exc}",
        extra={"case_id": exc.case_id, "action": exc.action},
    )
    return JSONResponse(status_code=503, content={"detail": "Audit ledger unavailable"})


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "casevault-api",
        "version": "0.1.0",
    }


def _migrations_at_head(db) -> bool:
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    current_rev = MigrationContext.configure(db.connection()).get_current_revision()
    head_rev = ScriptDirectory.from_config(Config(ALEMBIC_INI_PATH)).get_current_head()
    if current_rev != head_rev:
        logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
        return False
    return True


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint (verifies dependencies)."""
    checks = {
        "database": False,
        "migrations": False,
        "object_storage": False,
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
        checks["migrations"] = _migrations_at_head(db)
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    try:
        checks["object_storage"] = get_storage_service().bucket_ready()
    except Exception as e:
        logger.error(f"Object storage check failed: {e}")

    all_ready = all(checks.values())
    return JSONResponse(
        content={
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
        },
        status_code=200 if all_ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "CaseVault API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
