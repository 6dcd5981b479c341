"""
Health endpoints.

Lightweight liveness/readiness probes that expose no secrets.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from coverso.core.database import check_connection, get_engine

logger = logging.getLogger("coverso")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "profiles",
    "generated_documents",
    "discount_codes",
    "billing_subscriptions",
]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    engine = get_engine()
    if not check_connection(engine):
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    inspector = inspect(engine)
    missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

    return {"status": "ok"}
