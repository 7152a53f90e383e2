from __future__ import annotations

import structlog
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from app.db.schema_guard import LedgerNotInitializedError, is_schema_drift_error

logger = structlog.get_logger(__name__)


def domain_error(exc: Exception, *, status_code: int) -> HTTPException:
    code = getattr(exc, "code", "UNKNOWN")
    return HTTPException(status_code=status_code, detail={"code": f"E_{code}"})


def not_initialized_error(exc: LedgerNotInitializedError) -> HTTPException:
    logger.error("ledger_schema_not_initialized", missing=exc.missing)
    return HTTPException(status_code=503, detail={"code": "E_LEDGER_NOT_INITIALIZED"})


def store_error(exc: SQLAlchemyError, *, event: str, **fields: object) -> HTTPException:
    if is_schema_drift_error(exc):
        logger.error("ledger_schema_not_initialized", error_type=type(exc).__name__, **fields)
        return HTTPException(status_code=503, detail={"code": "E_LEDGER_NOT_INITIALIZED"})

    logger.exception(event, **fields)
    return HTTPException(status_code=500, detail={"code": "E_STORE_FAILURE"})
