"""Health endpoint."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from wsm.database import DbDep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(db: DbDep):
    """Health check endpoint; probes the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health probe failed")
        return JSONResponse(status_code=503, content={"status": "error", "database": "unavailable"})
    return {"status": "ok", "database": "connected"}
