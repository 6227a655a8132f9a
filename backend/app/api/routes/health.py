"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.db.engine import get_async_engine

router = APIRouter()


async def check_db(engine: AsyncEngine | None = None) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        engine = engine or get_async_engine()
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if the database answers, 503 otherwise
    """
    db_ok, db_status = await check_db()

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {"db": db_status},
    }

    if not db_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
