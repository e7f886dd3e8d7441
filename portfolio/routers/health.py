"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging

from portfolio.database import get_db
from portfolio.dependencies.llm import get_llm_client
from portfolio.models.schemas import HealthCheckResponse
from portfolio.services.llm_client import LLMClient
from portfolio.utils.helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of the database and the LLM provider
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    # Check LLM provider
    llm_status = "ok"
    try:
        if not await llm.check_health():
            llm_status = "error"
    except Exception as e:
        logger.error(f"LLM health check failed: {e}")
        llm_status = "error"

    # The site still serves content without the LLM, so only the DB makes it unhealthy
    if db_status != "ok":
        overall_status = "unhealthy"
    elif llm_status != "ok":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        llm=llm_status,
        timestamp=utcnow(),
    )
