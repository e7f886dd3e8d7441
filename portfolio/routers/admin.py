"""
Admin session check (mounted at /api/admin).
"""
from fastapi import APIRouter

from portfolio.models.schemas import AuthCheckResponse

router = APIRouter()


@router.get("/check-auth", response_model=AuthCheckResponse)
async def check_auth() -> AuthCheckResponse:
    """Reached only when ``require_admin`` accepted the X-Admin-Key header."""
    return AuthCheckResponse()
