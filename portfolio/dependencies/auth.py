"""
Authentication dependencies for FastAPI routes.

Admin routes require the shared secret from ``settings.ADMIN_API_KEY`` in the
X-Admin-Key header (set by the admin UI after login).
"""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from portfolio.config import settings

logger = logging.getLogger(__name__)


async def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> str:
    """Reject the request with 401 unless X-Admin-Key matches the configured key."""
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        logger.warning("Rejected admin request to %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-Admin-Key header.",
        )
    return x_admin_key
