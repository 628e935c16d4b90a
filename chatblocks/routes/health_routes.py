"""Health check routes for service monitoring and load balancing."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from chatblocks.version import VERSION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/heartbeat")
async def heartbeat() -> Dict[str, str]:
    """Lightweight heartbeat endpoint for uptime monitoring."""
    return {"status": "ok"}


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for service monitoring.

    Does not require authentication. Returns the service status, name,
    version and the current UTC timestamp.
    """
    return {
        "status": "healthy",
        "service": "chatblocks-backend",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
