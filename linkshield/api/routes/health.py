"""
Health check endpoint
Provides system status information
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Request
from pydantic import BaseModel
from datetime import datetime, timezone
import time

from linkshield.utils.startup import get_init_status

router = APIRouter()

# Track startup time
_startup_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model"""
    status: str
    version: str
    uptime_seconds: float
    timestamp: str


class StatusResponse(BaseModel):
    """System status response model"""
    verifier_ready: bool
    threat_providers: List[str]
    cache: Optional[Dict[str, Any]]
    error: Optional[str]


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint

    Returns:
        HealthResponse: System health status
    """
    uptime = time.time() - _startup_time

    return HealthResponse(
        status="healthy",
        version="1.0.0",
        uptime_seconds=round(uptime, 2),
        timestamp=datetime.now(timezone.utc).isoformat()
    )


@router.get("/status", response_model=StatusResponse)
async def system_status(request: Request):
    """
    System status endpoint - verification pipeline readiness

    Returns:
        StatusResponse: configured threat providers and cache statistics
    """
    status = get_init_status(request.app)

    return StatusResponse(
        verifier_ready=status["initialized"],
        threat_providers=status["threat_providers"],
        cache=status["cache"],
        error=status["error"]
    )
