"""
Link Security API Endpoints
Verifies a URL before it is shared: structure, DNS, TLS, phishing
heuristics and threat intelligence, combined into one risk verdict.

Rate limiting: VERIFY_RATE_LIMIT per IP on the verify endpoint
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address

from linkshield.core.config import settings
from linkshield.core.models import VerificationVerdict
from linkshield.core.url_validator import is_valid_url_format, sanitize_url_for_logging
from linkshield.core.verification_pipeline import VerificationOrchestrator

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()

# No caller is authenticated, so high risk is refused along with critical
REJECTED_RISK_LEVELS = {"high", "critical"}


class VerifyResponse(BaseModel):
    """Successful verification response"""
    success: bool
    verification: VerificationVerdict


class CacheClearResponse(BaseModel):
    success: bool
    message: str


class RejectedRiskDetail(BaseModel):
    """Body of a 403 rejection"""
    message: str
    risk_level: str
    risk_score: int
    critical_issues: List[str]
    recommendations: List[str]


def log_security_event(event_type: str, details: str, ip_address: str = None):
    """Log security-related events for monitoring and alerting."""
    log_msg = f"SECURITY_EVENT: {event_type}"
    if ip_address:
        log_msg += f" | IP: {ip_address}"
    log_msg += f" | Details: {details}"
    logger.warning(log_msg)


def get_orchestrator(request: Request) -> VerificationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Verification service is not initialized")
    return orchestrator


@router.get("/security/verify", response_model=VerifyResponse)
@limiter.limit(settings.VERIFY_RATE_LIMIT)
async def verify_link(
    request: Request,
    url: Optional[str] = Query(None, description="Absolute http(s) URL to verify")
) -> VerifyResponse:
    """
    Verify a URL before sharing it

    Responses:
    - 200: verdict for safe, low and medium risk
    - 400: missing or non-http(s) URL
    - 403: high or critical risk, with the issues that caused the rejection
    """
    client_ip = request.client.host if request.client else "unknown"

    if not url:
        raise HTTPException(status_code=400, detail="URL parameter is required")

    if not is_valid_url_format(url):
        log_security_event("INVALID_URL", sanitize_url_for_logging(url), client_ip)
        raise HTTPException(status_code=400, detail="Invalid URL format")

    verdict = await get_orchestrator(request).verify(url)

    if verdict.overall_risk in REJECTED_RISK_LEVELS:
        log_security_event(
            f"{verdict.overall_risk.upper()}_RISK_URL_REJECTED",
            f"{sanitize_url_for_logging(url)} (score {verdict.risk_score})",
            client_ip
        )
        raise HTTPException(
            status_code=403,
            detail=RejectedRiskDetail(
                message=f"URL rejected: {verdict.overall_risk} security risk",
                risk_level=verdict.overall_risk,
                risk_score=verdict.risk_score,
                critical_issues=verdict.summary.critical_issues,
                recommendations=verdict.summary.recommendations,
            ).model_dump()
        )

    return VerifyResponse(success=True, verification=verdict)


@router.get("/security/cache/stats")
async def cache_stats(request: Request) -> Dict[str, Any]:
    """Verdict cache hits, misses, live keys and hit rate"""
    return get_orchestrator(request).cache_stats()


@router.delete("/security/cache", response_model=CacheClearResponse)
async def clear_cache(request: Request) -> CacheClearResponse:
    get_orchestrator(request).clear_cache()
    return CacheClearResponse(success=True, message="Verification cache cleared")
