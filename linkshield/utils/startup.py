"""
Startup initialization logic
Builds the verification orchestrator on server startup
"""

import logging
from fastapi import FastAPI

from linkshield.core.config import settings
from linkshield.core.heuristics_config import get_heuristics_config
from linkshield.core.verification_cache import VerificationCache
from linkshield.core.verification_pipeline import VerificationOrchestrator

logger = logging.getLogger(__name__)


async def initialize_system(app: FastAPI):
    """
    Initialize system components on startup

    The orchestrator (and the verdict cache it owns) lives for the whole
    process and is shared by every request through app.state.

    Args:
        app: FastAPI application instance
    """
    app.state.orchestrator = None
    app.state.init_error = None

    try:
        logger.info("[1/2] Loading heuristics configuration...")
        config = get_heuristics_config()
        logger.info(f"Loaded {len(config.brands)} brands, {len(config.phishing_keywords)} phishing keywords")

        logger.info("[2/2] Creating verification pipeline...")
        app.state.orchestrator = VerificationOrchestrator(
            cache=VerificationCache(ttl_seconds=settings.VERIFICATION_CACHE_TTL_SECONDS),
            weights=config.scoring,
        )
        logger.info("Verification pipeline ready")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        app.state.init_error = str(e)
        raise


def get_init_status(app: FastAPI) -> dict:
    """Get current initialization status"""
    orchestrator = getattr(app.state, "orchestrator", None)
    return {
        "initialized": orchestrator is not None,
        "threat_providers": [p.name for p in orchestrator.threat_checker.providers] if orchestrator else [],
        "cache": orchestrator.cache_stats() if orchestrator else None,
        "error": getattr(app.state, "init_error", None)
    }
