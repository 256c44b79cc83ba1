"""
Link Verification Pipeline
Runs every security check concurrently, aggregates the results into a risk
score and verdict, and caches verdicts per URL.

Flow: cache lookup -> concurrent checks (bounded by a deadline) ->
risk score / level -> critical issues and recommendations -> cache store
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type

from linkshield.core.config import settings
from linkshield.core.dns_checker import DnsResolver
from linkshield.core.heuristics_config import ScoringWeights, get_heuristics_config
from linkshield.core.models import (
    CheckResult,
    DnsCheckResult,
    MalwareCheckResult,
    PhishingCheckResult,
    RiskLevel,
    SslCheckResult,
    UrlValidationResult,
    VerificationChecks,
    VerificationMetadata,
    VerificationOptions,
    VerificationSummary,
    VerificationVerdict,
)
from linkshield.core.phishing_detector import PhishingHeuristics
from linkshield.core.ssl_checker import EXPIRY_WARNING_DAYS, TlsInspector
from linkshield.core.url_reputation import ThreatListChecker, check_suspicious_patterns
from linkshield.core.url_validator import UrlStructureValidator, extract_hostname, sanitize_url_for_logging
from linkshield.core.verification_cache import VerificationCache

logger = logging.getLogger(__name__)

RESULT_TYPES: Dict[str, Type[CheckResult]] = {
    "url_validation": UrlValidationResult,
    "dns_check": DnsCheckResult,
    "ssl_check": SslCheckResult,
    "phishing_check": PhishingCheckResult,
    "malware_check": MalwareCheckResult,
}

UNPARSEABLE_REASON = "skipped: URL could not be parsed"

# Risk level thresholds, highest first
RISK_LEVELS = (
    (80, "critical"),
    (60, "high"),
    (40, "medium"),
    (20, "low"),
)

PHISHING_RECOMMENDATION_SCORE = 30
UNVERIFIED_RISK_SCORE = 50


def calculate_risk_score(checks: VerificationChecks, weights: Optional[ScoringWeights] = None) -> int:
    """Overall risk score (0-100)"""
    weights = weights or get_heuristics_config().scoring
    score = 0.0

    if not checks.url_validation.is_valid:
        score += weights.url_invalid

    if not checks.dns_check.is_valid:
        score += weights.dns_invalid

    if not checks.ssl_check.is_valid:
        score += weights.ssl_invalid

    score += checks.phishing_check.suspicion_score * weights.phishing_scale

    # Flat penalty, however many threats matched
    if not checks.malware_check.is_safe:
        score += weights.malware_unsafe

    total_warnings = sum(len(result.warnings) for result in checks.all_results())
    score += min(total_warnings, weights.warning_cap)

    # Round half up
    return max(0, min(int(math.floor(score + 0.5)), 100))


def get_risk_level(score: int) -> RiskLevel:
    """Map a risk score onto its band"""
    for threshold, level in RISK_LEVELS:
        if score >= threshold:
            return level
    return "safe"


def generate_recommendations(checks: VerificationChecks) -> List[str]:
    """Security recommendations; never empty"""
    recommendations: List[str] = []

    if checks.url_validation.protocol == "http":
        recommendations.append("Upgrade to HTTPS for better security")

    if not checks.dns_check.has_mx_record and checks.dns_check.has_a_record:
        recommendations.append("Domain has no email records - may be newly registered")

    days = checks.ssl_check.days_until_expiration
    if days and days < EXPIRY_WARNING_DAYS:
        recommendations.append("SSL certificate expiring soon - verify site legitimacy")

    if checks.phishing_check.suspicion_score > PHISHING_RECOMMENDATION_SCORE:
        recommendations.append("URL shows signs of phishing - verify authenticity before sharing")

    if checks.phishing_check.reasons:
        recommendations.append("Manual review recommended due to suspicious patterns")

    if checks.malware_check.threats:
        recommendations.append("DO NOT SHARE - URL flagged as malicious by security providers")

    if not recommendations:
        recommendations.append("URL passed all security checks - safe to share")

    return recommendations


def collect_critical_issues(url: str, checks: VerificationChecks) -> List[str]:
    issues: List[str] = []

    if not checks.url_validation.is_valid:
        issues.append("URL format is invalid")

    if not checks.dns_check.is_valid:
        issues.append("Domain does not exist or has DNS issues")

    if checks.phishing_check.is_phishing:
        issues.append(f"Potential phishing detected ({checks.phishing_check.suspicion_score}% confidence)")

    if not checks.malware_check.is_safe:
        for threat in checks.malware_check.threats:
            issues.append(f"{threat.threat_type}: {threat.description}")

    # Local patterns run regardless of the malware check outcome
    for pattern in check_suspicious_patterns(url).patterns:
        if pattern not in issues:
            issues.append(pattern)

    return issues


async def _run_sync(func: Callable[[str], CheckResult], arg: str) -> CheckResult:
    return func(arg)


class VerificationOrchestrator:
    """
    Coordinates the five checks for a URL and owns the verdict cache.

    Every collaborator is injectable; defaults are built from settings.
    """

    def __init__(
        self,
        url_validator: Optional[UrlStructureValidator] = None,
        dns_resolver: Optional[DnsResolver] = None,
        tls_inspector: Optional[TlsInspector] = None,
        phishing_detector: Optional[PhishingHeuristics] = None,
        threat_checker: Optional[ThreatListChecker] = None,
        cache: Optional[VerificationCache] = None,
        weights: Optional[ScoringWeights] = None,
        default_timeout_ms: Optional[int] = None,
    ):
        self.url_validator = url_validator or UrlStructureValidator()
        self.dns_resolver = dns_resolver or DnsResolver()
        self.tls_inspector = tls_inspector or TlsInspector()
        self.phishing_detector = phishing_detector or PhishingHeuristics()
        self.threat_checker = threat_checker or ThreatListChecker()
        self.cache = cache if cache is not None else VerificationCache(settings.VERIFICATION_CACHE_TTL_SECONDS)
        self.weights = weights or get_heuristics_config().scoring
        self.default_timeout_ms = default_timeout_ms or settings.VERIFICATION_TIMEOUT_MS

    def _plan_checks(self, url: str, hostname: Optional[str],
                     options: VerificationOptions) -> Dict[str, Any]:
        """Either a finished (skipped) result or an awaitable per check"""
        plan: Dict[str, Any] = {
            "url_validation": _run_sync(self.url_validator.validate, url),
        }

        if options.skip_dns:
            plan["dns_check"] = DnsCheckResult.neutral(hostname or "")
        elif hostname is None:
            plan["dns_check"] = DnsCheckResult.neutral("", UNPARSEABLE_REASON)
        else:
            plan["dns_check"] = self.dns_resolver.resolve(hostname)

        if options.skip_ssl:
            plan["ssl_check"] = SslCheckResult.neutral(url)
        elif hostname is None:
            plan["ssl_check"] = SslCheckResult.neutral(url, UNPARSEABLE_REASON)
        else:
            plan["ssl_check"] = self.tls_inspector.inspect(url)

        if options.skip_phishing:
            plan["phishing_check"] = PhishingCheckResult.neutral(url)
        else:
            plan["phishing_check"] = _run_sync(self.phishing_detector.detect, url)

        if options.skip_malware:
            plan["malware_check"] = MalwareCheckResult.neutral(url)
        else:
            plan["malware_check"] = self.threat_checker.check(url)

        return plan

    async def _run_checks(self, url: str, hostname: Optional[str],
                          options: VerificationOptions) -> VerificationChecks:
        plan = self._plan_checks(url, hostname, options)
        results: Dict[str, CheckResult] = {
            name: item for name, item in plan.items() if isinstance(item, CheckResult)
        }
        tasks: Dict[str, "asyncio.Task[CheckResult]"] = {
            name: asyncio.ensure_future(item)
            for name, item in plan.items()
            if not isinstance(item, CheckResult)
        }

        timeout = (options.timeout_ms or self.default_timeout_ms) / 1000
        try:
            if tasks:
                await asyncio.wait(tasks.values(), timeout=timeout)
        finally:
            pending = [task for task in tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for name, task in tasks.items():
            result_type = RESULT_TYPES[name]
            target = (hostname or "") if name == "dns_check" else url
            if task.cancelled():
                logger.warning(f"{result_type.CHECK_NAME} check for {sanitize_url_for_logging(url)} "
                               f"timed out after {timeout:g}s")
                results[name] = result_type.neutral(target, "timed out")
            elif task.exception() is not None:
                logger.error(f"{result_type.CHECK_NAME} check for {sanitize_url_for_logging(url)} failed",
                             exc_info=task.exception())
                results[name] = result_type.neutral(target, "failed")
            else:
                results[name] = task.result()

        return VerificationChecks(**results)

    async def verify(self, url: str, options: Optional[VerificationOptions] = None) -> VerificationVerdict:
        """
        Comprehensive link verification.

        Never raises for checker failures or malformed input; the verdict
        carries every outcome.
        """
        options = options or VerificationOptions()
        start = time.perf_counter()

        if not options.skip_cache:
            cached = self.cache.get(url)
            if cached is not None:
                logger.debug(f"Cache hit for URL: {sanitize_url_for_logging(url)}")
                return cached.as_cached()

        hostname = extract_hostname(url)
        checks = await self._run_checks(url, hostname, options)

        risk_score = calculate_risk_score(checks, self.weights)
        overall_risk = get_risk_level(risk_score)

        total_errors = sum(len(result.errors) for result in (
            checks.url_validation, checks.dns_check, checks.ssl_check, checks.malware_check,
        ))
        total_warnings = sum(len(result.warnings) for result in checks.all_results())

        critical_issues = collect_critical_issues(url, checks)
        recommendations = generate_recommendations(checks)

        is_verified = total_errors == 0 and not critical_issues and risk_score < UNVERIFIED_RISK_SCORE

        verdict = VerificationVerdict(
            url=url,
            is_verified=is_verified,
            overall_risk=overall_risk,
            risk_score=risk_score,
            checks=checks,
            summary=VerificationSummary(
                total_errors=total_errors,
                total_warnings=total_warnings,
                critical_issues=critical_issues,
                recommendations=recommendations,
            ),
            metadata=VerificationMetadata(
                verified_at=datetime.now(timezone.utc),
                total_check_time_ms=int((time.perf_counter() - start) * 1000),
                cached=False,
            ),
        )

        # Stored copy shares no lists with the returned verdict
        self.cache.set(url, verdict.model_copy(deep=True))
        logger.info(f"Verified {sanitize_url_for_logging(url)}: risk={overall_risk} "
                    f"score={risk_score} verified={is_verified}")
        return verdict

    def clear_cache(self) -> None:
        self.cache.flush_all()

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()
