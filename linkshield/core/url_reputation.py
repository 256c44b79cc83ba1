"""
URL Reputation Checker
Matches URLs against external threat-intelligence feeds:
- Google Safe Browsing API
- VirusTotal API
Falls back to local suspicious-pattern matching when no feed can be consulted.
"""

import asyncio
import base64
import logging
import re
import time
from typing import List, Optional

import aiohttp

from linkshield.core.config import settings
from linkshield.core.models import MalwareCheckResult, SuspiciousPatternResult, ThreatMatch
from linkshield.core.url_validator import ALLOWED_SCHEMES, parse_url, sanitize_url_for_logging

logger = logging.getLogger(__name__)

LOCAL_PATTERN_SOURCE = "local-patterns"

# (pattern, description); matched against the lowercased URL
SUSPICIOUS_PATTERNS = [
    (re.compile(r'^[a-z][a-z0-9+.-]*://(?:[^/?#@]*@)?\d{1,3}(?:\.\d{1,3}){3}(?::\d+)?(?:[/?#]|$)'),
     'IP address in URL'),
    (re.compile(r'^[a-z][a-z0-9+.-]*://[^/?#]*@'), 'Credential injection attempt'),
    (re.compile(r'(?:^|[?&=/])(?:javascript|vbscript|data):'), 'Embedded script or data URI'),
    (re.compile(r'\.(?:exe|scr|bat|cmd|msi|apk|jar|vbs|ps1)(?:[?#]|$)'), 'Executable file download'),
    (re.compile(r'^[a-z][a-z0-9+.-]*://[^/?#]*\.(?:tk|ml|ga|cf|gq)\.?(?::\d+)?(?:[/?#]|$)'), 'High-risk TLD'),
    (re.compile(r'[?&][^=&]*(?:url|redirect|next|return|goto|dest)[^=&]*=(?:https?:|https?%3a)'),
     'Embedded redirect to another URL'),
    (re.compile(r'%25[0-9a-f]{2}'), 'Double-encoded characters'),
]


class ThreatProviderError(Exception):
    """A threat-intelligence provider could not answer"""


class ThreatProvider:
    """Interface: given a URL, return its threat matches (empty if clean)"""

    name = "provider"

    async def lookup(self, url: str) -> List[ThreatMatch]:
        raise NotImplementedError


class GoogleSafeBrowsingProvider(ThreatProvider):
    """
    Check URL against Google Safe Browsing API
    Reference: https://developers.google.com/safe-browsing/v4
    """

    name = "Google Safe Browsing"
    API_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"

    def __init__(self, api_key: str, timeout: float = 10.0):
        self.api_key = api_key
        self.timeout = timeout

    async def lookup(self, url: str) -> List[ThreatMatch]:
        payload = {
            "client": {
                "clientId": "linkshield",
                "clientVersion": "1.0"
            },
            "threatInfo": {
                "threatTypes": [
                    "MALWARE",
                    "SOCIAL_ENGINEERING",
                    "UNWANTED_SOFTWARE",
                    "POTENTIALLY_HARMFUL_APPLICATION"
                ],
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}]
            }
        }

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.API_URL, params={"key": self.api_key}, json=payload) as response:
                    if response.status != 200:
                        raise ThreatProviderError(f"HTTP {response.status}")
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ThreatProviderError(str(e) or type(e).__name__) from e

        return [
            ThreatMatch(
                threat_type=match.get("threatType", "UNKNOWN"),
                description=f"Detected as {match.get('threatType', 'UNKNOWN')} "
                            f"({match.get('platformType', 'ANY_PLATFORM')})",
                source=self.name,
            )
            for match in data.get("matches", [])
        ]


class VirusTotalProvider(ThreatProvider):
    """
    Check URL against VirusTotal API
    Reference: https://docs.virustotal.com/reference/overview

    Note: Free tier allows 4 requests/minute
    """

    name = "VirusTotal"
    API_URL = "https://www.virustotal.com/api/v3/urls"

    def __init__(self, api_key: str, timeout: float = 15.0):
        self.api_key = api_key
        self.timeout = timeout

    async def lookup(self, url: str) -> List[ThreatMatch]:
        # VirusTotal uses base64-encoded URL without padding
        url_id = base64.urlsafe_b64encode(url.encode()).decode().rstrip("=")
        headers = {
            "x-apikey": self.api_key,
            "Accept": "application/json"
        }

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.get(f"{self.API_URL}/{url_id}", headers=headers) as response:
                    if response.status == 404:
                        # URL not in database, submit for scanning; nothing known yet
                        async with session.post(self.API_URL, headers=headers, data={"url": url}) as scan_response:
                            logger.info(f"Submitted URL to VirusTotal for analysis (HTTP {scan_response.status})")
                        return []
                    if response.status != 200:
                        raise ThreatProviderError(f"HTTP {response.status}")
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ThreatProviderError(str(e) or type(e).__name__) from e

        stats = data.get("data", {}).get("attributes", {}).get("last_analysis_stats", {})
        malicious = stats.get("malicious", 0)
        suspicious = stats.get("suspicious", 0)
        total = sum(stats.values()) if stats else 0
        if total == 0:
            return []

        detection_ratio = (malicious + suspicious) / total
        if malicious >= 3 or detection_ratio > 0.1:
            return [ThreatMatch(
                threat_type="MALICIOUS" if malicious else "SUSPICIOUS",
                description=f"{malicious} malicious, {suspicious} suspicious out of {total} engines",
                source=self.name,
            )]
        return []


def build_default_providers() -> List[ThreatProvider]:
    """Providers enabled by configured API keys"""
    providers: List[ThreatProvider] = []

    if settings.GOOGLE_SAFE_BROWSING_API_KEY:
        logger.info("Google Safe Browsing API key configured")
        providers.append(GoogleSafeBrowsingProvider(
            settings.GOOGLE_SAFE_BROWSING_API_KEY, timeout=settings.THREAT_PROVIDER_TIMEOUT_SECONDS
        ))
    else:
        logger.warning("GOOGLE_SAFE_BROWSING_API_KEY not set - Google Safe Browsing checks disabled")

    if settings.VIRUSTOTAL_API_KEY:
        logger.info("VirusTotal API key configured")
        providers.append(VirusTotalProvider(
            settings.VIRUSTOTAL_API_KEY, timeout=settings.THREAT_PROVIDER_TIMEOUT_SECONDS
        ))
    else:
        logger.warning("VIRUSTOTAL_API_KEY not set - VirusTotal checks disabled")

    return providers


def _looks_like_dga(hostname: str) -> bool:
    """Check if domain looks like it was generated by a DGA"""
    parts = hostname.split('.')
    if len(parts) < 2:
        return False

    main_part = parts[-2]
    if len(main_part) <= 10:
        return False

    # High consonant ratio
    vowel_count = sum(1 for c in main_part if c in 'aeiou')
    if vowel_count / len(main_part) < 0.2:
        return True

    # Many consecutive consonants
    return bool(re.search(r'[bcdfghjklmnpqrstvwxz]{5,}', main_part))


def check_suspicious_patterns(url: str) -> SuspiciousPatternResult:
    """
    Local, regex-only URL screening (no network).

    Cheap enough to run on every URL as a supplementary signal.
    """
    url_lower = url.lower()
    patterns = [description for pattern, description in SUSPICIOUS_PATTERNS if pattern.search(url_lower)]

    parsed = parse_url(url)
    if parsed is not None and parsed.hostname and _looks_like_dga(parsed.hostname):
        patterns.append('Domain appears to be auto-generated (potential DGA)')

    return SuspiciousPatternResult(suspicious=bool(patterns), patterns=patterns)


class ThreatListChecker:
    """Consults every configured threat provider concurrently"""

    def __init__(self, providers: Optional[List[ThreatProvider]] = None):
        self.providers = providers if providers is not None else build_default_providers()

    async def check(self, url: str) -> MalwareCheckResult:
        start = time.perf_counter()

        parsed = parse_url(url)
        if parsed is None or parsed.scheme.lower() not in ALLOWED_SCHEMES:
            return MalwareCheckResult(
                is_safe=False,
                url=url if isinstance(url, str) else "",
                errors=["Invalid URL format"],
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            )

        threats: List[ThreatMatch] = []
        warnings: List[str] = []
        checked_by: List[str] = []

        results = await asyncio.gather(
            *(provider.lookup(url) for provider in self.providers),
            return_exceptions=True,
        )
        for provider, result in zip(self.providers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, ThreatProviderError):
                    logger.error(f"{provider.name} lookup raised unexpectedly: {result!r}")
                warnings.append(f"{provider.name} lookup failed: {result}")
                continue
            checked_by.append(provider.name)
            threats.extend(result)

        if not checked_by:
            warnings.append("No threat-intelligence provider available; using local pattern matching")
            local = check_suspicious_patterns(url)
            checked_by.append(LOCAL_PATTERN_SOURCE)
            threats.extend(
                ThreatMatch(threat_type="SUSPICIOUS_PATTERN", description=description, source=LOCAL_PATTERN_SOURCE)
                for description in local.patterns
            )

        if threats:
            logger.warning(f"Threats found for {sanitize_url_for_logging(url)}: "
                           f"{[t.threat_type for t in threats]}")

        return MalwareCheckResult(
            is_safe=not threats,
            url=url,
            threats=threats,
            checked_by=checked_by,
            warnings=warnings,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
