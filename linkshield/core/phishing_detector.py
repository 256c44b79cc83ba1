"""
Phishing Detector
Heuristic phishing scoring for a single URL: homographs, brand
impersonation, keyword density and structural red flags.

Every rule that fires is reported either as a reason (strong signal) or a
warning (soft signal) so the verdict can explain itself.
"""

import logging
import re
from typing import List, Optional

from linkshield.core.heuristics_config import HeuristicsConfig, get_heuristics_config
from linkshield.core.models import PhishingCheckResult
from linkshield.core.url_validator import parse_url

logger = logging.getLogger(__name__)

IPV4_RE = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')
NON_ASCII_RE = re.compile(r'[^\x00-\x7F]')
DIGIT_RE = re.compile(r'\d')

MAX_SUBDOMAIN_LABELS = 3
MAX_HYPHENS = 2
MAX_DOMAIN_LENGTH = 30

# Rule weights (points added to the suspicion score)
HOMOGRAPH_POINTS = 30
MULTIPLE_KEYWORDS_POINTS = 25
SINGLE_KEYWORD_POINTS = 10
BRAND_LOOKALIKE_POINTS = 35
BRAND_IN_SUBDOMAIN_POINTS = 40
SUSPICIOUS_TLD_POINTS = 20
DEEP_SUBDOMAIN_POINTS = 15
IP_HOST_POINTS = 30
AT_SYMBOL_POINTS = 35
HYPHENS_POINTS = 20
DIGITS_WITH_KEYWORDS_POINTS = 15
LONG_DOMAIN_POINTS = 10
SHORTENER_POINTS = 5


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance (insert/delete/substitute) between two strings"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        current = [i]
        for j, ch_b in enumerate(b, start=1):
            current.append(min(
                previous[j - 1] + (ch_a != ch_b),
                current[j - 1] + 1,
                previous[j] + 1,
            ))
        previous = current
    return previous[-1]


def calculate_similarity(a: str, b: str) -> float:
    """Normalized similarity: (max_len - distance) / max_len, 1.0 for two empty strings"""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def split_hostname(hostname: str):
    """(domain, subdomain): last two labels, and whatever precedes them"""
    parts = hostname.split('.')
    domain = '.'.join(parts[-2:]) if len(parts) >= 2 else hostname
    subdomain = '.'.join(parts[:-2]) if len(parts) > 2 else ''
    return domain, subdomain


class PhishingHeuristics:
    """Deterministic phishing scorer; brand/keyword/TLD lists come from config"""

    def __init__(self, config: Optional[HeuristicsConfig] = None):
        self.config = config or get_heuristics_config()
        self._substitutions = str.maketrans(self.config.digit_substitutions)

    def _is_shortener(self, hostname: str) -> bool:
        # "bit.ly" matches bit.ly and *.bit.ly; a bare "tinyurl" matches any tinyurl label
        labels = hostname.split('.')
        for shortener in self.config.url_shorteners:
            if '.' in shortener:
                if hostname == shortener or hostname.endswith('.' + shortener):
                    return True
            elif shortener in labels:
                return True
        return False

    def detect(self, url: str) -> PhishingCheckResult:
        parsed = parse_url(url)
        if parsed is None:
            return PhishingCheckResult(
                is_phishing=False,
                suspicion_score=0,
                url=url if isinstance(url, str) else "",
                reasons=["Invalid URL format"],
            )

        reasons: List[str] = []
        warnings: List[str] = []
        score = 0

        url_lower = url.lower()
        hostname = parsed.hostname or ""
        domain, subdomain = split_hostname(hostname)

        # Homograph attacks: raw unicode or its punycode encoding
        if NON_ASCII_RE.search(hostname):
            score += HOMOGRAPH_POINTS
            reasons.append("Domain contains non-ASCII characters (possible homograph attack)")
        elif any(label.startswith("xn--") for label in hostname.split('.')):
            score += HOMOGRAPH_POINTS
            reasons.append("Domain contains punycode-encoded characters (possible homograph attack)")

        # Keyword density
        found_keywords = [kw for kw in self.config.phishing_keywords if kw in url_lower]
        if len(found_keywords) >= 2:
            score += MULTIPLE_KEYWORDS_POINTS
            reasons.append(f"Contains multiple phishing keywords: {', '.join(found_keywords)}")
        elif len(found_keywords) == 1:
            score += SINGLE_KEYWORD_POINTS
            warnings.append(f"Contains phishing keyword: {found_keywords[0]}")

        # Brand impersonation
        substituted = domain.translate(self._substitutions)
        for brand in self.config.brands:
            if brand in domain:
                if domain != f"{brand}.com":
                    similarity = calculate_similarity(domain, f"{brand}.com")
                    if similarity > self.config.brand_similarity_threshold:
                        score += BRAND_LOOKALIKE_POINTS
                        reasons.append(
                            f"Domain closely resembles legitimate brand: {brand} "
                            f"(similarity: {similarity * 100:.0f}%)"
                        )
            elif brand in substituted:
                score += BRAND_LOOKALIKE_POINTS
                reasons.append(f"Domain imitates brand with character substitution: {brand} ({domain})")

            # e.g. paypal.malicious.com
            if brand in subdomain:
                score += BRAND_IN_SUBDOMAIN_POINTS
                reasons.append(f"Legitimate brand name in subdomain: {brand}")

        tld = domain.split('.')[-1]
        if tld in self.config.suspicious_tlds:
            score += SUSPICIOUS_TLD_POINTS
            reasons.append(f"Uses suspicious TLD: .{tld}")

        subdomain_parts = [part for part in subdomain.split('.') if part]
        if len(subdomain_parts) > MAX_SUBDOMAIN_LABELS:
            score += DEEP_SUBDOMAIN_POINTS
            warnings.append(f"Excessive subdomains ({len(subdomain_parts)} levels)")

        if IPV4_RE.match(hostname):
            score += IP_HOST_POINTS
            reasons.append("Uses IP address instead of domain name")

        if '@' in url:
            score += AT_SYMBOL_POINTS
            reasons.append("Contains @ symbol (possible credential injection)")

        hyphen_count = domain.count('-')
        if hyphen_count > MAX_HYPHENS:
            score += HYPHENS_POINTS
            reasons.append(f"Excessive hyphens in domain ({hyphen_count})")

        if DIGIT_RE.search(domain) and found_keywords:
            score += DIGITS_WITH_KEYWORDS_POINTS
            warnings.append("Domain contains numbers along with sensitive keywords")

        if len(domain) > MAX_DOMAIN_LENGTH:
            score += LONG_DOMAIN_POINTS
            warnings.append(f"Unusually long domain name ({len(domain)} characters)")

        if self._is_shortener(hostname):
            score += SHORTENER_POINTS
            warnings.append("URL uses a URL shortener (destination unknown)")

        score = max(0, min(score, 100))
        is_phishing = score >= self.config.phishing_threshold
        if is_phishing:
            logger.info(f"Phishing heuristics flagged {domain} with score {score}")

        return PhishingCheckResult(
            is_phishing=is_phishing,
            suspicion_score=score,
            url=url,
            domain=domain,
            reasons=reasons,
            warnings=warnings,
        )
