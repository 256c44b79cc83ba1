"""
URL Validator
Structural validation of submitted URLs: protocol, hostname shape,
private network targets and suspicious URL patterns
"""

import ipaddress
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

from linkshield.core.heuristics_config import HeuristicsConfig, get_heuristics_config
from linkshield.core.models import UrlValidationResult

logger = logging.getLogger(__name__)

# Allowed URL schemes
ALLOWED_SCHEMES = {'http', 'https'}

# Hostnames that always point back at the local machine
BLOCKED_HOSTNAMES = {
    'localhost',
    'localhost.localdomain',
}

# Blocked domain suffixes (local network names)
BLOCKED_SUFFIXES = (
    '.local',
    '.localhost',
)

IPV4_RE = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')
HOSTNAME_CHARS_RE = re.compile(r'^[a-zA-Z0-9.-]+$')
NON_ASCII_RE = re.compile(r'[^\x00-\x7F]')

MAX_URL_LENGTH = 2000
MAX_SUBDOMAIN_LABELS = 3

# Ordered: the first matching predicate names the range
IP_RANGE_REASONS = (
    ('is_unspecified', 'Reserved (current network)'),
    ('is_loopback', 'Loopback'),
    ('is_link_local', 'Link-local'),
    ('is_multicast', 'Multicast'),
    ('is_private', 'Private network'),
    ('is_reserved', 'Reserved'),
)


def ip_range_reason(ip_str: str) -> Optional[str]:
    """Name the reserved/private range an IP address belongs to, or None if public"""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return None
    for attr, reason in IP_RANGE_REASONS:
        if getattr(ip, attr):
            return reason
    return None


def is_ip_literal(hostname: str) -> bool:
    """True for IPv4 dotted quads (even out-of-range ones) and IPv6 literals"""
    if IPV4_RE.match(hostname):
        return True
    try:
        ipaddress.IPv6Address(hostname)
        return True
    except ValueError:
        return False


def parse_url(url: str) -> Optional[SplitResult]:
    """
    Parse a URL, returning None when it cannot be understood at all.

    A URL needs a scheme; http(s) URLs additionally need an authority.
    Malformed ports and IPv6 brackets count as parse failures.
    """
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlsplit(url.strip())
        parsed.port  # raises ValueError for out-of-range / non-numeric ports
    except ValueError:
        return None
    if not parsed.scheme:
        return None
    if parsed.scheme.lower() in ALLOWED_SCHEMES and not parsed.netloc:
        return None
    # A numeric dotted quad must be a real IPv4 address (no 999.300.1.1)
    if parsed.hostname and IPV4_RE.match(parsed.hostname):
        try:
            ipaddress.IPv4Address(parsed.hostname)
        except ValueError:
            return None
    return parsed


def extract_hostname(url: str) -> Optional[str]:
    """Hostname of a URL, or None if the URL cannot be parsed or has none"""
    parsed = parse_url(url)
    if parsed is None:
        return None
    return parsed.hostname or None


def parse_domain(hostname: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Split hostname into (domain, tld, subdomain) right-to-left.

    domain is the last two labels, subdomain everything before them.
    """
    parts = hostname.split('.')
    if len(parts) < 2:
        return hostname, None, None

    tld = parts[-1]
    domain = f"{parts[-2]}.{tld}"
    subdomain = '.'.join(parts[:-2]) if len(parts) > 2 else None
    return domain, tld, subdomain


def _is_private_target(hostname: str) -> bool:
    host = hostname.lower().rstrip('.')
    if host in BLOCKED_HOSTNAMES or host.endswith(BLOCKED_SUFFIXES):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback


class UrlStructureValidator:
    """Pure structural checks on a URL string (no network access)"""

    def __init__(self, config: Optional[HeuristicsConfig] = None):
        self.config = config or get_heuristics_config()

    def validate(self, url: str) -> UrlValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        parsed = parse_url(url)
        if parsed is None:
            return UrlValidationResult(
                is_valid=False,
                url=url if isinstance(url, str) else "",
                errors=["Invalid URL format"],
            )

        # Protocol validation
        protocol = parsed.scheme.lower()
        if protocol not in ALLOWED_SCHEMES:
            errors.append(f"Invalid protocol: {protocol}. Only HTTP and HTTPS are allowed")

        if protocol == 'http':
            warnings.append("Consider using HTTPS for better security")

        # Hostname validation
        hostname = parsed.hostname or ""
        ip_literal = False
        if not hostname:
            errors.append("Missing hostname")
        else:
            ip_literal = is_ip_literal(hostname)
            if ip_literal:
                warnings.append("URL uses IP address instead of domain name")

            if _is_private_target(hostname):
                errors.append("URLs pointing to localhost or private networks are not allowed")

            if not HOSTNAME_CHARS_RE.match(hostname):
                errors.append("Domain contains invalid characters")

        # IP literals have no TLD to speak of
        if ip_literal:
            domain, tld, subdomain = hostname, None, None
        else:
            domain, tld, subdomain = parse_domain(hostname)
            if not tld or len(tld) < 2:
                errors.append("Invalid or missing top-level domain (TLD)")

        if '@' in url:
            warnings.append("URL contains @ symbol, which may be used for phishing")

        if subdomain and len(subdomain.split('.')) > MAX_SUBDOMAIN_LABELS:
            warnings.append("URL has many subdomains, verify authenticity")

        url_lower = url.lower()
        domain_lower = domain.lower()
        found_keywords = [
            keyword for keyword in self.config.url_suspicious_keywords
            if keyword in url_lower and keyword not in domain_lower
        ]
        if found_keywords:
            warnings.append(f"URL contains suspicious keywords: {', '.join(found_keywords)}")

        if len(url) > MAX_URL_LENGTH:
            warnings.append("URL is extremely long, which may indicate malicious intent")

        if NON_ASCII_RE.search(hostname):
            warnings.append("Domain contains non-ASCII characters (possible homograph attack)")

        if errors:
            logger.debug(f"URL validation failed for {sanitize_url_for_logging(url)}: {errors}")

        return UrlValidationResult(
            is_valid=not errors,
            url=url,
            protocol=protocol,
            domain=domain or hostname,
            hostname=hostname,
            tld=tld or None,
            subdomain=subdomain or None,
            errors=errors,
            warnings=warnings,
        )


def is_valid_url_format(url: str) -> bool:
    """Quick check: URL parses and uses http or https"""
    parsed = parse_url(url)
    return parsed is not None and parsed.scheme.lower() in ALLOWED_SCHEMES


def sanitize_url_for_logging(url: str) -> str:
    """Remove sensitive parts from URL for safe logging"""
    try:
        parsed = urlsplit(url)
        # Remove password from URL
        if parsed.password:
            return url.replace(parsed.password, "***")
        return url
    except (ValueError, TypeError, AttributeError):
        return "[invalid url]"
