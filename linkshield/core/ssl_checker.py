"""
SSL/TLS Certificate Checker
Performs a verified TLS handshake against the target host and reports
certificate validity, expiry, protocol and cipher strength
"""

import asyncio
import logging
import math
import ssl
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from linkshield.core.config import settings
from linkshield.core.models import SslCheckResult
from linkshield.core.url_validator import extract_hostname, sanitize_url_for_logging

logger = logging.getLogger(__name__)

HTTPS_PORT = 443
EXPIRY_WARNING_DAYS = 30

OUTDATED_PROTOCOLS = {"SSLv2", "SSLv3", "TLSv1", "TLSv1.0", "TLSv1.1"}
WEAK_CIPHER_MARKERS = ("RC4", "DES", "MD5")


@dataclass
class TlsHandshake:
    """What a successful handshake tells us about the peer"""
    certificate: Dict[str, Any]
    protocol: Optional[str] = None
    cipher: Optional[str] = None


def _common_name(name: Any) -> Optional[str]:
    """Extract commonName from a getpeercert() issuer/subject tuple"""
    for rdn in name or ():
        for key, value in rdn:
            if key == "commonName":
                return value
    return None


def _cert_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(ssl.cert_time_to_seconds(value), tz=timezone.utc)


class TlsInspector:
    """Inspects the TLS certificate served for an https URL"""

    def __init__(self, timeout: Optional[float] = None, port: int = HTTPS_PORT,
                 context: Optional[ssl.SSLContext] = None):
        self.timeout = timeout if timeout is not None else settings.SSL_TIMEOUT_SECONDS
        self.port = port
        self.context = context

    async def _handshake(self, hostname: str) -> TlsHandshake:
        context = self.context or ssl.create_default_context()
        _, writer = await asyncio.open_connection(
            hostname, self.port, ssl=context, server_hostname=hostname
        )
        try:
            ssl_object = writer.get_extra_info("ssl_object")
            cipher = ssl_object.cipher()
            return TlsHandshake(
                certificate=ssl_object.getpeercert() or {},
                protocol=ssl_object.version(),
                cipher=cipher[0] if cipher else None,
            )
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ssl.SSLError, OSError) as e:
                logger.debug(f"TLS close for {hostname} did not complete cleanly: {e!r}")

    def _failure(self, url: str, kind: str, message: str, start: float) -> SslCheckResult:
        logger.warning(f"SSL check for {sanitize_url_for_logging(url)} failed ({kind}): {message}")
        return SslCheckResult(
            is_valid=False,
            url=url,
            has_valid_certificate=False,
            failure_kind=kind,
            errors=[message],
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )

    async def inspect(self, url: str) -> SslCheckResult:
        start = time.perf_counter()

        # Only HTTPS URLs have a certificate to check
        if not url.lower().startswith("https://"):
            return SslCheckResult(
                is_valid=True,  # HTTP is technically valid, just not secure
                url=url,
                has_valid_certificate=False,
                warnings=["URL uses HTTP instead of HTTPS - not encrypted"],
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            )

        hostname = extract_hostname(url)
        if not hostname:
            return self._failure(url, "connection_failed", "SSL check failed: URL has no hostname", start)

        try:
            handshake = await asyncio.wait_for(self._handshake(hostname), timeout=self.timeout)
        except ssl.SSLCertVerificationError as e:
            detail = getattr(e, "verify_message", None) or str(e)
            return self._failure(url, "certificate_invalid",
                                 f"SSL certificate is invalid or has expired: {detail}", start)
        except (asyncio.TimeoutError, TimeoutError):
            return self._failure(url, "timeout", f"SSL check timed out after {self.timeout:g}s", start)
        except ConnectionRefusedError as e:
            return self._failure(url, "connection_refused", f"SSL connection refused: {e}", start)
        except (ssl.SSLError, OSError) as e:
            return self._failure(url, "connection_failed", f"SSL check failed: {e}", start)
        except UnicodeError as e:
            # IDNA encoding rejects empty or over-long labels before any connection
            return self._failure(url, "connection_failed", f"SSL check failed: invalid hostname ({e})", start)

        return self._evaluate(url, handshake, start)

    def _evaluate(self, url: str, handshake: TlsHandshake, start: float) -> SslCheckResult:
        errors: List[str] = []
        warnings: List[str] = []
        cert = handshake.certificate

        valid_from = _cert_time(cert.get("notBefore"))
        valid_to = _cert_time(cert.get("notAfter"))

        days_until_expiration = None
        if valid_to is not None:
            remaining = valid_to - datetime.now(timezone.utc)
            days_until_expiration = math.floor(remaining.total_seconds() / 86400)

            if days_until_expiration < 0:
                errors.append("SSL certificate has expired")
            elif days_until_expiration < EXPIRY_WARNING_DAYS:
                warnings.append(f"SSL certificate expires in {days_until_expiration} days")

        issuer = _common_name(cert.get("issuer"))
        subject = _common_name(cert.get("subject"))
        if issuer and subject and issuer == subject:
            warnings.append("SSL certificate is self-signed")

        if handshake.protocol and handshake.protocol in OUTDATED_PROTOCOLS:
            warnings.append(f"Outdated TLS protocol: {handshake.protocol}")

        if handshake.cipher and any(marker in handshake.cipher for marker in WEAK_CIPHER_MARKERS):
            warnings.append(f"Weak cipher suite: {handshake.cipher}")

        return SslCheckResult(
            is_valid=not errors,
            url=url,
            has_valid_certificate=True,
            certificate_issuer=issuer,
            certificate_subject=subject,
            valid_from=valid_from,
            valid_to=valid_to,
            days_until_expiration=days_until_expiration,
            protocol=handshake.protocol,
            cipher=handshake.cipher,
            errors=errors,
            warnings=warnings,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
