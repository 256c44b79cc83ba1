"""
DNS Checker
Resolves A/AAAA/MX/CNAME records for a hostname and flags missing records
and private/reserved address targets
"""

import asyncio
import ipaddress
import logging
import time
from typing import Any, List, Optional, Tuple

import dns.asyncresolver
import dns.exception
import dns.resolver

from linkshield.core.config import settings
from linkshield.core.models import DnsCheckResult, MxRecord
from linkshield.core.url_validator import ip_range_reason

logger = logging.getLogger(__name__)

# Lookup outcomes
FOUND = "found"
NOT_FOUND = "nxdomain"
NO_ANSWER = "noanswer"
FAILED = "failed"

MAX_A_RECORDS = 10


class DnsResolver:
    """
    DNS validation backed by dnspython's asyncio resolver.

    Each record type is looked up independently so one failing query
    never hides the answers of the others.
    """

    def __init__(self, resolver: Optional[Any] = None, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.DNS_TIMEOUT_SECONDS
        self._resolver = resolver

    @property
    def resolver(self) -> Any:
        """Lazy initialization of the system resolver"""
        if self._resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.timeout = self.timeout
            resolver.lifetime = self.timeout
            self._resolver = resolver
        return self._resolver

    async def _lookup(self, hostname: str, rdtype: str) -> Tuple[List[Any], str]:
        try:
            answer = await self.resolver.resolve(hostname, rdtype)
            return list(answer), FOUND
        except dns.resolver.NXDOMAIN:
            return [], NOT_FOUND
        except dns.resolver.NoAnswer:
            return [], NO_ANSWER
        except (dns.exception.DNSException, OSError) as e:
            logger.warning(f"DNS {rdtype} lookup for {hostname} failed: {e!r}")
            return [], FAILED

    async def resolve(self, hostname: str) -> DnsCheckResult:
        """Run all DNS checks for hostname"""
        errors: List[str] = []
        warnings: List[str] = []
        start = time.perf_counter()

        if not hostname:
            return DnsCheckResult(is_valid=False, errors=["Missing hostname"])

        a_records: List[str] = []
        aaaa_records: List[str] = []
        mx_records: List[MxRecord] = []
        cname_records: List[str] = []

        literal = _parse_ip(hostname)
        if literal is not None:
            # The literal is its own address record
            if literal.version == 4:
                a_records = [str(literal)]
            else:
                aaaa_records = [str(literal)]
        else:
            (a, a_status), (aaaa, aaaa_status), (mx, mx_status), (cname, cname_status) = await asyncio.gather(
                self._lookup(hostname, "A"),
                self._lookup(hostname, "AAAA"),
                self._lookup(hostname, "MX"),
                self._lookup(hostname, "CNAME"),
            )

            a_records = [rdata.to_text() for rdata in a]
            aaaa_records = [rdata.to_text() for rdata in aaaa]
            mx_records = [
                MxRecord(exchange=rdata.exchange.to_text(omit_final_dot=True), priority=rdata.preference)
                for rdata in mx
            ]
            cname_records = [rdata.target.to_text(omit_final_dot=True) for rdata in cname]

            if a_status == NOT_FOUND:
                errors.append("Domain does not exist (no DNS records found)")
            elif a_status == NO_ANSWER:
                warnings.append("No A (IPv4) records found")
            elif a_status == FAILED:
                warnings.append("Could not resolve A records")

            # IPv6, MX and CNAME are optional; only infrastructure failures are noted
            for status, label in (
                (aaaa_status, "IPv6"),
                (mx_status, "MX"),
                (cname_status, "CNAME"),
            ):
                if status == FAILED:
                    warnings.append(f"Could not resolve {label} records")

        if not a_records and not aaaa_records and not cname_records:
            errors.append("No valid DNS records found for this domain")

        for ip in a_records + aaaa_records:
            reason = ip_range_reason(ip)
            if reason:
                errors.append(f"Domain resolves to {reason} IP address: {ip}")

        if literal is None and not mx_records and a_records:
            warnings.append("Domain has no email (MX) records, may be newly registered")

        if len(a_records) > MAX_A_RECORDS:
            warnings.append(f"Domain has {len(a_records)} A records, verify legitimacy")

        return DnsCheckResult(
            is_valid=not errors,
            hostname=hostname,
            has_a_record=bool(a_records),
            has_aaaa_record=bool(aaaa_records),
            has_mx_record=bool(mx_records),
            has_cname_record=bool(cname_records),
            a_records=a_records,
            aaaa_records=aaaa_records,
            mx_records=mx_records,
            cname_records=cname_records,
            errors=errors,
            warnings=warnings,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )

    async def domain_exists(self, hostname: str) -> bool:
        """Quick existence check: any A record, else any AAAA record"""
        records, _ = await self._lookup(hostname, "A")
        if records:
            return True
        records, _ = await self._lookup(hostname, "AAAA")
        return bool(records)


def _parse_ip(hostname: str) -> Optional[Any]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        return None
