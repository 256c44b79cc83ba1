"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone

import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.resolver
import pytest

from linkshield.core.dns_checker import DnsResolver
from linkshield.core.heuristics_config import get_heuristics_config
from linkshield.core.ssl_checker import TlsHandshake, TlsInspector
from linkshield.core.url_reputation import ThreatListChecker, ThreatProvider
from linkshield.core.verification_cache import VerificationCache
from linkshield.core.verification_pipeline import VerificationOrchestrator

HEALTHY_RECORDS = {
    "A": ["93.184.216.34"],
    "AAAA": ["2606:2800:220:1:248:1893:25c8:1946"],
    "MX": ["10 mail.example.com."],
}


def cert_time(delta: timedelta) -> str:
    """Certificate timestamp in getpeercert() format, relative to now"""
    return (datetime.now(timezone.utc) + delta).strftime("%b %d %H:%M:%S %Y GMT")


def make_certificate(days_left: int = 90, issuer: str = "Example CA", subject: str = "example.com") -> dict:
    return {
        "notBefore": cert_time(timedelta(days=-30)),
        "notAfter": cert_time(timedelta(days=days_left, hours=12)),
        "issuer": ((("commonName", issuer),),),
        "subject": ((("commonName", subject),),),
    }


class FakeResolver:
    """Stands in for dns.asyncresolver.Resolver; answers from a table of record texts"""

    def __init__(self, records=None, failures=None, delay: float = 0):
        self.records = records if records is not None else dict(HEALTHY_RECORDS)
        self.failures = failures or {}
        self.delay = delay
        self.calls = []

    async def resolve(self, hostname, rdtype):
        self.calls.append((hostname, rdtype))
        if self.delay:
            await asyncio.sleep(self.delay)
        if rdtype in self.failures:
            raise self.failures[rdtype]
        texts = self.records.get(rdtype)
        if not texts:
            raise dns.resolver.NoAnswer()
        return [
            dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.from_text(rdtype), text)
            for text in texts
        ]


class FakeTlsInspector(TlsInspector):
    """TlsInspector whose handshake returns a canned result (or raises)"""

    def __init__(self, handshake=None, error=None, delay: float = 0, timeout: float = 5):
        super().__init__(timeout=timeout)
        self.handshake = handshake or TlsHandshake(
            certificate=make_certificate(), protocol="TLSv1.3", cipher="TLS_AES_256_GCM_SHA384"
        )
        self.error = error
        self.delay = delay
        self.hosts = []

    async def _handshake(self, hostname):
        self.hosts.append(hostname)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.handshake


class FakeProvider(ThreatProvider):
    def __init__(self, name="Fake Feed", threats=None, error=None):
        self.name = name
        self.threats = threats or []
        self.error = error
        self.calls = 0

    async def lookup(self, url):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.threats)


@pytest.fixture
def heuristics():
    return get_heuristics_config()


@pytest.fixture
def fake_resolver():
    return FakeResolver()


@pytest.fixture
def fake_tls():
    return FakeTlsInspector()


@pytest.fixture
def clean_provider():
    return FakeProvider()


@pytest.fixture
def make_orchestrator(fake_resolver, fake_tls, clean_provider):
    """Factory for an orchestrator wired to fakes; keyword arguments override them"""
    def _make(**overrides):
        kwargs = dict(
            dns_resolver=DnsResolver(resolver=fake_resolver),
            tls_inspector=fake_tls,
            threat_checker=ThreatListChecker(providers=[clean_provider]),
            cache=VerificationCache(ttl_seconds=3600),
        )
        kwargs.update(overrides)
        return VerificationOrchestrator(**kwargs)
    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()
