"""Tests for the verdict TTL cache."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from linkshield.core.models import (
    DnsCheckResult,
    MalwareCheckResult,
    PhishingCheckResult,
    SslCheckResult,
    UrlValidationResult,
    VerificationChecks,
    VerificationMetadata,
    VerificationSummary,
    VerificationVerdict,
)
from linkshield.core.verification_cache import VerificationCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_verdict(url: str) -> VerificationVerdict:
    return VerificationVerdict(
        url=url,
        is_verified=True,
        overall_risk="safe",
        risk_score=0,
        checks=VerificationChecks(
            url_validation=UrlValidationResult(url=url),
            dns_check=DnsCheckResult(hostname="example.com"),
            ssl_check=SslCheckResult(url=url),
            phishing_check=PhishingCheckResult(url=url),
            malware_check=MalwareCheckResult(url=url),
        ),
        summary=VerificationSummary(
            total_errors=0, total_warnings=0, critical_issues=[],
            recommendations=["URL passed all security checks - safe to share"],
        ),
        metadata=VerificationMetadata(verified_at=datetime.now(timezone.utc), total_check_time_ms=3),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return VerificationCache(ttl_seconds=60, clock=clock)


def test_miss_then_hit(cache):
    url = "https://example.com"
    assert cache.get(url) is None
    verdict = make_verdict(url)
    cache.set(url, verdict)
    assert cache.get(url) is verdict
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["keys"] == 1
    assert stats["hit_rate"] == 50.0
    assert stats["ttl_seconds"] == 60


def test_entry_expires_after_ttl(cache, clock):
    url = "https://example.com"
    cache.set(url, make_verdict(url))
    clock.now += 59
    assert cache.get(url) is not None
    clock.now += 1
    assert cache.get(url) is None
    assert cache.stats()["keys"] == 0


def test_keys_are_exact_url_strings(cache):
    cache.set("https://example.com", make_verdict("https://example.com"))
    assert cache.get("https://example.com/") is None
    assert cache.get("HTTPS://example.com") is None


def test_stats_prune_expired_entries(cache, clock):
    cache.set("https://a.example", make_verdict("https://a.example"))
    clock.now += 30
    cache.set("https://b.example", make_verdict("https://b.example"))
    clock.now += 45
    assert cache.stats()["keys"] == 1


def test_flush_all_resets_everything(cache):
    cache.set("https://example.com", make_verdict("https://example.com"))
    cache.get("https://example.com")
    cache.flush_all()
    assert cache.stats() == {"hits": 0, "misses": 0, "keys": 0, "hit_rate": 0.0, "ttl_seconds": 60}


def test_as_cached_marks_copy_only():
    verdict = make_verdict("https://example.com")
    cached = verdict.as_cached()
    assert cached.metadata.cached
    assert not verdict.metadata.cached
    assert cached.risk_score == verdict.risk_score


def test_concurrent_get_and_set_from_threads():
    cache = VerificationCache(ttl_seconds=3600)
    urls = [f"https://site{i}.example" for i in range(20)]
    verdicts = {url: make_verdict(url) for url in urls}

    def worker(offset):
        for i in range(200):
            url = urls[(offset + i) % len(urls)]
            cache.set(url, verdicts[url])
            assert cache.get(url).url == url

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    stats = cache.stats()
    assert stats["hits"] == 8 * 200
    assert stats["misses"] == 0
    assert stats["keys"] == len(urls)


def test_as_cached_shares_no_lists():
    verdict = make_verdict("https://example.com")
    cached = verdict.as_cached()
    cached.summary.recommendations.append("extra")
    assert verdict.summary.recommendations == ["URL passed all security checks - safe to share"]
